"""
Helper functions for building exercise-plan HTML.

Pure functions: a validated RenderRequest goes in, a self-contained HTML
document comes out. No I/O and no shared state, so they can run on any
task without coordination.
"""

import base64
import html
import re
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .models import CalendarOptions, Exercise, RenderRequest
from .templates import get_template

EXERCISES_PER_PAGE = 3
WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
ALLOWED_IMAGE_PREFIX = re.compile(r"^data:image/(png|jpe?g|gif|webp|svg\+xml);base64,[A-Za-z0-9+/=\s]+$")

PLACEHOLDER_SVG = """
<svg width="200" height="200" xmlns="http://www.w3.org/2000/svg">
  <rect width="200" height="200" fill="#f0f0f0"/>
  <text x="100" y="100" font-family="Arial" font-size="14" fill="#888" text-anchor="middle">Image not available</text>
</svg>
"""


def escape_text(text: Optional[str]) -> str:
    """Escape user text for insertion into HTML, keeping line breaks."""
    if not text:
        return ""
    return html.escape(text, quote=True).replace("\n", "<br>")


def sanitize_for_path(text: str) -> str:
    """
    Sanitize text for use in a download filename.

    Every character outside [a-z0-9] becomes an underscore and the result
    is lowercased.

    Example:
        >>> sanitize_for_path("Jane O'Neil")
        "jane_o_neil"
    """
    return re.sub(r"[^a-z0-9]", "_", text, flags=re.IGNORECASE).lower()


def format_plan_date(value: Optional[str] = None, today: Optional[date] = None) -> str:
    """
    Format the plan date as a long US-style date ("March 5, 2025").

    Args:
        value: ISO 8601 date or datetime string; today's date when empty
        today: Override for "today" (tests)
    """
    if value:
        day = datetime.fromisoformat(value).date()
    else:
        day = today or date.today()
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def build_pdf_filename(patient_name: Optional[str], formatted_date: str) -> str:
    """
    Build the Content-Disposition filename for a rendered plan.

    Example:
        >>> build_pdf_filename("Jane Doe", "March 5, 2025")
        "exercise_plan_jane_doe_March_5,_2025.pdf"
    """
    sanitized_date = re.sub(r"\s", "_", formatted_date)
    sanitized_name = sanitize_for_path(patient_name) if patient_name else "patient"
    return f"exercise_plan_{sanitized_name}_{sanitized_date}.pdf"


def create_placeholder_image() -> str:
    """Return the "Image not available" placeholder as a data: URI."""
    encoded = base64.b64encode(PLACEHOLDER_SVG.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


def _exercise_key(exercise: Exercise, index: int) -> str:
    return str(exercise.id) if exercise.id is not None else f"#{index}"


def process_exercise_images(exercises: List[Exercise]) -> Tuple[Dict[str, str], str]:
    """
    Resolve the image for every exercise.

    Only inline data: URIs are accepted; anything else (remote URLs,
    malformed data) falls back to the placeholder.

    Returns:
        (map of exercise key -> image URI, placeholder URI)
    """
    placeholder = create_placeholder_image()
    images: Dict[str, str] = {}
    for index, exercise in enumerate(exercises):
        image = (exercise.imageBase64 or "").strip()
        if image and ALLOWED_IMAGE_PREFIX.match(image):
            images[_exercise_key(exercise, index)] = image
        else:
            images[_exercise_key(exercise, index)] = placeholder
    return images, placeholder


def _chunks(items: List[Tuple[int, Exercise]], size: int) -> Iterable[List[Tuple[int, Exercise]]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def generate_default_exercises_html(
    exercises: List[Exercise],
    images: Dict[str, str],
    placeholder: str,
) -> str:
    """Lay out exercises three per page with page breaks between pages."""
    pages = list(_chunks(list(enumerate(exercises)), EXERCISES_PER_PAGE))
    parts = []
    for page_index, page in enumerate(pages):
        cards = []
        for index, exercise in page:
            title = escape_text(exercise.display_title)
            description = escape_text(exercise.description) or "No specific instructions provided."
            image = images.get(_exercise_key(exercise, index), placeholder)
            cards.append(f"""
          <div class="exercise-container">
            <div class="exercise-header">
              <h2 class="exercise-title">{title}</h2>
            </div>
            <div class="exercise-content">
              <div class="exercise-image-container">
                <img class="exercise-image" src="{image}" alt="Visual demonstration of {title}"/>
              </div>
              <div class="exercise-description">
                <p>{description}</p>
              </div>
            </div>
          </div>""")
        parts.append(f'<div class="exercises-grid">{"".join(cards)}\n</div>')
        if page_index < len(pages) - 1:
            parts.append('<div class="page-break"></div>')
    return "\n".join(parts)


def generate_calendar_html(options: Optional[CalendarOptions] = None, today: Optional[date] = None) -> str:
    """
    Build the exercise tracking calendar page.

    Leading empty cells align the grid to the weekday of the first of the
    start month; a new row starts after every Saturday.
    """
    options = options or CalendarOptions()
    start = options.startDate or today or date.today()
    highlighted = set(options.highlightDates)

    first_of_month = start.replace(day=1)
    # date.weekday(): Monday=0; the grid starts on Sunday
    first_weekday = (first_of_month.weekday() + 1) % 7

    cells = ['<div class="calendar-day empty"></div>'] * first_weekday
    rows = []
    for i in range(options.days):
        current = start + timedelta(days=i)
        css_class = "calendar-day highlighted" if current in highlighted else "calendar-day"
        cells.append(
            f'<div class="{css_class}">'
            f'<div class="date-number">{current.day}</div>'
            f'<div class="checkbox-container"><div class="checkbox"></div></div>'
            f'</div>'
        )
        if (first_weekday + i + 1) % 7 == 0 and i < options.days - 1:
            rows.append(cells)
            cells = []
    rows.append(cells)

    header = "".join(f'<div class="weekday">{day}</div>' for day in WEEKDAYS)
    grids = "".join(f'<div class="calendar-grid">{"".join(row)}</div>' for row in rows)

    return f"""
    <div class="calendar-page">
      <h1 class="calendar-title">Exercise Tracking Calendar</h1>
      <div class="calendar-container">
        <div class="calendar-header">{header}</div>
        {grids}
      </div>
      <div class="calendar-instructions">
        <p>Track your progress by checking off each day you complete your exercises.</p>
      </div>
    </div>
    """


def generate_exercises_html(
    template: str,
    exercises: List[Exercise],
    images: Dict[str, str],
    placeholder: str,
    include_calendar: bool = False,
    calendar_options: Optional[CalendarOptions] = None,
) -> str:
    """
    Build the body section for the chosen template variant.

    Only the default layout exists; other names use it too.
    """
    html_body = generate_default_exercises_html(exercises, images, placeholder)
    if include_calendar:
        html_body += '\n<div class="page-break"></div>\n' + generate_calendar_html(calendar_options)
    return html_body


def build_document_html(request: RenderRequest) -> str:
    """
    Build the complete HTML document for a render request.

    Args:
        request: Request that already passed validate_for_render()

    Returns:
        Self-contained HTML document
    """
    images, placeholder = process_exercise_images(request.exercises)
    exercises_html = generate_exercises_html(
        request.template,
        request.exercises,
        images,
        placeholder,
        include_calendar=request.includeCalendar,
        calendar_options=request.calendarOptions,
    )
    template = get_template(request.template)
    return template(
        patient_name=escape_text(request.subject_name),
        therapist_notes=escape_text(request.patientNotes),
        exercises_html=exercises_html,
        formatted_date=format_plan_date(request.date),
        include_calendar=request.includeCalendar,
    )
