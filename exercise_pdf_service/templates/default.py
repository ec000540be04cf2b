"""Default exercise-program layout."""

from .styles import CALENDAR_STYLES, DEFAULT_STYLES


def generate_default_template(
    patient_name: str,
    therapist_notes: str,
    exercises_html: str,
    formatted_date: str,
    include_calendar: bool = False,
) -> str:
    """
    Wrap the exercises section in the default document.

    Text arguments must already be HTML-escaped.
    """
    styles = DEFAULT_STYLES + (CALENDAR_STYLES if include_calendar else "")

    notes_section = ""
    if therapist_notes:
        notes_section = f"""
      <div class="notes-section">
        <div class="notes-title">Therapist Notes</div>
        <p>{therapist_notes}</p>
      </div>"""

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Exercise Program</title>
  <style>{styles}</style>
</head>
<body>
  <div class="document-header">
    <div class="header-content">
      <div class="brand">
        <div class="logo"></div>
        <h1 class="title">Exercise Program</h1>
      </div>
      <div class="patient-info">
        <h3 class="patient-name">{patient_name}</h3>
        <div>{formatted_date}</div>
      </div>
    </div>
  </div>
  {notes_section}
  {exercises_html}
</body>
</html>
"""
