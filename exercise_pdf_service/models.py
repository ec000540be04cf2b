"""
Pydantic models for the PDF service API.

These models define the structure for render requests and API responses.
Field names follow the JSON the existing clients send (camelCase).
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .errors import RenderValidationError


class Exercise(BaseModel):
    """One exercise in the plan."""

    id: Optional[Union[str, int]] = Field(None, description="Client-side exercise identifier")
    title: Optional[str] = Field(None, description="Exercise title")
    name: Optional[str] = Field(None, description="Alternative to title used by older clients")
    description: Optional[str] = Field(None, description="Instructions shown next to the image")
    imageBase64: Optional[str] = Field(None, description="Image as a data: URI")

    @property
    def display_title(self) -> str:
        return self.title or self.name or "Exercise"


class CalendarOptions(BaseModel):
    """Options for the tracking calendar page."""

    startDate: Optional[date] = Field(None, description="First day shown (default: today)")
    days: int = Field(30, ge=1, le=366, description="Number of days to show")
    highlightDates: List[date] = Field(default_factory=list, description="Days to highlight")


class RenderRequest(BaseModel):
    """Exercise plan to render as PDF."""

    patientName: Optional[str] = Field("Patient", description="Shown in the header and filename")
    patientNotes: Optional[str] = Field(None, description="Optional therapist notes")
    date: Optional[str] = Field(None, description="Plan date, ISO 8601 (default: today)")
    exercises: List[Exercise] = Field(default_factory=list, description="Exercises in display order")
    template: str = Field("default", description="Template variant name")
    includeCalendar: bool = Field(False, description="Append a tracking calendar page")
    calendarOptions: Optional[CalendarOptions] = Field(None, description="Calendar settings")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        """Reject dates that cannot be parsed as ISO 8601."""
        if v is None or not v.strip():
            return None
        try:
            datetime.fromisoformat(v.strip())
        except ValueError:
            raise ValueError(f"date must be ISO 8601, got {v!r}")
        return v.strip()

    @property
    def subject_name(self) -> str:
        return (self.patientName or "").strip() or "Patient"

    def validate_for_render(self) -> None:
        """
        Check the request can be rendered at all.

        Raises:
            RenderValidationError: If no exercises were provided
        """
        if not self.exercises:
            raise RenderValidationError("No exercises provided")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str
    timestamp: datetime
    queueLength: int
    activeRequests: int
    poolSize: int
    pool: Dict[str, Any] = Field(default_factory=dict)
    queue: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    error: str
    details: Optional[str] = None
    timestamp: datetime
    requestId: Optional[str] = None
