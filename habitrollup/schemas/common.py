"""
Shared schema primitives used across the API.
"""
from datetime import date, datetime
from typing import Annotated, Any, Optional
from pydantic import BaseModel, BeforeValidator, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


def truncate_to_day(value: Any) -> Any:
    """
    Accept full timestamps where a calendar day is expected and keep only
    the date part, so "2026-03-01T21:45:00" and "2026-03-01" are the same day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return value
    return value


# A calendar day that also accepts timestamps (time of day is dropped).
CalendarDay = Annotated[date, BeforeValidator(truncate_to_day)]
