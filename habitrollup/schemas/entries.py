"""
Ledger request / response schemas.

Mark complete:     POST   /entries           → EntryUpsertRequest → EntryResponse
Mark incomplete:   DELETE /entries           → EntryDeleteResponse
Range:             GET    /entries           → EntryListResponse
Sub-task outcome:  PUT    /entries/subtasks  → SubTaskOutcomeRequest → SubTaskOutcomeResponse
"""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitrollup.schemas.common import CalendarDay

# Keys an entry's context map may carry. Values are passed through as-is.
CONTEXT_KEYS = frozenset({"mood", "energy", "location", "duration_minutes"})


class EntryUpsertRequest(BaseModel):
    """Mark a habit complete for one calendar day. Repeating it is harmless."""

    habit_id: int = Field(gt=0, description="Habit to mark.", examples=[12])
    day: CalendarDay = Field(
        description="Calendar day. A timestamp is truncated to its date.",
        examples=["2026-03-01"],
    )
    notes: Optional[Annotated[str, Field(max_length=2_000)]] = None
    value: Optional[Decimal] = Field(
        default=None,
        description="Measured quantity for quantitative habits (e.g. 5 km).",
    )
    context: Optional[dict[str, Any]] = Field(
        default=None,
        description=f"Optional context map. Allowed keys: {', '.join(sorted(CONTEXT_KEYS))}.",
        examples=[{"mood": "good", "duration_minutes": 25}],
    )

    @field_validator("context")
    @classmethod
    def known_context_keys(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        if v is None:
            return v
        unknown = sorted(set(v) - CONTEXT_KEYS)
        if unknown:
            raise ValueError(f"unrecognised context keys: {', '.join(unknown)}")
        return v


class EntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    day: str = Field(description="ISO date of the entry.")
    completed: bool
    notes: Optional[str] = None
    value: Optional[str] = Field(default=None, description="Decimal serialised as string.")
    context: Optional[dict[str, Any]] = None


class EntryDeleteResponse(BaseModel):
    habit_id: int
    day: str
    deleted: bool = Field(description="False when there was no entry to delete.")


class EntryListResponse(BaseModel):
    start: str
    end: str
    total: int
    items: list[EntryResponse]


class SubTaskOutcomeRequest(BaseModel):
    """Record one sub-task outcome for a day. Repeating it is harmless."""

    habit_id: int = Field(gt=0)
    sub_task_id: int = Field(gt=0)
    day: CalendarDay = Field(examples=["2026-03-01"])
    completed: bool = True
    points: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Points earned that day. Defaults to the sub-task weight.",
    )


class SubTaskOutcomeItem(BaseModel):
    sub_task_id: Optional[int]
    completed: bool
    points: str
    required: bool


class DayEvaluationResponse(BaseModel):
    habit_id: int
    day: str
    completed: bool
    credit_percentage: int = Field(ge=0, le=100)
    total_sub_tasks: int
    completed_sub_tasks: int
    total_points: str
    earned_points: str
    breakdown: list[SubTaskOutcomeItem] = Field(default_factory=list)


class SubTaskOutcomeResponse(BaseModel):
    entry: EntryResponse
    evaluation: DayEvaluationResponse
