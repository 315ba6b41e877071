"""
Habit directory schemas.
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from habitrollup.models.habit import ProgressRule

Threshold = Annotated[int, Field(ge=1, le=100)]


class HabitCreateRequest(BaseModel):
    name: Annotated[str, Field(min_length=1, max_length=200)]
    emoji: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=32)
    frequency: Optional[str] = Field(default=None, max_length=32, examples=["daily"])
    weekly_target: Optional[int] = Field(default=None, ge=0, le=7)
    monthly_target: Optional[int] = Field(default=None, ge=0, le=31)
    has_sub_tasks: bool = False
    progress_rule: ProgressRule = ProgressRule.PERCENTAGE
    completion_threshold: Optional[Threshold] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v):
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("name must not be empty after stripping whitespace")
        return stripped


class HabitUpdateRequest(BaseModel):
    """Partial edit. Only the fields present in the body are changed."""
    name: Optional[Annotated[str, Field(min_length=1, max_length=200)]] = None
    emoji: Optional[str] = Field(default=None, max_length=16)
    color: Optional[str] = Field(default=None, max_length=32)
    frequency: Optional[str] = Field(default=None, max_length=32)
    weekly_target: Optional[int] = Field(default=None, ge=0, le=7)
    monthly_target: Optional[int] = Field(default=None, ge=0, le=31)
    archived: Optional[bool] = None
    has_sub_tasks: Optional[bool] = None
    progress_rule: Optional[ProgressRule] = None
    completion_threshold: Optional[Threshold] = None


class HabitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    emoji: str
    color: Optional[str] = None
    frequency: str
    weekly_target: Optional[int] = None
    monthly_target: Optional[int] = None
    archived: bool
    has_sub_tasks: bool
    progress_rule: ProgressRule
    completion_threshold: Optional[int] = None


class SubTaskCreateRequest(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: Optional[str] = Field(default=None, max_length=2_000)
    weight: int = Field(default=1, ge=1, le=10)
    is_required: bool = True
    position: int = Field(default=0, ge=0)


class SubTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    title: str
    description: Optional[str] = None
    weight: int
    is_required: bool
    position: int
