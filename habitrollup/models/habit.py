from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Boolean, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from habitrollup.db.base import Base


class ProgressRule(str, enum.Enum):
    ALL = "ALL"
    PERCENTAGE = "PERCENTAGE"
    POINTS = "POINTS"


class Habit(Base):
    """A recurring habit owned by one user. Archived habits are soft-deleted."""

    __tablename__ = "habits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    emoji: Mapped[str] = mapped_column(String(16), nullable=False, default="✨")
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    frequency: Mapped[str] = mapped_column(String(32), nullable=False, default="daily")
    weekly_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=7)
    monthly_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=30)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    has_sub_tasks: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    progress_rule: Mapped[str] = mapped_column(
        Enum(ProgressRule, name="progress_rule_enum"),
        nullable=False,
        default=ProgressRule.PERCENTAGE,
    )
    completion_threshold: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True,
        comment="1-100; only read under PERCENTAGE and POINTS",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
