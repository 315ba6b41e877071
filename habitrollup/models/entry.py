"""
HabitEntry — the ledger.

One row per (habit_id, user_id, day); the unique constraint is the
idempotency guard for every write. An absent row means "not completed".
Rows for sub-task habits may exist with completed = False while the day
is in progress.

context: JSON-encoded dict stored as Text, passed through untouched.
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Integer, String, Text, Boolean, DateTime, Date, Numeric, ForeignKey,
    UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from habitrollup.db.base import Base


class HabitEntry(Base):
    __tablename__ = "habit_entries"
    __table_args__ = (
        UniqueConstraint("habit_id", "user_id", "day", name="uq_habit_entry_habit_user_day"),
        Index("ix_habit_entries_user_day", "user_id", "day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(18, 4), nullable=True,
        comment="Quantity for measured habits, e.g. km run",
    )
    context: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True,
        comment="JSON-encoded dict restricted to recognised context keys",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
