from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Integer, String, Text, Boolean, DateTime, Date, Numeric, ForeignKey,
    UniqueConstraint, Index, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from habitrollup.db.base import Base


class SubTask(Base):
    """A step of a habit. Its weight is the default point value under POINTS."""

    __tablename__ = "sub_tasks"
    __table_args__ = (
        Index("ix_sub_tasks_habit_position", "habit_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    habit_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("habits.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SubTaskLog(Base):
    """
    One sub-task outcome per (sub_task_id, user_id, day).

    points: snapshot of the value earned that day; NULL means "use the
    sub-task's current weight".
    """

    __tablename__ = "sub_task_logs"
    __table_args__ = (
        UniqueConstraint("sub_task_id", "user_id", "day", name="uq_sub_task_log_task_user_day"),
        Index("ix_sub_task_logs_habit_user_day", "habit_id", "user_id", "day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    sub_task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sub_tasks.id"), nullable=False, index=True
    )
    habit_id: Mapped[int] = mapped_column(Integer, ForeignKey("habits.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    points: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
