"""
WeeklyOverview / MonthlyOverview — materialised rollups.

The ledger (`habit_entries` + `sub_task_logs`) is the source of truth;
these tables are a derived cache so callers don't recompute on every
request. Dropping them loses nothing: the next refresh rebuilds the row.

Both are written only through ON CONFLICT upserts on their unique
identity. No timestamp columns, so refreshing unchanged data rewrites
identical values.
"""
from datetime import date

from sqlalchemy import Integer, String, Date, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from habitrollup.db.base import Base


class WeeklyOverview(Base):
    __tablename__ = "weekly_overviews"
    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "week_start", name="uq_weekly_overview_user_habit_week"),
        Index("ix_weekly_overviews_user_week", "user_id", "week_start"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    habit_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class MonthlyOverview(Base):
    __tablename__ = "monthly_overviews"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_monthly_overview_user_year_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-12")
    completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    target: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    left: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
