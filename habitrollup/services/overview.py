"""
Overview cache — monthly and per-habit weekly summaries.

Each refresh recomputes the summary from the ledger and upserts it on
its unique identity (cache-aside). Refreshing unchanged data writes the
same values again; dropping the tables loses nothing.

  MonthlyOverview (user, year, month)
    completed  = completed habit-days of active habits in the month
    target     = sum of each active habit's monthly target (default 30)
    left       = max(0, target - completed)
    percentage = round(100 * completed / target), 0 when target == 0

  WeeklyOverview (user, habit, week_start)
    completed  = completed days of the habit in [week_start, week_start + 6]
    target     = habit weekly target (default 7)
    percentage = round(100 * completed / target), 0 when target == 0

Public API
----------
month_bounds(year, month)                        -> (date, date)
compute_monthly(db, user_id, year, month)        -> MonthlySummary  (no writes)
refresh_monthly(db, user_id, year, month)        -> MonthlySummary
compute_weekly(db, user_id, habit, week_start)   -> WeeklySummary   (no writes)
refresh_weekly(db, user_id, habit_id, week_start) -> WeeklySummary
refresh_weekly_all(db, user_id, week_start)      -> WeeklyRefresh
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from habitrollup.core.config import settings
from habitrollup.core.errors import InvalidRequestError
from habitrollup.db.upsert import upsert
from habitrollup.models.habit import Habit
from habitrollup.models.overview import MonthlyOverview, WeeklyOverview
from habitrollup.services import habits as habit_directory
from habitrollup.services.completion import percent_of
from habitrollup.services.rollup import aggregate_range, week_start_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class MonthlySummary:
    year: int
    month: int
    month_start: date
    month_end: date
    completed: int
    target: int
    left: int
    percentage: int

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]


@dataclass
class WeeklySummary:
    habit_id: int
    habit_name: str
    habit_emoji: str
    week_start: date
    week_end: date
    completed: int
    target: int
    percentage: int

    @property
    def ratio(self) -> str:
        return f"{self.completed}/{self.target}"


@dataclass
class WeeklyRefresh:
    week_start: date
    week_end: date
    habits: list[WeeklySummary]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise InvalidRequestError(f"Month must be 1-12, got {month}.", field="month")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def _weekly_target(habit: Habit) -> int:
    return habit.weekly_target if habit.weekly_target is not None else settings.DEFAULT_WEEKLY_TARGET


def _monthly_target(habit: Habit) -> int:
    return habit.monthly_target if habit.monthly_target is not None else settings.DEFAULT_MONTHLY_TARGET


# ---------------------------------------------------------------------------
# Monthly
# ---------------------------------------------------------------------------

def compute_monthly(db: Session, user_id: str, year: int, month: int) -> MonthlySummary:
    start, end = month_bounds(year, month)
    habits = habit_directory.list_active(db, user_id)
    target = sum(_monthly_target(h) for h in habits)
    completed = aggregate_range(db, user_id, start, end).completed
    return MonthlySummary(
        year=year,
        month=month,
        month_start=start,
        month_end=end,
        completed=completed,
        target=target,
        left=max(0, target - completed),
        percentage=percent_of(completed, target),
    )


def refresh_monthly(db: Session, user_id: str, year: int, month: int) -> MonthlySummary:
    """Recompute the month and upsert monthly_overviews (user, year, month)."""
    summary = compute_monthly(db, user_id, year, month)
    upsert(
        db,
        MonthlyOverview,
        ("user_id", "year", "month"),
        {
            "user_id": user_id,
            "year": summary.year,
            "month": summary.month,
            "completed": summary.completed,
            "target": summary.target,
            "left": summary.left,
            "percentage": summary.percentage,
        },
    )
    db.commit()
    logger.info(
        "Monthly overview refreshed",
        extra={"habit_user_id": user_id, "habit_period": f"{year:04d}-{month:02d}"},
    )
    return summary


# ---------------------------------------------------------------------------
# Weekly
# ---------------------------------------------------------------------------

def _resolve_week_start(week_start: Optional[date]) -> date:
    return week_start_for(week_start or _today(), settings.WEEK_STARTS_ON)


def compute_weekly(db: Session, user_id: str, habit: Habit, week_start: date) -> WeeklySummary:
    week_end = week_start + timedelta(days=6)
    completed = aggregate_range(db, user_id, week_start, week_end, habit_id=habit.id).completed
    target = _weekly_target(habit)
    return WeeklySummary(
        habit_id=habit.id,
        habit_name=habit.name,
        habit_emoji=habit.emoji,
        week_start=week_start,
        week_end=week_end,
        completed=completed,
        target=target,
        percentage=percent_of(completed, target),
    )


def _upsert_weekly(db: Session, user_id: str, summary: WeeklySummary) -> None:
    upsert(
        db,
        WeeklyOverview,
        ("user_id", "habit_id", "week_start"),
        {
            "user_id": user_id,
            "habit_id": summary.habit_id,
            "week_start": summary.week_start,
            "completed": summary.completed,
            "target": summary.target,
            "percentage": summary.percentage,
        },
    )


def refresh_weekly(
    db: Session,
    user_id: str,
    habit_id: int,
    week_start: Optional[date] = None,
) -> WeeklySummary:
    """
    Recompute one habit's week and upsert weekly_overviews. `week_start`
    is snapped back to the configured first weekday; defaults to the
    current week.
    """
    habit = habit_directory.get_owned_habit(db, user_id, habit_id)
    summary = compute_weekly(db, user_id, habit, _resolve_week_start(week_start))
    _upsert_weekly(db, user_id, summary)
    db.commit()
    return summary


def refresh_weekly_all(
    db: Session,
    user_id: str,
    week_start: Optional[date] = None,
) -> WeeklyRefresh:
    """Refresh the week for every active habit. Commits once."""
    start = _resolve_week_start(week_start)
    summaries = []
    for habit in habit_directory.list_active(db, user_id):
        summary = compute_weekly(db, user_id, habit, start)
        _upsert_weekly(db, user_id, summary)
        summaries.append(summary)
    db.commit()
    logger.info(
        "Weekly overviews refreshed",
        extra={"habit_user_id": user_id, "habit_period": str(start), "habit_count": len(summaries)},
    )
    return WeeklyRefresh(week_start=start, week_end=start + timedelta(days=6), habits=summaries)
