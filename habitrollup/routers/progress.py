"""
Progress router — rollups and overview refreshes.

GET /progress/analytics           — month: every day + positional weeks 1..5
GET /progress/range               — any range, all habits or one habit
GET /progress/monthly             — refresh + return the MonthlyOverview
GET /progress/weekly              — refresh + return every active habit's week
GET /progress/weekly/{habit_id}   — refresh + return one habit's week
GET /progress/global              — today / this week / this month totals
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitrollup.core.identity import current_user_id
from habitrollup.db.base import get_db
from habitrollup.schemas.common import CalendarDay, ErrorResponse
from habitrollup.schemas.progress import (
    AnalyticsResponse,
    DailyBucketResponse,
    GlobalProgressResponse,
    HabitProgressResponse,
    MonthlyOverviewResponse,
    RangeRollupResponse,
    RangeWeekBucketResponse,
    WeekBucketResponse,
    WeeklyHabitProgress,
    WeeklyProgressResponse,
)
from habitrollup.services.completion import percent_of
from habitrollup.services.overview import (
    MonthlySummary,
    WeeklySummary,
    month_bounds,
    refresh_monthly,
    refresh_weekly,
    refresh_weekly_all,
)
from habitrollup.services.rollup import MONTH_WEEKS, DailyBucket, Rollup, aggregate_range
from habitrollup.services.stats import global_progress

router = APIRouter(prefix="/progress", tags=["progress"])


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _year_month(year: Optional[int], month: Optional[int]) -> tuple[int, int]:
    now = _now()
    return (year or now.year, month or now.month)


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _daily(buckets: list[DailyBucket]) -> list[DailyBucketResponse]:
    return [
        DailyBucketResponse(
            date=b.day.isoformat(),
            completed=b.completed,
            total=b.total,
            percentage=b.percentage,
        )
        for b in buckets
    ]


def _rollup_to_response(r: Rollup) -> RangeRollupResponse:
    return RangeRollupResponse(
        start=str(r.start),
        end=str(r.end),
        habit_id=r.habit_id,
        completed=r.completed,
        total=r.total,
        percentage=percent_of(r.completed, r.total),
        daily=_daily(r.daily),
        weekly=[
            RangeWeekBucketResponse(
                week=w.week,
                start=str(w.start),
                end=str(w.end),
                completed=w.completed,
                total=w.total,
                percentage=w.percentage,
            )
            for w in r.weekly
        ],
    )


def _monthly_to_response(m: MonthlySummary) -> MonthlyOverviewResponse:
    return MonthlyOverviewResponse(
        year=m.year,
        month=m.month,
        month_start=str(m.month_start),
        month_end=str(m.month_end),
        completed=m.completed,
        target=m.target,
        left=m.left,
        percentage=m.percentage,
        month_name=m.month_name,
    )


def _weekly_item(w: WeeklySummary) -> WeeklyHabitProgress:
    return WeeklyHabitProgress(
        habit_id=w.habit_id,
        habit_name=w.habit_name,
        habit_emoji=w.habit_emoji,
        completed=w.completed,
        target=w.target,
        percentage=w.percentage,
        ratio=w.ratio,
    )


# ---------------------------------------------------------------------------
# GET /progress/analytics
# ---------------------------------------------------------------------------

@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Month analytics — daily buckets and positional weeks",
)
def analytics(
    year: Optional[int] = Query(default=None, ge=1, le=9999, description="Defaults to this year."),
    month: Optional[int] = Query(default=None, ge=1, le=12, description="Defaults to this month."),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    One bucket per day of the month (days without entries included) and
    week buckets that count from the 1st of the month in fixed 7-day
    steps: week 1 is days 1-7, week 5 is days 29 to month end.
    Entries of archived habits are not counted in the daily totals.
    """
    year, month = _year_month(year, month)
    start, end = month_bounds(year, month)
    rollup = aggregate_range(db, user_id, start, end, max_weeks=MONTH_WEEKS)
    return AnalyticsResponse(
        daily=_daily(rollup.daily),
        weekly=[
            WeekBucketResponse(
                week=w.week,
                completed=w.completed,
                total=w.total,
                percentage=w.percentage,
            )
            for w in rollup.weekly
        ],
    )


# ---------------------------------------------------------------------------
# GET /progress/range
# ---------------------------------------------------------------------------

@router.get(
    "/range",
    response_model=RangeRollupResponse,
    summary="Rollup for an arbitrary inclusive date range",
    responses={
        404: {"model": ErrorResponse, "description": "Habit not found for this user."},
        422: {"model": ErrorResponse, "description": "start is after end."},
    },
)
def range_rollup(
    start: CalendarDay = Query(examples=["2026-03-01"]),
    end: CalendarDay = Query(examples=["2026-03-31"]),
    habit_id: Optional[int] = Query(
        default=None,
        gt=0,
        description="Single-habit scope with calendar weeks. Omit for all active habits.",
    ),
    week_starts_on: Optional[int] = Query(
        default=None, ge=0, le=6,
        description="First weekday for calendar weeks (0 = Monday). Defaults to the server setting.",
    ),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    rollup = aggregate_range(db, user_id, start, end, habit_id=habit_id, week_starts_on=week_starts_on)
    return _rollup_to_response(rollup)


# ---------------------------------------------------------------------------
# GET /progress/monthly
# ---------------------------------------------------------------------------

@router.get(
    "/monthly",
    response_model=MonthlyOverviewResponse,
    summary="Monthly overview (recomputed and cached on every call)",
)
def monthly_overview(
    year: Optional[int] = Query(default=None, ge=1, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Completed habit-days across active habits against the sum of their
    monthly targets. The result is upserted into `monthly_overviews`.
    """
    year, month = _year_month(year, month)
    return _monthly_to_response(refresh_monthly(db, user_id, year, month))


# ---------------------------------------------------------------------------
# GET /progress/weekly
# ---------------------------------------------------------------------------

@router.get(
    "/weekly",
    response_model=WeeklyProgressResponse,
    summary="Weekly overview for every active habit",
)
def weekly_overview(
    week_start: Optional[CalendarDay] = Query(
        default=None,
        description="Any day of the week; snapped back to the first weekday. Defaults to this week.",
    ),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    result = refresh_weekly_all(db, user_id, week_start)
    return WeeklyProgressResponse(
        week_start=str(result.week_start),
        week_end=str(result.week_end),
        data=[_weekly_item(w) for w in result.habits],
    )


@router.get(
    "/weekly/{habit_id}",
    response_model=WeeklyHabitProgress,
    summary="Weekly overview for one habit",
    responses={404: {"model": ErrorResponse, "description": "Habit not found for this user."}},
)
def weekly_overview_for_habit(
    habit_id: int,
    week_start: Optional[CalendarDay] = Query(default=None),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return _weekly_item(refresh_weekly(db, user_id, habit_id, week_start))


# ---------------------------------------------------------------------------
# GET /progress/global
# ---------------------------------------------------------------------------

@router.get(
    "/global",
    response_model=GlobalProgressResponse,
    summary="Completions today, this week and this month",
)
def global_overview(
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    g = global_progress(db, user_id, _now().date())
    return GlobalProgressResponse(
        total_habits=g.total_habits,
        completed_today=g.completed_today,
        completed_this_week=g.completed_this_week,
        completed_this_month=g.completed_this_month,
        weekly_target=g.weekly_target,
        monthly_target=g.monthly_target,
        weekly_percentage=g.weekly_percentage,
        monthly_percentage=g.monthly_percentage,
        top_habits=[
            HabitProgressResponse(
                habit_id=h.habit_id,
                name=h.name,
                emoji=h.emoji,
                completed=h.completed,
                total=h.total,
                percentage=h.percentage,
            )
            for h in g.top_habits
        ],
    )
