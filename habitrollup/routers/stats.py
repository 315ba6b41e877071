"""
Stats router.

GET /stats — month completion rate, current streak and best habit
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitrollup.core.identity import current_user_id
from habitrollup.db.base import get_db
from habitrollup.schemas.progress import BestHabitResponse, MonthStatsResponse
from habitrollup.services.stats import month_stats

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=MonthStatsResponse, summary="Month stats and current streak")
def stats(
    year: Optional[int] = Query(default=None, ge=1, le=9999),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    `completion_percentage` is completed entries over recorded entries in
    the month. The streak always counts back from today (UTC).
    """
    today = datetime.now(tz=timezone.utc).date()
    s = month_stats(db, user_id, year or today.year, month or today.month, today)
    return MonthStatsResponse(
        year=s.year,
        month=s.month,
        total_habits=s.total_habits,
        current_streak=s.current_streak,
        completion_percentage=s.completion_percentage,
        best_habit=BestHabitResponse(
            habit_id=s.best_habit.habit_id,
            name=s.best_habit.name,
            emoji=s.best_habit.emoji,
            completion_rate=s.best_habit.completion_rate,
        ) if s.best_habit else None,
    )
