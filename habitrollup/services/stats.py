"""
Progress statistics built on the rollup pipeline.

global_progress(db, user_id, today)           -> GlobalProgress
month_stats(db, user_id, year, month, today)  -> MonthStats

Streak rule: walk back from today. A day with no completed habit ends the
streak. A past day on which some active habit is not complete also ends
it; today counts as soon as anything is complete.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from habitrollup.core.config import settings
from habitrollup.services import ledger
from habitrollup.services.completion import percent_of
from habitrollup.services.overview import month_bounds
from habitrollup.services.rollup import EvaluatedEntry, evaluate_range, week_start_for


@dataclass
class HabitProgress:
    habit_id: int
    name: str
    emoji: str
    completed: int
    total: int
    percentage: int


@dataclass
class GlobalProgress:
    total_habits: int
    completed_today: int
    completed_this_week: int
    completed_this_month: int
    weekly_target: int
    monthly_target: int
    weekly_percentage: int
    monthly_percentage: int
    top_habits: list[HabitProgress] = field(default_factory=list)


@dataclass
class BestHabit:
    habit_id: int
    name: str
    emoji: str
    completion_rate: int


@dataclass
class MonthStats:
    year: int
    month: int
    total_habits: int
    current_streak: int
    completion_percentage: int
    best_habit: Optional[BestHabit]


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _completed_between(entries: list[EvaluatedEntry], start: date, end: date) -> int:
    return sum(1 for e in entries if e.completed and start <= e.day <= end)


def global_progress(db: Session, user_id: str, today: Optional[date] = None) -> GlobalProgress:
    today = today or _today()
    week_start = week_start_for(today, settings.WEEK_STARTS_ON)
    week_end = week_start + timedelta(days=6)
    month_start, month_end = month_bounds(today.year, today.month)

    evaluated = evaluate_range(
        db, user_id, min(week_start, month_start), max(week_end, month_end)
    )
    habits = list(evaluated.habits.values())
    entries = evaluated.entries

    weekly_target = sum(
        h.weekly_target if h.weekly_target is not None else settings.DEFAULT_WEEKLY_TARGET
        for h in habits
    )
    monthly_target = sum(
        h.monthly_target if h.monthly_target is not None else settings.DEFAULT_MONTHLY_TARGET
        for h in habits
    )
    completed_week = _completed_between(entries, week_start, week_end)
    completed_month = _completed_between(entries, month_start, month_end)

    per_habit = []
    for habit in habits:
        done = sum(
            1 for e in entries
            if e.habit_id == habit.id and e.completed and month_start <= e.day <= month_end
        )
        if done == 0:
            continue
        target = habit.monthly_target if habit.monthly_target is not None else settings.DEFAULT_MONTHLY_TARGET
        per_habit.append(HabitProgress(
            habit_id=habit.id,
            name=habit.name,
            emoji=habit.emoji,
            completed=done,
            total=target,
            percentage=percent_of(done, target),
        ))
    per_habit.sort(key=lambda p: p.percentage, reverse=True)

    return GlobalProgress(
        total_habits=len(habits),
        completed_today=_completed_between(entries, today, today),
        completed_this_week=completed_week,
        completed_this_month=completed_month,
        weekly_target=weekly_target,
        monthly_target=monthly_target,
        weekly_percentage=percent_of(completed_week, weekly_target),
        monthly_percentage=percent_of(completed_month, monthly_target),
        top_habits=per_habit,
    )


def current_streak(db: Session, user_id: str, today: Optional[date] = None) -> int:
    today = today or _today()
    first = ledger.earliest_entry_day(db, user_id)
    if first is None or first > today:
        return 0
    evaluated = evaluate_range(db, user_id, first, today)
    active = set(evaluated.habits)
    done_by_day: dict[date, set[int]] = defaultdict(set)
    for e in evaluated.entries:
        if e.completed:
            done_by_day[e.day].add(e.habit_id)

    streak = 0
    check = today
    while check >= first:
        done = done_by_day.get(check)
        if not done:
            break
        if check < today and not active <= done:
            break
        streak += 1
        check -= timedelta(days=1)
    return streak


def month_stats(
    db: Session,
    user_id: str,
    year: int,
    month: int,
    today: Optional[date] = None,
) -> MonthStats:
    start, end = month_bounds(year, month)
    evaluated = evaluate_range(db, user_id, start, end)
    entries = evaluated.entries
    completed = sum(1 for e in entries if e.completed)

    # First habit wins ties, including the all-zero case.
    best: Optional[BestHabit] = None
    best_rate = -1.0
    for habit in evaluated.habits.values():
        mine = [e for e in entries if e.habit_id == habit.id]
        rate = 100 * sum(1 for e in mine if e.completed) / len(mine) if mine else 0.0
        if rate > best_rate:
            best_rate = rate
            best = BestHabit(
                habit_id=habit.id,
                name=habit.name,
                emoji=habit.emoji,
                completion_rate=percent_of(sum(1 for e in mine if e.completed), len(mine)),
            )

    return MonthStats(
        year=year,
        month=month,
        total_habits=len(evaluated.habits),
        current_streak=current_streak(db, user_id, today),
        completion_percentage=percent_of(completed, len(entries)),
        best_habit=best,
    )
