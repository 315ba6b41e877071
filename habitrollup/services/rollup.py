"""
Rollup aggregator — folds a user's ledger slice into day and week buckets.

Pipeline
--------
  1. Pull entries for [start, end] (optionally one habit) and, for habits
     with sub-tasks, their sub-task definitions and logs (explicit joins).
  2. Evaluate each entry under its habit's current rule.
  3. One DailyBucket per calendar day in the range, empty days included.
  4. Week buckets are sums of day buckets, never recounted:
       all habits   -> positional weeks: week k covers day offsets
                       [7(k-1), 7k-1] from the range's first day, whatever
                       weekday that is.
       single habit -> calendar weeks aligned to WEEK_STARTS_ON, one per
                       week the range touches, clipped to the range.

Entries of archived habits are left out of the all-habits scope.

Public API
----------
evaluate_range(db, user_id, start, end, habit_id=None)  -> EvaluatedRange
build_daily_buckets(start, end, evaluated)              -> list[DailyBucket]
positional_weeks(daily, max_weeks=None)                 -> list[WeeklyBucket]
calendar_weeks(daily, week_starts_on)                   -> list[WeeklyBucket]
aggregate_range(db, user_id, start, end, habit_id=None) -> Rollup
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from habitrollup.core.config import settings
from habitrollup.core.errors import InvalidDateRangeError
from habitrollup.models.habit import Habit
from habitrollup.services import habits as habit_directory
from habitrollup.services import ledger
from habitrollup.services.completion import evaluate_habit_day, percent_of

# Month views never need more than five positional weeks (31 days).
MONTH_WEEKS = 5


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EvaluatedEntry:
    habit_id: int
    day: date
    completed: bool
    credit_percentage: int


@dataclass
class DailyBucket:
    day: date
    completed: int
    total: int
    percentage: int


@dataclass
class WeeklyBucket:
    week: int          # 1-based
    start: date
    end: date          # inclusive, clipped to the range
    completed: int
    total: int
    percentage: int


@dataclass
class EvaluatedRange:
    start: date
    end: date
    habits: dict[int, Habit]
    entries: list[EvaluatedEntry]


@dataclass
class Rollup:
    start: date
    end: date
    habit_id: Optional[int]
    daily: list[DailyBucket]
    weekly: list[WeeklyBucket]

    @property
    def completed(self) -> int:
        return sum(b.completed for b in self.daily)

    @property
    def total(self) -> int:
        return sum(b.total for b in self.daily)


# ---------------------------------------------------------------------------
# Pure folding
# ---------------------------------------------------------------------------

def iter_days(start: date, end: date) -> Iterable[date]:
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def build_daily_buckets(
    start: date,
    end: date,
    evaluated: Iterable[EvaluatedEntry],
) -> list[DailyBucket]:
    by_day: dict[date, list[EvaluatedEntry]] = defaultdict(list)
    for item in evaluated:
        by_day[ledger.normalize_day(item.day)].append(item)

    buckets = []
    for day in iter_days(start, end):
        items = by_day.get(day, [])
        completed = sum(1 for i in items if i.completed)
        total = len(items)
        buckets.append(DailyBucket(
            day=day,
            completed=completed,
            total=total,
            percentage=percent_of(completed, total),
        ))
    return buckets


def _sum_bucket(week: int, days: Sequence[DailyBucket]) -> WeeklyBucket:
    completed = sum(d.completed for d in days)
    total = sum(d.total for d in days)
    return WeeklyBucket(
        week=week,
        start=days[0].day,
        end=days[-1].day,
        completed=completed,
        total=total,
        percentage=percent_of(completed, total),
    )


def positional_weeks(
    daily: Sequence[DailyBucket],
    max_weeks: Optional[int] = None,
) -> list[WeeklyBucket]:
    """Fixed 7-day windows counted from the first day of the range."""
    weeks = []
    for index, offset in enumerate(range(0, len(daily), 7)):
        if max_weeks is not None and index >= max_weeks:
            break
        weeks.append(_sum_bucket(index + 1, daily[offset:offset + 7]))
    return weeks


def week_start_for(day: date, week_starts_on: int) -> date:
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)


def calendar_weeks(
    daily: Sequence[DailyBucket],
    week_starts_on: int,
) -> list[WeeklyBucket]:
    """One bucket per calendar week the range touches, clipped to the range."""
    groups: dict[date, list[DailyBucket]] = {}
    for bucket in daily:
        groups.setdefault(week_start_for(bucket.day, week_starts_on), []).append(bucket)
    return [
        _sum_bucket(index + 1, days)
        for index, (_, days) in enumerate(sorted(groups.items()))
    ]


def evaluate_entries(
    habits: dict[int, Habit],
    entries: Iterable,
    sub_tasks_by_habit: dict[int, list],
    logs_by_habit_day: dict[tuple[int, date], dict[int, object]],
) -> list[EvaluatedEntry]:
    evaluated = []
    for entry in entries:
        habit = habits.get(entry.habit_id)
        if habit is None:
            continue
        day = ledger.normalize_day(entry.day)
        result = evaluate_habit_day(
            habit,
            entry,
            sub_tasks_by_habit.get(habit.id, []),
            logs_by_habit_day.get((habit.id, day), {}),
        )
        evaluated.append(EvaluatedEntry(
            habit_id=habit.id,
            day=day,
            completed=result.completed,
            credit_percentage=result.credit_percentage,
        ))
    return evaluated


# ---------------------------------------------------------------------------
# Public, store-backed
# ---------------------------------------------------------------------------

def check_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidDateRangeError(start, end)


def evaluate_range(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    habit_id: Optional[int] = None,
) -> EvaluatedRange:
    """Fetch the ledger slice and evaluate every entry in it."""
    check_range(start, end)
    if habit_id is not None:
        habit_list = [habit_directory.get_owned_habit(db, user_id, habit_id)]
    else:
        habit_list = habit_directory.list_active(db, user_id)
    habits = {h.id: h for h in habit_list}

    entries = ledger.query_range(db, user_id, start, end, habit_id)
    with_sub_tasks = [h.id for h in habit_list if h.has_sub_tasks]
    sub_tasks = habit_directory.list_sub_tasks(db, with_sub_tasks)
    logs = ledger.query_sub_task_logs(db, user_id, start, end, with_sub_tasks)

    return EvaluatedRange(
        start=start,
        end=end,
        habits=habits,
        entries=evaluate_entries(habits, entries, sub_tasks, logs),
    )


def aggregate_range(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    habit_id: Optional[int] = None,
    week_starts_on: Optional[int] = None,
    max_weeks: Optional[int] = None,
) -> Rollup:
    """
    Day and week buckets for [start, end]. `habit_id` selects the
    single-habit scope (calendar weeks); otherwise all active habits
    (positional weeks, optionally capped at `max_weeks`).
    """
    evaluated = evaluate_range(db, user_id, start, end, habit_id)
    daily = build_daily_buckets(start, end, evaluated.entries)
    if habit_id is None:
        weekly = positional_weeks(daily, max_weeks)
    else:
        anchor = settings.WEEK_STARTS_ON if week_starts_on is None else week_starts_on
        weekly = calendar_weeks(daily, anchor)
    return Rollup(start=start, end=end, habit_id=habit_id, daily=daily, weekly=weekly)
