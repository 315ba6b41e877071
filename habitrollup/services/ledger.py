"""
Ledger service: the per-day completion records.

State per (habit, user, day) is absent or present. Marking complete is an
idempotent upsert; marking incomplete is a hard delete, and deleting an
absent entry reports deleted=False instead of failing.

Public API
----------
normalize_day(value)                                         -> date
upsert_entry(db, user_id, habit_id, day, ...)                -> HabitEntry
delete_entry(db, user_id, habit_id, day)                     -> bool
query_range(db, user_id, start, end, habit_id=None)          -> list[HabitEntry]
earliest_entry_day(db, user_id)                              -> date | None
mark_complete(db, user_id, habit_id, day, ...)               -> HabitEntry
mark_incomplete(db, user_id, habit_id, day)                  -> bool
record_sub_task_outcome(db, user_id, habit_id, sub_task_id, day, ...) -> OutcomeResult
query_sub_task_logs(db, user_id, start, end, habit_ids)      -> dict[(habit_id, day), dict[sub_task_id, SubTaskLog]]
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from habitrollup.core.errors import SubTasksNotEnabledError
from habitrollup.db.upsert import upsert
from habitrollup.models.entry import HabitEntry
from habitrollup.models.sub_task import SubTaskLog
from habitrollup.services import habits as habit_directory
from habitrollup.services.completion import DayEvaluation, build_outcomes, evaluate_day

logger = logging.getLogger(__name__)

_ENTRY_KEY = ("habit_id", "user_id", "day")
_LOG_KEY = ("sub_task_id", "user_id", "day")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class OutcomeResult:
    log: SubTaskLog
    entry: HabitEntry
    evaluation: DayEvaluation


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_day(value: date | datetime) -> date:
    """Truncate to the calendar day; time-of-day never reaches the ledger."""
    if isinstance(value, datetime):
        return value.date()
    return value


def _encode_context(context: Optional[dict[str, Any]]) -> Optional[str]:
    if not context:
        return None
    return json.dumps(context, sort_keys=True, default=str)


def _fetch_entry(db: Session, user_id: str, habit_id: int, day: date) -> Optional[HabitEntry]:
    return (
        db.query(HabitEntry)
        .populate_existing()
        .filter(
            HabitEntry.habit_id == habit_id,
            HabitEntry.user_id == user_id,
            HabitEntry.day == day,
        )
        .first()
    )


# ---------------------------------------------------------------------------
# Ledger primitives
# ---------------------------------------------------------------------------

def upsert_entry(
    db: Session,
    user_id: str,
    habit_id: int,
    day: date | datetime,
    completed: bool = True,
    notes: Optional[str] = None,
    value: Optional[Decimal] = None,
    context: Optional[dict[str, Any]] = None,
) -> HabitEntry:
    """Write-or-overwrite the single entry for (habit, user, day) and commit."""
    target = normalize_day(day)
    upsert(
        db,
        HabitEntry,
        _ENTRY_KEY,
        {
            "habit_id": habit_id,
            "user_id": user_id,
            "day": target,
            "completed": completed,
            "notes": notes,
            "value": value,
            "context": _encode_context(context),
        },
        extra_updates={"updated_at": func.now()},
    )
    db.commit()
    logger.info(
        "Entry upserted",
        extra={"habit_user_id": user_id, "habit_id": habit_id, "habit_day": str(target)},
    )
    return _fetch_entry(db, user_id, habit_id, target)


def delete_entry(db: Session, user_id: str, habit_id: int, day: date | datetime) -> bool:
    """
    Hard-delete the entry and that day's sub-task outcomes.
    Returns False when there was nothing to delete.
    """
    target = normalize_day(day)
    deleted = (
        db.query(HabitEntry)
        .filter(
            HabitEntry.habit_id == habit_id,
            HabitEntry.user_id == user_id,
            HabitEntry.day == target,
        )
        .delete(synchronize_session=False)
    )
    db.query(SubTaskLog).filter(
        SubTaskLog.habit_id == habit_id,
        SubTaskLog.user_id == user_id,
        SubTaskLog.day == target,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info(
        "Entry deleted" if deleted else "No entry to delete",
        extra={"habit_user_id": user_id, "habit_id": habit_id, "habit_day": str(target)},
    )
    return deleted > 0


def query_range(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    habit_id: Optional[int] = None,
) -> list[HabitEntry]:
    """Entries with day in [start, end], oldest first."""
    q = db.query(HabitEntry).populate_existing().filter(
        HabitEntry.user_id == user_id,
        HabitEntry.day >= normalize_day(start),
        HabitEntry.day <= normalize_day(end),
    )
    if habit_id is not None:
        q = q.filter(HabitEntry.habit_id == habit_id)
    return q.order_by(HabitEntry.day, HabitEntry.habit_id).all()


def earliest_entry_day(db: Session, user_id: str) -> Optional[date]:
    return (
        db.query(func.min(HabitEntry.day))
        .filter(HabitEntry.user_id == user_id)
        .scalar()
    )


def query_sub_task_logs(
    db: Session,
    user_id: str,
    start: date,
    end: date,
    habit_ids: Iterable[int],
) -> dict[tuple[int, date], dict[int, SubTaskLog]]:
    ids = list(habit_ids)
    grouped: dict[tuple[int, date], dict[int, SubTaskLog]] = defaultdict(dict)
    if not ids:
        return grouped
    rows = (
        db.query(SubTaskLog)
        .populate_existing()
        .filter(
            SubTaskLog.user_id == user_id,
            SubTaskLog.habit_id.in_(ids),
            SubTaskLog.day >= start,
            SubTaskLog.day <= end,
        )
        .all()
    )
    for log in rows:
        grouped[(log.habit_id, log.day)][log.sub_task_id] = log
    return grouped


# ---------------------------------------------------------------------------
# Write path (ownership-checked)
# ---------------------------------------------------------------------------

def mark_complete(
    db: Session,
    user_id: str,
    habit_id: int,
    day: date | datetime,
    notes: Optional[str] = None,
    value: Optional[Decimal] = None,
    context: Optional[dict[str, Any]] = None,
) -> HabitEntry:
    habit_directory.get_owned_habit(db, user_id, habit_id)
    return upsert_entry(
        db, user_id, habit_id, day,
        completed=True, notes=notes, value=value, context=context,
    )


def mark_incomplete(db: Session, user_id: str, habit_id: int, day: date | datetime) -> bool:
    habit_directory.get_owned_habit(db, user_id, habit_id)
    return delete_entry(db, user_id, habit_id, day)


def record_sub_task_outcome(
    db: Session,
    user_id: str,
    habit_id: int,
    sub_task_id: int,
    day: date | datetime,
    completed: bool,
    points: Optional[Decimal] = None,
) -> OutcomeResult:
    """
    Upsert one sub-task outcome, re-evaluate the day under the habit's
    current rule and upsert the day's entry with that verdict. The entry
    exists even while the day is incomplete.
    """
    habit = habit_directory.get_owned_habit(db, user_id, habit_id)
    if not habit.has_sub_tasks:
        raise SubTasksNotEnabledError(habit_id)
    habit_directory.get_sub_task(db, habit, sub_task_id)
    target = normalize_day(day)

    upsert(
        db,
        SubTaskLog,
        _LOG_KEY,
        {
            "sub_task_id": sub_task_id,
            "habit_id": habit_id,
            "user_id": user_id,
            "day": target,
            "completed": completed,
            "points": points,
        },
        extra_updates={"updated_at": func.now()},
    )
    db.flush()

    sub_tasks = habit_directory.list_sub_tasks(db, [habit_id])[habit_id]
    logs = query_sub_task_logs(db, user_id, target, target, [habit_id])[(habit_id, target)]
    existing = _fetch_entry(db, user_id, habit_id, target)
    evaluation = evaluate_day(
        habit.progress_rule, habit.completion_threshold, build_outcomes(sub_tasks, logs)
    )

    entry = upsert_entry(
        db, user_id, habit_id, target,
        completed=evaluation.completed,
        notes=existing.notes if existing else None,
        value=existing.value if existing else None,
        context=json.loads(existing.context) if existing and existing.context else None,
    )
    return OutcomeResult(log=logs[sub_task_id], entry=entry, evaluation=evaluation)
