"""
Habit directory: habits and their sub-task definitions, scoped by user.

Public API
----------
get_owned_habit(db, user_id, habit_id)         -> Habit       (404 if not the user's)
list_active(db, user_id)                       -> list[Habit]
list_habits(db, user_id, archived)             -> list[Habit]
create_habit(db, user_id, fields)              -> Habit
update_habit(db, user_id, habit_id, fields)    -> Habit
archive_habit(db, user_id, habit_id)           -> Habit
list_sub_tasks(db, habit_ids)                  -> dict[habit_id, list[SubTask]]
create_sub_task(db, user_id, habit_id, fields) -> SubTask
delete_sub_task(db, user_id, habit_id, sub_task_id) -> None
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Mapping

from sqlalchemy.orm import Session

from habitrollup.core.config import settings
from habitrollup.core.errors import HabitNotFoundError, SubTaskNotFoundError
from habitrollup.models.habit import Habit
from habitrollup.models.sub_task import SubTask, SubTaskLog

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {
    "name", "emoji", "color", "frequency", "weekly_target", "monthly_target",
    "archived", "has_sub_tasks", "progress_rule", "completion_threshold",
}
# Fields a client may clear by sending null.
_NULLABLE_FIELDS = {"color", "weekly_target", "monthly_target", "completion_threshold"}


def get_owned_habit(db: Session, user_id: str, habit_id: int) -> Habit:
    habit = (
        db.query(Habit)
        .filter(Habit.id == habit_id, Habit.user_id == user_id)
        .first()
    )
    if habit is None:
        raise HabitNotFoundError(habit_id)
    return habit


def list_active(db: Session, user_id: str) -> list[Habit]:
    """Non-archived habits with their targets and rule configuration."""
    return list_habits(db, user_id, archived=False)


def list_habits(db: Session, user_id: str, archived: bool = False) -> list[Habit]:
    return (
        db.query(Habit)
        .filter(Habit.user_id == user_id, Habit.archived == archived)
        .order_by(Habit.id)
        .all()
    )


def create_habit(db: Session, user_id: str, fields: Mapping[str, Any]) -> Habit:
    values = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS and v is not None}
    values.setdefault("weekly_target", settings.DEFAULT_WEEKLY_TARGET)
    values.setdefault("monthly_target", settings.DEFAULT_MONTHLY_TARGET)
    habit = Habit(user_id=user_id, **values)
    db.add(habit)
    db.commit()
    db.refresh(habit)
    logger.info("Habit created", extra={"habit_user_id": user_id, "habit_id": habit.id})
    return habit


def update_habit(
    db: Session, user_id: str, habit_id: int, fields: Mapping[str, Any]
) -> Habit:
    """Apply a partial edit. Past entries are re-read under the new rule."""
    habit = get_owned_habit(db, user_id, habit_id)
    for name, value in fields.items():
        if name not in _EDITABLE_FIELDS:
            continue
        if value is None and name not in _NULLABLE_FIELDS:
            continue
        setattr(habit, name, value)
    db.commit()
    db.refresh(habit)
    return habit


def archive_habit(db: Session, user_id: str, habit_id: int) -> Habit:
    return update_habit(db, user_id, habit_id, {"archived": True})


# ---------------------------------------------------------------------------
# Sub-tasks
# ---------------------------------------------------------------------------

def list_sub_tasks(db: Session, habit_ids: Iterable[int]) -> dict[int, list[SubTask]]:
    ids = list(habit_ids)
    grouped: dict[int, list[SubTask]] = defaultdict(list)
    if not ids:
        return grouped
    rows = (
        db.query(SubTask)
        .filter(SubTask.habit_id.in_(ids))
        .order_by(SubTask.habit_id, SubTask.position, SubTask.id)
        .all()
    )
    for st in rows:
        grouped[st.habit_id].append(st)
    return grouped


def get_sub_task(db: Session, habit: Habit, sub_task_id: int) -> SubTask:
    sub_task = (
        db.query(SubTask)
        .filter(SubTask.id == sub_task_id, SubTask.habit_id == habit.id)
        .first()
    )
    if sub_task is None:
        raise SubTaskNotFoundError(sub_task_id, habit.id)
    return sub_task


def create_sub_task(
    db: Session, user_id: str, habit_id: int, fields: Mapping[str, Any]
) -> SubTask:
    habit = get_owned_habit(db, user_id, habit_id)
    sub_task = SubTask(habit_id=habit.id, **fields)
    db.add(sub_task)
    db.commit()
    db.refresh(sub_task)
    return sub_task


def delete_sub_task(db: Session, user_id: str, habit_id: int, sub_task_id: int) -> None:
    """Remove a sub-task and its outcomes. Later evaluations simply omit it."""
    habit = get_owned_habit(db, user_id, habit_id)
    sub_task = get_sub_task(db, habit, sub_task_id)
    db.query(SubTaskLog).filter(SubTaskLog.sub_task_id == sub_task.id).delete(
        synchronize_session=False
    )
    db.delete(sub_task)
    db.commit()
