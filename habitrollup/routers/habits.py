"""
Habits router — the habit directory.

POST   /habits                               — create
GET    /habits                               — list (active, or archived=true)
PATCH  /habits/{habit_id}                    — edit configuration / targets
DELETE /habits/{habit_id}                    — archive (soft delete)
GET    /habits/{habit_id}/subtasks           — list sub-tasks
POST   /habits/{habit_id}/subtasks           — add a sub-task
DELETE /habits/{habit_id}/subtasks/{id}      — remove a sub-task
GET    /habits/{habit_id}/evaluation         — one day's verdict under the current rule
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from habitrollup.core.identity import current_user_id
from habitrollup.db.base import get_db
from habitrollup.routers.entries import evaluation_to_response
from habitrollup.schemas.common import CalendarDay, ErrorResponse
from habitrollup.schemas.entries import DayEvaluationResponse
from habitrollup.schemas.habits import (
    HabitCreateRequest,
    HabitResponse,
    HabitUpdateRequest,
    SubTaskCreateRequest,
    SubTaskResponse,
)
from habitrollup.services import habits as habit_directory
from habitrollup.services import ledger
from habitrollup.services.completion import evaluate_habit_day

router = APIRouter(prefix="/habits", tags=["habits"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Habit not found for this user."}}


@router.post(
    "",
    response_model=HabitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a habit",
)
def create_habit(
    payload: HabitCreateRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return habit_directory.create_habit(db, user_id, payload.model_dump())


@router.get("", response_model=list[HabitResponse], summary="List habits")
def list_habits(
    archived: bool = Query(default=False, description="List archived habits instead."),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return habit_directory.list_habits(db, user_id, archived=archived)


@router.patch(
    "/{habit_id}",
    response_model=HabitResponse,
    summary="Edit a habit",
    responses=_NOT_FOUND,
)
def update_habit(
    habit_id: int,
    payload: HabitUpdateRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Only fields present in the body change. A new progress rule applies to
    every later evaluation, past days included.
    """
    return habit_directory.update_habit(
        db, user_id, habit_id, payload.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{habit_id}",
    response_model=HabitResponse,
    summary="Archive a habit",
    responses=_NOT_FOUND,
)
def archive_habit(
    habit_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Soft delete: entries stay in the ledger, the habit leaves active views."""
    return habit_directory.archive_habit(db, user_id, habit_id)


# ---------------------------------------------------------------------------
# Sub-tasks
# ---------------------------------------------------------------------------

@router.get(
    "/{habit_id}/subtasks",
    response_model=list[SubTaskResponse],
    summary="List a habit's sub-tasks",
    responses=_NOT_FOUND,
)
def list_sub_tasks(
    habit_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    habit = habit_directory.get_owned_habit(db, user_id, habit_id)
    return habit_directory.list_sub_tasks(db, [habit.id])[habit.id]


@router.post(
    "/{habit_id}/subtasks",
    response_model=SubTaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a sub-task",
    responses=_NOT_FOUND,
)
def create_sub_task(
    habit_id: int,
    payload: SubTaskCreateRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return habit_directory.create_sub_task(db, user_id, habit_id, payload.model_dump())


@router.delete(
    "/{habit_id}/subtasks/{sub_task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a sub-task and its outcomes",
    responses=_NOT_FOUND,
)
def delete_sub_task(
    habit_id: int,
    sub_task_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    habit_directory.delete_sub_task(db, user_id, habit_id, sub_task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

@router.get(
    "/{habit_id}/evaluation",
    response_model=DayEvaluationResponse,
    summary="Evaluate one habit-day under the current progress rule",
    responses=_NOT_FOUND,
)
def evaluate_day(
    habit_id: int,
    day: Optional[CalendarDay] = Query(default=None, description="Defaults to today (UTC)."),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Recompute the verdict from the ledger with a per-sub-task breakdown.
    Nothing is written.
    """
    habit = habit_directory.get_owned_habit(db, user_id, habit_id)
    target = day or datetime.now(tz=timezone.utc).date()
    entries = ledger.query_range(db, user_id, target, target, habit.id)
    sub_tasks = habit_directory.list_sub_tasks(db, [habit.id])[habit.id]
    logs = ledger.query_sub_task_logs(db, user_id, target, target, [habit.id])[(habit.id, target)]
    result = evaluate_habit_day(habit, entries[0] if entries else None, sub_tasks, logs)
    return evaluation_to_response(habit.id, target, result)
