"""
Entries router — the ledger write path.

POST   /entries            — mark complete (idempotent upsert)
DELETE /entries            — mark incomplete (hard delete, never 404 for a missing entry)
GET    /entries            — entries in a date range
PUT    /entries/subtasks   — record a sub-task outcome and re-evaluate the day
"""
from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from habitrollup.core.identity import current_user_id
from habitrollup.db.base import get_db
from habitrollup.models.entry import HabitEntry
from habitrollup.schemas.common import CalendarDay, ErrorResponse
from habitrollup.schemas.entries import (
    DayEvaluationResponse,
    EntryDeleteResponse,
    EntryListResponse,
    EntryResponse,
    EntryUpsertRequest,
    SubTaskOutcomeItem,
    SubTaskOutcomeRequest,
    SubTaskOutcomeResponse,
)
from habitrollup.services import ledger
from habitrollup.services.completion import DayEvaluation
from habitrollup.services.rollup import check_range

router = APIRouter(prefix="/entries", tags=["entries"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def entry_to_response(entry: HabitEntry) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        habit_id=entry.habit_id,
        day=str(entry.day),
        completed=entry.completed,
        notes=entry.notes,
        value=str(entry.value) if entry.value is not None else None,
        context=json.loads(entry.context) if entry.context else None,
    )


def evaluation_to_response(habit_id: int, day, result: DayEvaluation) -> DayEvaluationResponse:
    return DayEvaluationResponse(
        habit_id=habit_id,
        day=str(day),
        completed=result.completed,
        credit_percentage=result.credit_percentage,
        total_sub_tasks=result.total_sub_tasks,
        completed_sub_tasks=result.completed_sub_tasks,
        total_points=str(result.total_points),
        earned_points=str(result.earned_points),
        breakdown=[
            SubTaskOutcomeItem(
                sub_task_id=o.sub_task_id,
                completed=o.completed,
                points=str(o.points if o.points is not None else 1),
                required=o.required,
            )
            for o in result.outcomes
        ],
    )


# ---------------------------------------------------------------------------
# POST /entries
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=EntryResponse,
    summary="Mark a habit complete for a day",
    responses={
        404: {"model": ErrorResponse, "description": "Habit not found for this user."},
        422: {"model": ErrorResponse, "description": "Missing habit id or day."},
    },
)
def mark_complete(
    payload: EntryUpsertRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Create or overwrite the single entry for (habit, user, day) with
    `completed = true`. Sending the same request twice leaves exactly one
    entry.
    """
    entry = ledger.mark_complete(
        db,
        user_id,
        payload.habit_id,
        payload.day,
        notes=payload.notes,
        value=payload.value,
        context=payload.context,
    )
    return entry_to_response(entry)


# ---------------------------------------------------------------------------
# DELETE /entries
# ---------------------------------------------------------------------------

@router.delete(
    "",
    response_model=EntryDeleteResponse,
    summary="Mark a habit incomplete for a day",
    responses={404: {"model": ErrorResponse, "description": "Habit not found for this user."}},
)
def mark_incomplete(
    habit_id: int = Query(gt=0),
    day: CalendarDay = Query(examples=["2026-03-01"]),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Delete the entry for (habit, user, day). An absent entry is not an
    error: the response reports `deleted: false`.
    """
    deleted = ledger.mark_incomplete(db, user_id, habit_id, day)
    return EntryDeleteResponse(habit_id=habit_id, day=str(day), deleted=deleted)


# ---------------------------------------------------------------------------
# GET /entries
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=EntryListResponse,
    summary="Entries in a date range, oldest first",
)
def list_entries(
    start: CalendarDay = Query(examples=["2026-03-01"]),
    end: CalendarDay = Query(examples=["2026-03-31"]),
    habit_id: Optional[int] = Query(default=None, gt=0),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    check_range(start, end)
    items = ledger.query_range(db, user_id, start, end, habit_id)
    return EntryListResponse(
        start=str(start),
        end=str(end),
        total=len(items),
        items=[entry_to_response(e) for e in items],
    )


# ---------------------------------------------------------------------------
# PUT /entries/subtasks
# ---------------------------------------------------------------------------

@router.put(
    "/subtasks",
    response_model=SubTaskOutcomeResponse,
    summary="Record a sub-task outcome for a day",
    responses={
        404: {"model": ErrorResponse, "description": "Habit or sub-task not found."},
        409: {"model": ErrorResponse, "description": "Habit does not track sub-tasks."},
    },
)
def record_sub_task(
    payload: SubTaskOutcomeRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Upsert the outcome, then re-evaluate the day under the habit's current
    progress rule. The day's entry is kept even while incomplete.
    """
    result = ledger.record_sub_task_outcome(
        db,
        user_id,
        payload.habit_id,
        payload.sub_task_id,
        payload.day,
        completed=payload.completed,
        points=payload.points,
    )
    return SubTaskOutcomeResponse(
        entry=entry_to_response(result.entry),
        evaluation=evaluation_to_response(payload.habit_id, payload.day, result.evaluation),
    )
