"""
Completion rule evaluator.

Decides whether one habit-day counts as complete and what credit (0-100)
it earns. Pure functions only: no session, no writes.

Rules
-----
  ALL         complete iff every required sub-task outcome is complete.
              No required sub-tasks -> vacuously complete, credit 100.
  PERCENTAGE  credit = round(100 * completed / total); complete iff
              credit >= threshold. No sub-tasks -> incomplete, credit 0.
  POINTS      credit = round(100 * earned points / total points); same
              threshold test. Zero total points -> incomplete, credit 0.

Habits without sub-tasks bypass the rules: the entry's own completed flag
decides, credit 100 or 0. A day with no entry is incomplete for every habit.

Public API
----------
percent_of(part, whole)                                   -> int
evaluate_day(rule, threshold, outcomes)                   -> DayEvaluation
evaluate_simple(completed)                                -> DayEvaluation
evaluate_habit_day(habit, entry, sub_tasks, logs_by_task) -> DayEvaluation
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Mapping, Optional, Sequence, Union

from habitrollup.core.config import settings
from habitrollup.models.habit import ProgressRule

Number = Union[int, float, Decimal]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SubTaskOutcome:
    completed: bool
    points: Optional[Number] = None
    required: bool = True
    sub_task_id: Optional[int] = None


@dataclass
class DayEvaluation:
    completed: bool
    credit_percentage: int
    total_sub_tasks: int = 0
    completed_sub_tasks: int = 0
    total_points: Decimal = Decimal(0)
    earned_points: Decimal = Decimal(0)
    outcomes: list[SubTaskOutcome] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

def percent_of(part: Number, whole: Number) -> int:
    """round(100 * part / whole), ties away from zero. whole <= 0 -> 0."""
    whole_d = Decimal(str(whole))
    if whole_d <= 0:
        return 0
    raw = Decimal(100) * Decimal(str(part)) / whole_d
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def resolve_threshold(rule: ProgressRule | str, threshold: Optional[int]) -> int:
    if ProgressRule(rule) is ProgressRule.ALL:
        return 100
    if threshold is None:
        return settings.DEFAULT_COMPLETION_THRESHOLD
    return threshold


def _points(outcome: SubTaskOutcome) -> Decimal:
    if outcome.points is None:
        return Decimal(1)
    return Decimal(str(outcome.points))


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def evaluate_simple(completed: bool) -> DayEvaluation:
    return DayEvaluation(completed=bool(completed), credit_percentage=100 if completed else 0)


def evaluate_day(
    rule: ProgressRule | str,
    threshold: Optional[int],
    outcomes: Iterable[SubTaskOutcome],
) -> DayEvaluation:
    """Apply `rule` to one day's sub-task outcomes."""
    rule = ProgressRule(rule)
    outcomes = list(outcomes)
    total = len(outcomes)
    done = sum(1 for o in outcomes if o.completed)
    total_points = sum((_points(o) for o in outcomes), Decimal(0))
    earned_points = sum((_points(o) for o in outcomes if o.completed), Decimal(0))

    if rule is ProgressRule.ALL:
        required = [o for o in outcomes if o.required]
        if not required:
            credit, completed = 100, True
        else:
            required_done = sum(1 for o in required if o.completed)
            credit = percent_of(required_done, len(required))
            completed = required_done == len(required)
    elif rule is ProgressRule.PERCENTAGE:
        credit = percent_of(done, total)
        completed = total > 0 and credit >= resolve_threshold(rule, threshold)
    else:
        credit = percent_of(earned_points, total_points)
        completed = total_points > 0 and credit >= resolve_threshold(rule, threshold)

    return DayEvaluation(
        completed=completed,
        credit_percentage=credit,
        total_sub_tasks=total,
        completed_sub_tasks=done,
        total_points=total_points,
        earned_points=earned_points,
        outcomes=outcomes,
    )


def build_outcomes(
    sub_tasks: Sequence,
    logs_by_task: Mapping[int, object],
) -> list[SubTaskOutcome]:
    """
    Join the habit's current sub-tasks with the day's logs. A sub-task
    without a log is an incomplete outcome. A log without its own points
    falls back to the sub-task's weight.
    """
    outcomes = []
    for st in sub_tasks:
        log = logs_by_task.get(st.id)
        points = getattr(log, "points", None) if log is not None else None
        outcomes.append(SubTaskOutcome(
            completed=bool(log.completed) if log is not None else False,
            points=points if points is not None else st.weight,
            required=st.is_required,
            sub_task_id=st.id,
        ))
    return outcomes


def evaluate_habit_day(
    habit,
    entry,
    sub_tasks: Sequence = (),
    logs_by_task: Optional[Mapping[int, object]] = None,
) -> DayEvaluation:
    """
    Evaluate one habit-day with the habit's current configuration.
    `entry` is the ledger row for that day or None when absent.
    """
    if entry is None:
        return evaluate_simple(False)
    if not habit.has_sub_tasks:
        return evaluate_simple(entry.completed)
    outcomes = build_outcomes(sub_tasks, logs_by_task or {})
    return evaluate_day(habit.progress_rule, habit.completion_threshold, outcomes)
