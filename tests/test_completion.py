"""
Tests for the completion rule evaluator. Pure functions, no database.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from habitrollup.models.habit import ProgressRule
from habitrollup.services.completion import (
    SubTaskOutcome,
    build_outcomes,
    evaluate_day,
    evaluate_habit_day,
    percent_of,
    resolve_threshold,
)


def _outcomes(done: int, total: int, required: bool = True) -> list[SubTaskOutcome]:
    return [SubTaskOutcome(completed=i < done, required=required) for i in range(total)]


# ---------------------------------------------------------------------------
# percent_of
# ---------------------------------------------------------------------------

class TestPercentOf:
    def test_zero_denominator_is_zero(self):
        assert percent_of(5, 0) == 0

    def test_exact(self):
        assert percent_of(3, 4) == 75

    def test_half_rounds_up(self):
        # 1/8 = 12.5 -> 13
        assert percent_of(1, 8) == 13

    def test_below_half_rounds_down(self):
        # 1/3 = 33.33 -> 33
        assert percent_of(1, 3) == 33

    def test_two_thirds(self):
        assert percent_of(2, 3) == 67

    def test_decimal_points(self):
        assert percent_of(Decimal("2.5"), Decimal("10")) == 25


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

class TestThreshold:
    def test_all_ignores_configured_threshold(self):
        assert resolve_threshold(ProgressRule.ALL, 40) == 100

    def test_missing_threshold_defaults_to_70(self):
        assert resolve_threshold(ProgressRule.PERCENTAGE, None) == 70
        assert resolve_threshold(ProgressRule.POINTS, None) == 70

    def test_configured_threshold_kept(self):
        assert resolve_threshold("PERCENTAGE", 50) == 50


# ---------------------------------------------------------------------------
# ALL
# ---------------------------------------------------------------------------

class TestAllRule:
    def test_all_required_done(self):
        result = evaluate_day(ProgressRule.ALL, None, _outcomes(3, 3))
        assert result.completed is True
        assert result.credit_percentage == 100

    def test_one_required_missing(self):
        result = evaluate_day(ProgressRule.ALL, None, _outcomes(2, 3))
        assert result.completed is False
        assert result.credit_percentage == 67

    def test_optional_sub_tasks_do_not_block(self):
        outcomes = [
            SubTaskOutcome(completed=True, required=True),
            SubTaskOutcome(completed=False, required=False),
        ]
        result = evaluate_day(ProgressRule.ALL, None, outcomes)
        assert result.completed is True
        assert result.credit_percentage == 100
        assert result.total_sub_tasks == 2
        assert result.completed_sub_tasks == 1

    def test_no_required_sub_tasks_is_vacuously_complete(self):
        result = evaluate_day(ProgressRule.ALL, None, [])
        assert result.completed is True
        assert result.credit_percentage == 100


# ---------------------------------------------------------------------------
# PERCENTAGE
# ---------------------------------------------------------------------------

class TestPercentageRule:
    def test_three_of_four_meets_70(self):
        result = evaluate_day(ProgressRule.PERCENTAGE, 70, _outcomes(3, 4))
        assert result.credit_percentage == 75
        assert result.completed is True

    def test_two_of_four_misses_70(self):
        result = evaluate_day(ProgressRule.PERCENTAGE, 70, _outcomes(2, 4))
        assert result.credit_percentage == 50
        assert result.completed is False

    def test_threshold_is_inclusive(self):
        result = evaluate_day(ProgressRule.PERCENTAGE, 50, _outcomes(1, 2))
        assert result.completed is True

    def test_zero_sub_tasks_is_incomplete(self):
        result = evaluate_day(ProgressRule.PERCENTAGE, 70, [])
        assert result.completed is False
        assert result.credit_percentage == 0

    def test_missing_threshold_uses_default(self):
        assert evaluate_day(ProgressRule.PERCENTAGE, None, _outcomes(7, 10)).completed is True
        assert evaluate_day(ProgressRule.PERCENTAGE, None, _outcomes(6, 10)).completed is False


# ---------------------------------------------------------------------------
# POINTS
# ---------------------------------------------------------------------------

class TestPointsRule:
    def test_weighted_points(self):
        outcomes = [
            SubTaskOutcome(completed=True, points=3),
            SubTaskOutcome(completed=False, points=1),
        ]
        result = evaluate_day(ProgressRule.POINTS, 70, outcomes)
        assert result.credit_percentage == 75
        assert result.completed is True
        assert result.total_points == Decimal(4)
        assert result.earned_points == Decimal(3)

    def test_heavy_task_missing(self):
        outcomes = [
            SubTaskOutcome(completed=False, points=3),
            SubTaskOutcome(completed=True, points=1),
        ]
        result = evaluate_day(ProgressRule.POINTS, 70, outcomes)
        assert result.credit_percentage == 25
        assert result.completed is False

    def test_zero_total_points_is_incomplete(self):
        outcomes = [SubTaskOutcome(completed=True, points=0)]
        result = evaluate_day(ProgressRule.POINTS, 70, outcomes)
        assert result.completed is False
        assert result.credit_percentage == 0

    def test_unset_points_count_as_one(self):
        result = evaluate_day(ProgressRule.POINTS, 50, _outcomes(1, 2))
        assert result.total_points == Decimal(2)
        assert result.credit_percentage == 50


# ---------------------------------------------------------------------------
# Habit-level evaluation
# ---------------------------------------------------------------------------

def _habit(**kw):
    base = dict(
        has_sub_tasks=False,
        progress_rule=ProgressRule.PERCENTAGE,
        completion_threshold=None,
    )
    base.update(kw)
    return SimpleNamespace(**base)


class TestEvaluateHabitDay:
    def test_simple_habit_with_entry(self):
        result = evaluate_habit_day(_habit(), SimpleNamespace(completed=True))
        assert result.completed is True
        assert result.credit_percentage == 100

    def test_simple_habit_without_entry(self):
        result = evaluate_habit_day(_habit(), None)
        assert result.completed is False
        assert result.credit_percentage == 0

    def test_sub_task_habit_ignores_stored_flag(self):
        habit = _habit(has_sub_tasks=True, completion_threshold=70)
        sub_tasks = [SimpleNamespace(id=i, weight=1, is_required=True) for i in (1, 2, 3, 4)]
        logs = {1: SimpleNamespace(completed=True, points=None)}
        result = evaluate_habit_day(habit, SimpleNamespace(completed=True), sub_tasks, logs)
        assert result.completed is False
        assert result.credit_percentage == 25

    def test_rule_change_reinterprets_same_outcomes(self):
        sub_tasks = [SimpleNamespace(id=i, weight=1, is_required=True) for i in (1, 2, 3, 4)]
        logs = {i: SimpleNamespace(completed=True, points=None) for i in (1, 2, 3)}
        pct = _habit(has_sub_tasks=True, completion_threshold=70)
        all_rule = _habit(has_sub_tasks=True, progress_rule=ProgressRule.ALL)
        entry = SimpleNamespace(completed=False)
        assert evaluate_habit_day(pct, entry, sub_tasks, logs).completed is True
        assert evaluate_habit_day(all_rule, entry, sub_tasks, logs).completed is False

    def test_sub_task_habit_without_entry_is_incomplete(self):
        habit = _habit(has_sub_tasks=True, progress_rule=ProgressRule.ALL)
        result = evaluate_habit_day(habit, None, [], {})
        assert result.completed is False
        assert result.credit_percentage == 0

    def test_vacuous_all_needs_an_entry(self):
        habit = _habit(has_sub_tasks=True, progress_rule=ProgressRule.ALL)
        optional = [SimpleNamespace(id=1, weight=1, is_required=False)]
        result = evaluate_habit_day(habit, SimpleNamespace(completed=False), optional, {})
        assert result.completed is True
        assert result.credit_percentage == 100


class TestBuildOutcomes:
    def test_missing_log_is_incomplete(self):
        sub_tasks = [SimpleNamespace(id=1, weight=2, is_required=True)]
        outcomes = build_outcomes(sub_tasks, {})
        assert outcomes == [SubTaskOutcome(completed=False, points=2, required=True, sub_task_id=1)]

    def test_log_points_override_weight(self):
        sub_tasks = [SimpleNamespace(id=1, weight=2, is_required=False)]
        logs = {1: SimpleNamespace(completed=True, points=Decimal("1.5"))}
        [outcome] = build_outcomes(sub_tasks, logs)
        assert outcome.points == Decimal("1.5")
        assert outcome.required is False

    @pytest.mark.parametrize("rule", list(ProgressRule))
    def test_every_rule_reports_counts(self, rule):
        result = evaluate_day(rule, 70, _outcomes(1, 2))
        assert result.total_sub_tasks == 2
        assert result.completed_sub_tasks == 1
        assert 0 <= result.credit_percentage <= 100
