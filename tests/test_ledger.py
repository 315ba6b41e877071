"""
Tests for the ledger service: idempotent upserts, hard deletes and
sub-task outcome recording.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from habitrollup.core.errors import (
    HabitNotFoundError,
    SubTaskNotFoundError,
    SubTasksNotEnabledError,
)
from habitrollup.models import HabitEntry, SubTaskLog
from habitrollup.models.habit import ProgressRule
from habitrollup.services import ledger
from habitrollup.services.rollup import aggregate_range


def _count_entries(db, user_id, habit_id) -> int:
    return db.query(HabitEntry).filter(HabitEntry.user_id == user_id, HabitEntry.habit_id == habit_id).count()


class TestNormalizeDay:
    def test_datetime_truncated(self):
        assert ledger.normalize_day(datetime(2032, 3, 1, 23, 59)) == date(2032, 3, 1)

    def test_date_untouched(self):
        assert ledger.normalize_day(date(2032, 3, 1)) == date(2032, 3, 1)


class TestMarkComplete:
    def test_creates_entry(self, db, user_id, make_habit):
        habit = make_habit()
        entry = ledger.mark_complete(db, user_id, habit.id, date(2032, 1, 1))
        assert entry.id > 0
        assert entry.completed is True
        assert entry.day == date(2032, 1, 1)

    def test_repeat_is_idempotent(self, db, user_id, make_habit):
        habit = make_habit()
        first = ledger.mark_complete(db, user_id, habit.id, date(2032, 1, 2))
        second = ledger.mark_complete(db, user_id, habit.id, date(2032, 1, 2))
        assert first.id == second.id
        assert _count_entries(db, user_id, habit.id) == 1

    def test_timestamp_and_date_hit_same_entry(self, db, user_id, make_habit):
        habit = make_habit()
        ledger.mark_complete(db, user_id, habit.id, datetime(2032, 1, 3, 8, 0))
        ledger.mark_complete(db, user_id, habit.id, date(2032, 1, 3))
        assert _count_entries(db, user_id, habit.id) == 1

    def test_overwrites_payload(self, db, user_id, make_habit):
        habit = make_habit()
        ledger.mark_complete(db, user_id, habit.id, date(2032, 1, 4), notes="first", value=Decimal("2"))
        entry = ledger.mark_complete(
            db, user_id, habit.id, date(2032, 1, 4),
            notes="second", context={"mood": "good"},
        )
        assert entry.notes == "second"
        assert entry.value is None
        assert entry.context == '{"mood": "good"}'

    def test_unknown_habit_rejected(self, db, user_id):
        with pytest.raises(HabitNotFoundError):
            ledger.mark_complete(db, user_id, 999_999, date(2032, 1, 1))

    def test_other_users_habit_rejected(self, db, user_id, make_habit):
        theirs = make_habit(owner="someone-else")
        with pytest.raises(HabitNotFoundError):
            ledger.mark_complete(db, user_id, theirs.id, date(2032, 1, 1))
        assert _count_entries(db, user_id, theirs.id) == 0


class TestMarkIncomplete:
    def test_delete_existing(self, db, user_id, make_habit):
        habit = make_habit()
        ledger.mark_complete(db, user_id, habit.id, date(2032, 2, 1))
        assert ledger.mark_incomplete(db, user_id, habit.id, date(2032, 2, 1)) is True
        assert _count_entries(db, user_id, habit.id) == 0

    def test_delete_absent_is_not_an_error(self, db, user_id, make_habit):
        habit = make_habit()
        assert ledger.mark_incomplete(db, user_id, habit.id, date(2032, 2, 2)) is False

    def test_delete_decrements_day_total(self, db, user_id, make_habit):
        a, b = make_habit(name="A"), make_habit(name="B")
        day = date(2032, 2, 3)
        ledger.mark_complete(db, user_id, a.id, day)
        ledger.mark_complete(db, user_id, b.id, day)
        assert aggregate_range(db, user_id, day, day).daily[0].total == 2
        ledger.mark_incomplete(db, user_id, a.id, day)
        bucket = aggregate_range(db, user_id, day, day).daily[0]
        assert (bucket.completed, bucket.total) == (1, 1)

    def test_delete_removes_day_sub_task_logs(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True)
        st = make_sub_task(habit)
        day = date(2032, 2, 4)
        ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=True)
        assert ledger.mark_incomplete(db, user_id, habit.id, day) is True
        assert db.query(SubTaskLog).filter(SubTaskLog.sub_task_id == st.id).count() == 0


class TestQueryRange:
    def test_ordered_and_bounded(self, db, user_id, make_habit):
        habit = make_habit()
        for d in (5, 1, 3, 9):
            ledger.upsert_entry(db, user_id, habit.id, date(2032, 3, d))
        rows = ledger.query_range(db, user_id, date(2032, 3, 1), date(2032, 3, 5))
        assert [r.day.day for r in rows] == [1, 3, 5]

    def test_earliest_entry_day(self, db, user_id, make_habit):
        habit = make_habit()
        assert ledger.earliest_entry_day(db, user_id) is None
        ledger.upsert_entry(db, user_id, habit.id, date(2032, 3, 20))
        ledger.upsert_entry(db, user_id, habit.id, date(2032, 3, 10))
        assert ledger.earliest_entry_day(db, user_id) == date(2032, 3, 10)


class TestRecordSubTaskOutcome:
    def test_entry_tracks_verdict(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True, completion_threshold=70)
        tasks = [make_sub_task(habit, title=f"s{i}", position=i) for i in range(4)]
        day = date(2032, 4, 1)

        result = ledger.record_sub_task_outcome(db, user_id, habit.id, tasks[0].id, day, completed=True)
        assert result.entry.completed is False
        assert result.evaluation.credit_percentage == 25

        for st in tasks[1:3]:
            result = ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=True)
        assert result.entry.completed is True
        assert result.evaluation.credit_percentage == 75
        assert _count_entries(db, user_id, habit.id) == 1

    def test_outcome_upsert_is_idempotent(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True)
        st = make_sub_task(habit)
        day = date(2032, 4, 2)
        ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=True)
        result = ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=False)
        assert result.log.completed is False
        assert db.query(SubTaskLog).filter(SubTaskLog.sub_task_id == st.id).count() == 1

    def test_keeps_entry_notes(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True, progress_rule=ProgressRule.ALL)
        st = make_sub_task(habit)
        day = date(2032, 4, 3)
        ledger.upsert_entry(db, user_id, habit.id, day, completed=False, notes="morning")
        result = ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=True)
        assert result.entry.completed is True
        assert result.entry.notes == "morning"

    def test_points_override_weight(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True, progress_rule=ProgressRule.POINTS, completion_threshold=50)
        heavy = make_sub_task(habit, title="heavy", weight=3)
        make_sub_task(habit, title="light", weight=1, position=1)
        result = ledger.record_sub_task_outcome(
            db, user_id, habit.id, heavy.id, date(2032, 4, 4), completed=True, points=Decimal("1"),
        )
        # 1 of (1 + 1) points
        assert result.evaluation.credit_percentage == 50
        assert result.entry.completed is True

    def test_habit_without_sub_tasks_rejected(self, db, user_id, make_habit):
        habit = make_habit()
        with pytest.raises(SubTasksNotEnabledError):
            ledger.record_sub_task_outcome(db, user_id, habit.id, 1, date(2032, 4, 5), completed=True)

    def test_foreign_sub_task_rejected(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True)
        other = make_habit(has_sub_tasks=True, name="Other")
        st = make_sub_task(other)
        with pytest.raises(SubTaskNotFoundError):
            ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, date(2032, 4, 6), completed=True)
