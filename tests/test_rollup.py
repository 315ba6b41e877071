"""
Tests for the rollup aggregator: day buckets, positional weeks, calendar
weeks and the store-backed aggregation.

Dates are in isolated windows (2031+) so nothing collides with the
endpoint suites.
"""
from datetime import date, timedelta

import pytest

from habitrollup.core.errors import HabitNotFoundError, InvalidDateRangeError
from habitrollup.models.habit import ProgressRule
from habitrollup.services import ledger
from habitrollup.services.rollup import (
    MONTH_WEEKS,
    EvaluatedEntry,
    aggregate_range,
    build_daily_buckets,
    calendar_weeks,
    positional_weeks,
    week_start_for,
)


def _done(habit_id: int, day: date, completed: bool = True) -> EvaluatedEntry:
    return EvaluatedEntry(habit_id=habit_id, day=day, completed=completed, credit_percentage=100 if completed else 0)


# ---------------------------------------------------------------------------
# Pure folding
# ---------------------------------------------------------------------------

class TestDailyBuckets:
    def test_every_day_present(self):
        start, end = date(2031, 1, 1), date(2031, 1, 31)
        daily = build_daily_buckets(start, end, [])
        assert len(daily) == 31
        assert daily[0].day == start
        assert daily[-1].day == end
        assert all(b.total == 0 and b.percentage == 0 for b in daily)

    def test_counts_and_percentage(self):
        day = date(2031, 1, 2)
        daily = build_daily_buckets(day, day, [_done(1, day), _done(2, day, completed=False), _done(3, day)])
        assert (daily[0].completed, daily[0].total, daily[0].percentage) == (2, 3, 67)

    def test_completed_never_exceeds_total(self):
        start = date(2031, 1, 1)
        items = [_done(h, start + timedelta(days=d), completed=(h + d) % 2 == 0) for h in range(3) for d in range(10)]
        for bucket in build_daily_buckets(start, start + timedelta(days=9), items):
            assert 0 <= bucket.completed <= bucket.total
            assert 0 <= bucket.percentage <= 100


class TestPositionalWeeks:
    def test_first_week_only(self):
        start, end = date(2031, 3, 1), date(2031, 3, 31)
        items = [_done(1, start + timedelta(days=i)) for i in range(7)]
        weeks = positional_weeks(build_daily_buckets(start, end, items), MONTH_WEEKS)
        assert len(weeks) == 5
        assert (weeks[0].week, weeks[0].completed, weeks[0].total, weeks[0].percentage) == (1, 7, 7, 100)
        for w in weeks[1:]:
            assert (w.completed, w.total, w.percentage) == (0, 0, 0)

    def test_week_five_covers_day_29_to_month_end(self):
        start, end = date(2031, 3, 1), date(2031, 3, 31)
        weeks = positional_weeks(build_daily_buckets(start, end, []), MONTH_WEEKS)
        assert weeks[4].start == date(2031, 3, 29)
        assert weeks[4].end == date(2031, 3, 31)

    def test_february_has_four_weeks(self):
        start, end = date(2031, 2, 1), date(2031, 2, 28)
        weeks = positional_weeks(build_daily_buckets(start, end, []), MONTH_WEEKS)
        assert [w.week for w in weeks] == [1, 2, 3, 4]

    def test_windows_ignore_weekday(self):
        # 2031-01-01 is a Wednesday; week 1 still runs Wednesday to Tuesday.
        start = date(2031, 1, 1)
        weeks = positional_weeks(build_daily_buckets(start, start + timedelta(days=13), []))
        assert weeks[0].start == start
        assert weeks[0].end == start + timedelta(days=6)
        assert weeks[1].start == start + timedelta(days=7)

    def test_weekly_sums_equal_daily_sums(self):
        start, end = date(2031, 5, 1), date(2031, 5, 31)
        items = [_done(1 + d % 3, start + timedelta(days=d), completed=d % 4 != 0) for d in range(31)]
        daily = build_daily_buckets(start, end, items)
        weeks = positional_weeks(daily, MONTH_WEEKS)
        assert sum(w.completed for w in weeks) == sum(d.completed for d in daily)
        assert sum(w.total for w in weeks) == sum(d.total for d in daily)


class TestCalendarWeeks:
    def test_week_start_for_monday(self):
        # 2031-01-01 is a Wednesday.
        assert week_start_for(date(2031, 1, 1), 0) == date(2030, 12, 30)

    def test_week_start_for_sunday(self):
        assert week_start_for(date(2031, 1, 1), 6) == date(2030, 12, 29)

    def test_clipped_to_range(self):
        start, end = date(2031, 1, 1), date(2031, 1, 14)
        weeks = calendar_weeks(build_daily_buckets(start, end, []), 0)
        # Wed 1st .. Sun 5th, Mon 6th .. Sun 12th, Mon 13th .. Tue 14th
        assert [(w.start, w.end) for w in weeks] == [
            (date(2031, 1, 1), date(2031, 1, 5)),
            (date(2031, 1, 6), date(2031, 1, 12)),
            (date(2031, 1, 13), date(2031, 1, 14)),
        ]
        assert [w.week for w in weeks] == [1, 2, 3]

    def test_sums_match_daily(self):
        start, end = date(2031, 1, 1), date(2031, 2, 15)
        items = [_done(1, start + timedelta(days=d)) for d in range(0, 46, 3)]
        daily = build_daily_buckets(start, end, items)
        weeks = calendar_weeks(daily, 0)
        assert sum(w.completed for w in weeks) == sum(d.completed for d in daily)


# ---------------------------------------------------------------------------
# Store-backed aggregation
# ---------------------------------------------------------------------------

class TestAggregateRange:
    def test_rejects_inverted_range(self, db, user_id):
        with pytest.raises(InvalidDateRangeError):
            aggregate_range(db, user_id, date(2031, 2, 2), date(2031, 2, 1))

    def test_month_with_first_week_complete(self, db, user_id, make_habit):
        habit = make_habit()
        for d in range(1, 8):
            ledger.upsert_entry(db, user_id, habit.id, date(2031, 7, d))
        rollup = aggregate_range(db, user_id, date(2031, 7, 1), date(2031, 7, 31), max_weeks=MONTH_WEEKS)
        assert len(rollup.daily) == 31
        assert (rollup.weekly[0].completed, rollup.weekly[0].total, rollup.weekly[0].percentage) == (7, 7, 100)
        assert all(w.total == 0 for w in rollup.weekly[1:])
        assert rollup.completed == 7

    def test_archived_habits_excluded_from_all_scope(self, db, user_id, make_habit):
        active = make_habit(name="Active")
        archived = make_habit(name="Old", archived=True)
        day = date(2031, 8, 3)
        ledger.upsert_entry(db, user_id, active.id, day)
        ledger.upsert_entry(db, user_id, archived.id, day)
        rollup = aggregate_range(db, user_id, day, day)
        assert rollup.total == 1

    def test_other_users_entries_invisible(self, db, user_id, make_habit):
        mine = make_habit()
        theirs = make_habit(owner="someone-else")
        day = date(2031, 8, 4)
        ledger.upsert_entry(db, user_id, mine.id, day)
        ledger.upsert_entry(db, "someone-else", theirs.id, day)
        assert aggregate_range(db, user_id, day, day).total == 1

    def test_single_habit_scope_uses_calendar_weeks(self, db, user_id, make_habit):
        habit = make_habit()
        ledger.upsert_entry(db, user_id, habit.id, date(2031, 1, 1))
        ledger.upsert_entry(db, user_id, habit.id, date(2031, 1, 6))
        rollup = aggregate_range(db, user_id, date(2031, 1, 1), date(2031, 1, 14), habit_id=habit.id, week_starts_on=0)
        assert rollup.habit_id == habit.id
        assert [w.completed for w in rollup.weekly] == [1, 1, 0]

    def test_single_habit_of_other_user_is_not_found(self, db, user_id, make_habit):
        theirs = make_habit(owner="someone-else")
        with pytest.raises(HabitNotFoundError):
            aggregate_range(db, user_id, date(2031, 1, 1), date(2031, 1, 2), habit_id=theirs.id)

    def test_sub_task_days_use_current_rule(self, db, user_id, make_habit, make_sub_task):
        habit = make_habit(has_sub_tasks=True, completion_threshold=70)
        tasks = [make_sub_task(habit, title=f"s{i}", position=i) for i in range(4)]
        day = date(2031, 9, 1)
        for st in tasks[:3]:
            ledger.record_sub_task_outcome(db, user_id, habit.id, st.id, day, completed=True)
        assert aggregate_range(db, user_id, day, day).completed == 1

        habit.progress_rule = ProgressRule.ALL
        db.commit()
        rollup = aggregate_range(db, user_id, day, day)
        assert (rollup.completed, rollup.total) == (0, 1)
