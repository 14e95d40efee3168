from datetime import date, datetime, timedelta, timezone

import pytest

from calendar_days import CompletionLedger
from models import Habit, parse_recurrence
from streaks import (
    HISTORY_DAYS,
    LOOKBACK_DAYS,
    compute_streak,
    current_streak,
    is_completed_for_date,
    longest_streak,
    streak_summary,
    today_for,
)

from conftest import EVERY_DAY, MWF, utc_noon

MONDAY = date(2025, 3, 3)


def ledger_of(*days):
    return CompletionLedger(days, "UTC")


class TestScenarios:
    def test_consecutive_due_days(self):
        ledger = ledger_of(
            date(2025, 3, 3), date(2025, 2, 28), date(2025, 2, 26), date(2025, 2, 24), date(2025, 2, 21)
        )
        assert compute_streak(MONDAY, parse_recurrence(MWF), ledger) == 5

    def test_missed_due_day_ends_the_walk(self):
        ledger = ledger_of(date(2025, 3, 3), date(2025, 2, 28))
        assert compute_streak(MONDAY, parse_recurrence(MWF), ledger) == 2

    def test_due_today_not_completed_is_zero(self):
        ledger = ledger_of(date(2025, 2, 24), date(2025, 2, 17))
        assert compute_streak(MONDAY, parse_recurrence(["monday"]), ledger) == 0

    def test_every_day_stops_at_missing_friday(self):
        ledger = ledger_of(
            date(2025, 3, 3), date(2025, 3, 2), date(2025, 3, 1), date(2025, 2, 27), date(2025, 2, 26)
        )
        assert compute_streak(MONDAY, parse_recurrence(EVERY_DAY), ledger) == 3

    def test_empty_recurrence_counts_bonus_days_only(self):
        ledger = ledger_of(date(2025, 3, 3), date(2025, 3, 2), date(2025, 2, 28))
        assert compute_streak(MONDAY, (), ledger) == 3
        assert compute_streak(MONDAY, (), ledger_of(date(2025, 3, 1), date(2025, 2, 20))) == 2

    def test_completion_uses_habit_timezone(self):
        ledger = CompletionLedger.build(["2025-03-02T23:30:00Z"], "America/Chicago")
        assert ledger.contains(date(2025, 3, 2))
        assert not ledger.contains(date(2025, 3, 3))


class TestProperties:
    def test_empty_ledger_is_zero(self):
        assert compute_streak(MONDAY, parse_recurrence(MWF), ledger_of()) == 0
        assert compute_streak(MONDAY, (), ledger_of()) == 0

    def test_deterministic(self):
        ledger = ledger_of(date(2025, 3, 3), date(2025, 2, 28), date(2025, 2, 26))
        rule = parse_recurrence(MWF)
        assert len({compute_streak(MONDAY, rule, ledger) for _ in range(5)}) == 1

    def test_completed_today_is_at_least_one(self):
        ledger = ledger_of(date(2025, 3, 3))
        assert compute_streak(MONDAY, parse_recurrence(["monday"]), ledger) == 1

    def test_not_due_today_is_not_force_broken(self):
        # Tuesday, habit due Monday only, done yesterday
        tuesday = date(2025, 3, 4)
        ledger = ledger_of(date(2025, 3, 3), date(2025, 2, 24))
        assert compute_streak(tuesday, parse_recurrence(["monday"]), ledger) == 2

    @pytest.mark.parametrize("bonus", [date(2025, 3, 1), date(2025, 2, 25), date(2025, 2, 27), date(2025, 3, 4)])
    def test_bonus_completion_never_decreases_streak(self, bonus):
        rule = parse_recurrence(MWF)
        base = [date(2025, 3, 3), date(2025, 2, 28), date(2025, 2, 26)]
        before = compute_streak(MONDAY, rule, ledger_of(*base))
        after = compute_streak(MONDAY, rule, ledger_of(*base, bonus))
        assert after >= before

    def test_bonus_days_count_between_due_days(self):
        rule = parse_recurrence(MWF)
        ledger = ledger_of(date(2025, 3, 3), date(2025, 3, 1), date(2025, 2, 28))
        assert compute_streak(MONDAY, rule, ledger) == 3

    def test_lookback_is_capped(self):
        rule = parse_recurrence(EVERY_DAY)
        ledger = ledger_of(*(MONDAY - timedelta(days=i) for i in range(500)))
        assert compute_streak(MONDAY, rule, ledger) == LOOKBACK_DAYS + 1

    def test_non_negative(self):
        rule = parse_recurrence(MWF)
        for offset in range(14):
            today = MONDAY - timedelta(days=offset)
            assert compute_streak(today, rule, ledger_of(date(2025, 2, 26))) >= 0


class TestLongestStreak:
    def test_best_run_in_history(self):
        rule = parse_recurrence(MWF)
        ledger = ledger_of(
            date(2025, 2, 10), date(2025, 2, 12), date(2025, 2, 14),
            date(2025, 2, 19), date(2025, 2, 21),
        )
        assert longest_streak(rule, ledger, MONDAY) == 3
        assert compute_streak(MONDAY, rule, ledger) == 0

    def test_bonus_days_extend_runs(self):
        rule = parse_recurrence(MWF)
        ledger = ledger_of(date(2025, 2, 10), date(2025, 2, 12), date(2025, 2, 14), date(2025, 2, 15))
        assert longest_streak(rule, ledger, date(2025, 2, 16)) == 4

    def test_open_today_does_not_end_run(self):
        rule = parse_recurrence(EVERY_DAY)
        ledger = ledger_of(date(2025, 3, 1), date(2025, 3, 2))
        assert longest_streak(rule, ledger, MONDAY) == 2

    def test_future_completions_ignored_and_empty(self):
        rule = parse_recurrence(EVERY_DAY)
        assert longest_streak(rule, ledger_of(date(2025, 3, 10)), MONDAY) == 0
        assert longest_streak(rule, ledger_of()) == 0

    def test_without_today_uses_latest_completion(self):
        rule = parse_recurrence(EVERY_DAY)
        ledger = ledger_of(date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 5))
        assert longest_streak(rule, ledger) == 3


class TestHabitHelpers:
    def make_habit(self, **kwargs):
        defaults = dict(id=1, name="Run", frequency=MWF, user_timezone="America/Chicago")
        defaults.update(kwargs)
        return Habit(**defaults)

    def test_today_is_in_habit_timezone(self):
        now = datetime(2025, 3, 3, 3, 0, tzinfo=timezone.utc)
        assert today_for(self.make_habit(), now) == date(2025, 3, 2)
        assert today_for(self.make_habit(user_timezone=""), now) == date(2025, 3, 3)

    def test_current_streak_depends_on_local_today(self):
        now = datetime(2025, 3, 3, 3, 0, tzinfo=timezone.utc)
        completions = [utc_noon(date(2025, 2, 28))]
        chicago = self.make_habit(completed_dates=completions)
        utc = self.make_habit(completed_dates=completions, user_timezone="UTC")
        # Sunday evening in Chicago: nothing due yet, Friday counts
        assert current_streak(chicago, now) == 1
        # Already Monday in UTC: due and not done
        assert current_streak(utc, now) == 0

    def test_is_completed_for_date(self):
        habit = self.make_habit(
            completed_dates=[datetime(2025, 3, 2, 23, 30, tzinfo=timezone.utc)]
        )
        assert is_completed_for_date(habit, date(2025, 3, 2))
        assert not is_completed_for_date(habit, date(2025, 3, 3))
        assert not is_completed_for_date(self.make_habit(), date(2025, 3, 2))

    def test_streak_summary(self):
        habit = self.make_habit(
            user_timezone="UTC",
            completed_dates=[utc_noon(date(2025, 3, 3)), utc_noon(date(2025, 2, 28))],
        )
        summary = streak_summary(habit, datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc))
        assert summary == {
            "today": "2025-03-03",
            "current_streak": 2,
            "longest_streak": 2,
            "due_today": True,
            "completed_today": True,
        }

    def test_habit_is_not_mutated(self):
        habit = self.make_habit(completed_dates=[utc_noon(date(2025, 2, 28))], streak=7)
        current_streak(habit, datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc))
        assert habit.streak == 7
        assert len(habit.completed_dates) == 1


class TestDateRangeEdges:
    def test_completed_on_first_representable_day(self):
        assert compute_streak(date.min, (), ledger_of(date.min)) == 1

    def test_walk_stops_at_first_representable_day(self):
        ledger = ledger_of(date.min + timedelta(days=3))
        assert compute_streak(date.min, (), ledger) == 0

    def test_longest_streak_on_last_representable_day(self):
        assert longest_streak(parse_recurrence(["monday"]), ledger_of(date.max)) == 1
        assert longest_streak(parse_recurrence(EVERY_DAY), ledger_of(date.max), date.max) == 1

    def test_longest_streak_scan_is_bounded(self):
        rule = parse_recurrence(EVERY_DAY)
        ledger = ledger_of(*(MONDAY - timedelta(days=i) for i in range(HISTORY_DAYS + 10)))
        assert longest_streak(rule, ledger, MONDAY) == HISTORY_DAYS
        # ancient completions fall outside the scanned window
        assert longest_streak(rule, ledger_of(date(1, 1, 1), MONDAY), MONDAY) == 1
