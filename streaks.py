"""Current and longest streaks for habits on a weekly recurrence rule."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from calendar_days import CompletionLedger, normalize
from models import Habit, Weekday, is_due

ONE_DAY = timedelta(days=1)

# Safety cap on the backward walk, not a business rule: streaks longer than
# this are reported as the scanned window only.
LOOKBACK_DAYS = 365

# Bound on the forward scan for the longest streak (about ten years).
HISTORY_DAYS = 3660


def compute_streak(today: date, recurrence: Iterable[Weekday], ledger: CompletionLedger) -> int:
    """
    Current streak ending at (or just before) `today`.

    A habit due today but not yet completed has no current streak. Otherwise
    walk backwards: completed days (due or bonus) extend the streak, non-due
    empty days are skipped, and the first missed due day ends it.
    """
    if not ledger:
        return 0

    recurrence = frozenset(recurrence)
    completed_today = today in ledger
    if is_due(today, recurrence) and not completed_today:
        return 0

    streak = 1 if completed_today else 0
    cursor = today
    if completed_today:
        if today == date.min:
            return streak
        cursor = today - ONE_DAY
    for _ in range(LOOKBACK_DAYS):
        if cursor in ledger:
            streak += 1
        elif is_due(cursor, recurrence):
            break
        if cursor == date.min:
            break
        cursor -= ONE_DAY
    return streak


def longest_streak(
    recurrence: Iterable[Weekday], ledger: CompletionLedger, today: Optional[date] = None
) -> int:
    """
    Best run in the history, under the same rules as compute_streak.

    Walks forward from the earliest completion (at most HISTORY_DAYS back)
    to `today`, or to the latest completion. Completions after `today` are
    ignored, and an unfinished due day *today* does not end a run.
    """
    if not ledger:
        return 0

    recurrence = frozenset(recurrence)
    days = list(ledger)
    end = days[-1] if today is None else today
    window_start = date.fromordinal(max(1, end.toordinal() - HISTORY_DAYS + 1))
    longest = run = 0
    cursor = max(days[0], window_start)
    while cursor <= end:
        if cursor in ledger:
            run += 1
            longest = max(longest, run)
        elif is_due(cursor, recurrence) and cursor != today:
            run = 0
        if cursor == date.max:
            break
        cursor += ONE_DAY
    return longest


# ---------- Habit-level helpers ----------
def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_ledger(habit: Habit) -> CompletionLedger:
    return CompletionLedger.build(habit.completed_dates, habit.user_timezone)


def today_for(habit: Habit, now: Optional[datetime] = None) -> date:
    """Calendar day of `now` in the habit's own timezone."""
    return normalize(now or _utcnow(), habit.user_timezone)


def current_streak(habit: Habit, now: Optional[datetime] = None) -> int:
    return compute_streak(today_for(habit, now), habit.recurrence, build_ledger(habit))


def is_completed_for_date(habit: Habit, instant: Union[datetime, date]) -> bool:
    return build_ledger(habit).is_completed_for_date(instant)


def streak_summary(habit: Habit, now: Optional[datetime] = None) -> dict:
    """Everything a caller usually wants about a habit's streak, in one pass."""
    today = today_for(habit, now)
    recurrence = habit.recurrence
    ledger = build_ledger(habit)
    return {
        "today": today.isoformat(),
        "current_streak": compute_streak(today, recurrence, ledger),
        "longest_streak": longest_streak(recurrence, ledger, today),
        "due_today": is_due(today, recurrence),
        "completed_today": today in ledger,
    }
