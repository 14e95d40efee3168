"""Summary statistics across a user's habits."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from calendar_days import normalize
from models import Habit, is_due
from streaks import LOOKBACK_DAYS, build_ledger, compute_streak, today_for


def consistency_percentage(habit: Habit, now: Optional[datetime] = None) -> float:
    """
    Share of due days that were completed, as a percentage rounded to 2 places.

    The window runs from the habit's start day (or its earliest completion)
    through today, capped at LOOKBACK_DAYS.
    """
    today = today_for(habit, now)
    ledger = build_ledger(habit)
    recurrence = frozenset(habit.recurrence)

    if habit.start_date is not None:
        start = normalize(habit.start_date, ledger.zone)
    else:
        start = ledger.earliest()
    if start is None or start > today:
        return 0.0
    start = max(start, date.fromordinal(max(1, today.toordinal() - LOOKBACK_DAYS + 1)))

    due_days = completed = 0
    for ordinal in range(start.toordinal(), today.toordinal() + 1):
        cursor = date.fromordinal(ordinal)
        if is_due(cursor, recurrence):
            due_days += 1
            if cursor in ledger:
                completed += 1

    if due_days == 0:
        return 0.0
    return round(completed / due_days * 100.0, 2)


def summarize_habits(habits: Iterable[Habit], now: Optional[datetime] = None) -> dict:
    """
    Stats for the active habits in `habits`.

    Streaks are recomputed rather than read from the stored field. Ties keep
    the first habit in input order.
    """
    active = [h for h in habits if h.active]

    longest = {"habit": None, "streak": 0}
    consistent = {"habit": None, "percentage": 0.0}
    most_completed = {"habit": None, "count": 0}
    total_completions = 0
    streak_total = 0

    for habit in active:
        ledger = build_ledger(habit)
        streak = compute_streak(today_for(habit, now), habit.recurrence, ledger)
        percentage = consistency_percentage(habit, now)
        count = len(ledger)

        streak_total += streak
        total_completions += count
        if streak > longest["streak"]:
            longest = {"habit": habit.name, "streak": streak}
        if percentage > consistent["percentage"]:
            consistent = {"habit": habit.name, "percentage": percentage}
        if count > most_completed["count"]:
            most_completed = {"habit": habit.name, "count": count}

    return {
        "total_habits": len(active),
        "longest_streak": longest,
        "most_consistent": consistent,
        "most_completed_habit": most_completed,
        "total_completions": total_completions,
        "average_streak": round(streak_total / len(active), 2) if active else 0,
    }
