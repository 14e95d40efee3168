# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum
from typing import Iterable, List, Optional, Tuple


class Weekday(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_name(cls, raw) -> Optional["Weekday"]:
        """Case-insensitive lookup; None for anything that is not a day name."""
        if not isinstance(raw, str):
            return None
        return cls.__members__.get(raw.strip().upper())

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.isoweekday() % 7)

    @property
    def tag(self) -> str:
        return self.name.lower()


Recurrence = Tuple[Weekday, ...]


def parse_recurrence(frequency: Optional[Iterable]) -> Recurrence:
    """Canonical recurrence rule from a raw frequency list (unknown names dropped)."""
    days = set()
    for raw in frequency or ():
        day = Weekday.from_name(raw)
        if day is not None:
            days.add(day)
    return tuple(sorted(days))


def is_due(day: date, recurrence: Iterable[Weekday]) -> bool:
    return Weekday.of(day) in recurrence


@dataclass
class Habit:
    id: int
    name: str
    frequency: List[str] = field(default_factory=list)
    completed_dates: List[datetime] = field(default_factory=list)
    user_timezone: str = ""
    streak: int = 0
    description: str = ""
    start_date: Optional[datetime] = None
    active: bool = True

    @property
    def recurrence(self) -> Recurrence:
        return parse_recurrence(self.frequency)


def is_scheduled_today(h: Habit, d: date) -> bool:
    return is_due(d, h.recurrence)
