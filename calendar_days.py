"""Calendar-day normalization and per-habit completion ledgers."""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Iterator, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = timezone.utc

# Bare date layouts accepted besides ISO.
DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d-%b-%Y",
    "%b %d %Y",
]

ZoneLike = Union[str, tzinfo, None]


def _lookup_zone(name) -> Optional[tzinfo]:
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def is_known_timezone(name) -> bool:
    """True when `name` is a recognised IANA zone identifier."""
    return _lookup_zone(name) is not None


def resolve_timezone(zone: ZoneLike) -> tzinfo:
    """Return a tzinfo for `zone`, falling back to UTC for empty or unknown names."""
    if isinstance(zone, tzinfo):
        return zone
    found = _lookup_zone(zone)
    return found if found is not None else UTC


def normalize(instant: Union[datetime, date], zone: ZoneLike = None) -> date:
    """
    Wall-clock date of `instant` in `zone`, with the time of day dropped.

    Naive datetimes are read as UTC. A plain date is already a calendar
    day and comes back unchanged.
    """
    if not isinstance(instant, datetime):
        return instant
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    try:
        return instant.astimezone(resolve_timezone(zone)).date()
    except OverflowError:
        pass
    # Instants at the very edge of the datetime range: use the UTC date,
    # or the instant's own date when even that is out of range.
    try:
        return instant.astimezone(UTC).date()
    except OverflowError:
        return instant.date()


def parse_timestamp(raw) -> Optional[Union[datetime, date]]:
    """
    Parse a stored or wire value into something `normalize` accepts.

    Bare dates come back as `date`; strings with a time component come back
    as aware datetimes (naive ones read as UTC). Returns None on failure.
    """
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    iso_text = text[:-1] + "+00:00" if text[-1] in "Zz" else text
    try:
        parsed = datetime.fromisoformat(iso_text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


class CompletionLedger:
    """Set of calendar days on which a habit was marked done."""

    __slots__ = ("_days", "zone")

    def __init__(self, days: Iterable[date] = (), zone: ZoneLike = None):
        self._days = frozenset(days)
        self.zone = resolve_timezone(zone)

    @classmethod
    def build(cls, raw_completions: Optional[Iterable], zone: ZoneLike = None) -> "CompletionLedger":
        resolved = resolve_timezone(zone)
        days = set()
        for raw in raw_completions or ():
            value = parse_timestamp(raw)
            if value is not None:
                days.add(normalize(value, resolved))
        return cls(days, resolved)

    def contains(self, day: date) -> bool:
        return day in self._days

    __contains__ = contains

    def is_completed_for_date(self, instant: Union[datetime, date]) -> bool:
        return normalize(instant, self.zone) in self._days

    def earliest(self) -> Optional[date]:
        return min(self._days) if self._days else None

    def __len__(self) -> int:
        return len(self._days)

    def __iter__(self) -> Iterator[date]:
        return iter(sorted(self._days))

    def __repr__(self) -> str:
        return f"CompletionLedger({len(self._days)} days, zone={self.zone})"
