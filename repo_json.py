# repo_json.py
import json
import logging
import os
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union

from calendar_days import is_known_timezone, normalize, parse_timestamp, resolve_timezone
from habit_stats import summarize_habits
from models import Habit, is_scheduled_today
from streaks import build_ledger, current_streak, today_for

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _instants(raw_values) -> List[datetime]:
    instants = []
    for raw in raw_values or []:
        value = parse_timestamp(raw)
        if isinstance(value, datetime):
            instants.append(value)
        elif isinstance(value, date):
            instants.append(datetime.combine(value, time(), tzinfo=timezone.utc))
    return instants


def _habit_from_record(rec: dict) -> Habit:
    start = parse_timestamp(rec.get("start_date"))
    if isinstance(start, date) and not isinstance(start, datetime):
        start = datetime.combine(start, time(), tzinfo=timezone.utc)
    return Habit(
        id=rec["id"],
        name=rec["name"],
        frequency=list(rec.get("frequency", [])),
        completed_dates=_instants(rec.get("completed_dates")),
        user_timezone=rec.get("user_timezone", ""),
        streak=rec.get("streak", 0),
        description=rec.get("description", ""),
        start_date=start,
        active=rec.get("active", True),
    )


def _habit_to_record(h: Habit) -> dict:
    return {
        "id": h.id,
        "name": h.name,
        "description": h.description,
        "frequency": list(h.frequency),
        "user_timezone": h.user_timezone,
        "start_date": h.start_date.isoformat() if h.start_date else None,
        "streak": h.streak,
        "completed_dates": [d.isoformat() for d in h.completed_dates],
        "active": h.active,
    }


def _warn_on_unknown_zone(name: Optional[str], habit_id: int):
    if not is_known_timezone(name):
        logger.warning("Unknown or empty timezone %r for habit %s; using UTC.", name, habit_id)


class JSONRepo:
    def __init__(self, path: str):
        self.path = path
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        if not os.path.exists(path):
            self._write({"next_id": 1, "habits": []})
        self.data = self._read()

    def _read(self):
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, obj):
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2)
        os.replace(tmp, self.path)

    def _index_of(self, habit_id: int) -> int:
        for i, rec in enumerate(self.data["habits"]):
            if rec["id"] == habit_id:
                return i
        raise KeyError(f"Habit {habit_id} not found")

    def _save_habit(self, habit: Habit):
        self.data["habits"][self._index_of(habit.id)] = _habit_to_record(habit)

    # -------- Habits --------
    def list_habits(self, include_inactive: bool = False) -> List[Habit]:
        habits = [_habit_from_record(rec) for rec in self.data["habits"]]
        if include_inactive:
            return habits
        return [h for h in habits if h.active]

    def get_habit(self, habit_id: int) -> Habit:
        return _habit_from_record(self.data["habits"][self._index_of(habit_id)])

    def add_habit(
        self,
        name: str,
        frequency: List[str],
        user_timezone: str = "",
        description: str = "",
        now: Optional[datetime] = None,
    ) -> Habit:
        nid = self.data["next_id"]
        self.data["next_id"] += 1
        habit = Habit(
            id=nid,
            name=name,
            frequency=list(frequency),
            user_timezone=user_timezone,
            description=description,
            start_date=now or _now(),
        )
        self.data["habits"].append(_habit_to_record(habit))
        self._write(self.data)
        logger.info("Created habit %s (%s) due on %s", nid, name, ", ".join(frequency) or "no days")
        return habit

    def update_habit(
        self,
        habit_id: int,
        *,
        name: Optional[str] = None,
        frequency: Optional[List[str]] = None,
        user_timezone: Optional[str] = None,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Habit:
        """Apply the given fields, then recompute and store the streak."""
        habit = self.get_habit(habit_id)
        if name is not None:
            habit.name = name
        if frequency is not None:
            habit.frequency = list(frequency)
        if description is not None:
            habit.description = description
        if user_timezone is not None:
            _warn_on_unknown_zone(user_timezone, habit_id)
            habit.user_timezone = user_timezone

        habit.streak = current_streak(habit, now)
        self._save_habit(habit)
        self._write(self.data)
        logger.info("Updated habit %s; streak is %s", habit_id, habit.streak)
        return habit

    def delete_habit(self, habit_id: int):
        # soft delete keeps completion history around
        rec = self.data["habits"][self._index_of(habit_id)]
        rec["active"] = False
        self._write(self.data)

    # -------- Scheduling / Today --------
    def habits_due_on(self, now: Optional[datetime] = None) -> List[Habit]:
        """Active habits due on their own calendar day for `now`."""
        now = now or _now()
        return [h for h in self.list_habits() if is_scheduled_today(h, today_for(h, now))]

    # -------- Completions --------
    def toggle_completion(
        self,
        habit_id: int,
        instant: Union[datetime, date],
        timezone_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Habit:
        """
        Mark or unmark the calendar day containing `instant`, then recompute
        and store the habit's streak.
        """
        habit = self.get_habit(habit_id)
        zone_name = timezone_name or habit.user_timezone or "UTC"
        _warn_on_unknown_zone(zone_name, habit_id)

        habit.user_timezone = zone_name
        zone = resolve_timezone(zone_name)
        day = normalize(instant, zone)

        if build_ledger(habit).contains(day):
            habit.completed_dates = [
                d for d in habit.completed_dates if normalize(d, zone) != day
            ]
            logger.info("Habit %s: cleared completion for %s", habit_id, day)
        else:
            local_midnight = datetime.combine(day, time(), tzinfo=zone)
            habit.completed_dates.append(local_midnight)
            logger.info("Habit %s: marked %s complete", habit_id, day)

        habit.streak = current_streak(habit, now)
        self._save_habit(habit)
        self._write(self.data)
        logger.debug("Habit %s streak is now %s", habit_id, habit.streak)
        return habit

    def refresh_streaks(self, now: Optional[datetime] = None) -> List[Habit]:
        """Recompute every active habit's streak; persist and return the ones that changed."""
        now = now or _now()
        changed = []
        for habit in self.list_habits():
            _warn_on_unknown_zone(habit.user_timezone, habit.id)
            streak = current_streak(habit, now)
            if streak != habit.streak:
                logger.info("Habit %s streak %s -> %s", habit.id, habit.streak, streak)
                habit.streak = streak
                self._save_habit(habit)
                changed.append(habit)
        if changed:
            self._write(self.data)
        return changed

    def stats(self, now: Optional[datetime] = None) -> dict:
        return summarize_habits(self.list_habits(), now)
