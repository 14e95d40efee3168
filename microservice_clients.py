"""Helpers to call the streaks ZeroMQ microservice."""

from __future__ import annotations

import os
from datetime import date, datetime
from typing import Optional, Union

import zmq

from models import Habit

STREAKS_HOST = os.getenv("STREAKS_HOST", "localhost")
STREAKS_PORT = int(os.getenv("STREAKS_PORT", "5555"))

TIMEOUT_MS = 1500
_CONTEXT = zmq.Context.instance()


# ---------- Low-level send helpers ----------
def _make_socket(port: int):
    socket = _CONTEXT.socket(zmq.REQ)
    socket.setsockopt(zmq.RCVTIMEO, TIMEOUT_MS)
    socket.setsockopt(zmq.SNDTIMEO, TIMEOUT_MS)
    socket.setsockopt(zmq.LINGER, 0)
    socket.connect(f"tcp://{STREAKS_HOST}:{port}")
    return socket


def _send_json(port: int, payload: dict):
    socket = _make_socket(port)
    try:
        socket.send_json(payload)
        return socket.recv_json(), None
    except zmq.error.Again:
        return None, f"Timed out contacting service on port {port}."
    except zmq.ZMQError as exc:
        return None, f"Service error on port {port}: {exc}"
    finally:
        socket.close()


# ---------- Microservice callers ----------
def habit_payload(
    habit: Habit,
    now: Optional[datetime] = None,
    query: Optional[Union[datetime, date]] = None,
) -> dict:
    payload = {
        "dates": [d.isoformat() for d in habit.completed_dates],
        "frequency": list(habit.frequency),
        "timezone": habit.user_timezone,
    }
    if now is not None:
        payload["now"] = now.isoformat()
    if query is not None:
        payload["date"] = query.isoformat()
    return payload


def streaks_for_habit(
    habit: Habit,
    now: Optional[datetime] = None,
    query: Optional[Union[datetime, date]] = None,
    port: Optional[int] = None,
):
    """Ask the streaks microservice about one habit. Returns (result, error)."""
    port = STREAKS_PORT if port is None else port
    response, error = _send_json(port, habit_payload(habit, now, query))
    if error:
        return None, error
    if not response.get("ok"):
        return None, response.get("error", "Unknown streaks error.")
    return response.get("result", {}), None


# ---------- Public aggregation ----------
def gather_streak_snapshot(repo, now: Optional[datetime] = None, port: Optional[int] = None):
    """
    Streak results for every active habit in one call.
    Returns {"entries": [{"habit", "result", "error"}, ...]}.
    """
    snapshot = {"entries": []}
    for habit in repo.list_habits():
        result, streak_err = streaks_for_habit(habit, now=now, port=port)
        snapshot["entries"].append(
            {
                "habit": habit,
                "result": result,
                "error": streak_err,
            }
        )
    return snapshot
