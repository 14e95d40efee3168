"""Microservice for calculating current and longest streaks on a weekly schedule."""

from datetime import datetime, timezone
import logging
import os
import sys
import threading

import zmq

from calendar_days import (
    CompletionLedger,
    is_known_timezone,
    normalize,
    parse_timestamp,
)
from logging_config import configure_logging
from models import is_due, parse_recurrence
from streaks import compute_streak, longest_streak

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.getenv("STREAKS_PORT", "5555"))


def _extract_date_strings(payload):
    """Pull out date strings or return an error message."""
    if "dates" not in payload or not isinstance(payload["dates"], list):
        return [], "Request must contain a 'dates' array."
    date_strings = [value for value in payload["dates"] if isinstance(value, str)]
    return date_strings, None


def _extract_frequency(payload):
    frequency = payload.get("frequency", [])
    if not isinstance(frequency, list):
        return None, "'frequency' must be a list of weekday names."
    return frequency, None


def _parse_optional_instant(payload, key):
    """Return (value, error); value is None when the key is absent."""
    raw = payload.get(key)
    if raw is None:
        return None, None
    value = parse_timestamp(raw)
    if value is None:
        return None, f"Invalid '{key}' value: {raw!r}."
    return value, None


def _parse_dates(date_strings):
    """Convert strings into dates/instants, dropping the ones that do not parse."""
    parsed = []
    for raw_date in date_strings:
        value = parse_timestamp(raw_date)
        if value is None:
            logger.debug("Dropping unparseable date %r", raw_date)
            continue
        parsed.append(value)
    return parsed


def _resolve_zone_name(payload):
    name = payload.get("timezone")
    if is_known_timezone(name):
        return name.strip()
    logger.warning("Unknown or empty timezone %r in request; using UTC.", name)
    return "UTC"


def _error(message):
    """Return a consistent error payload."""
    return {"ok": False, "error": message}


def process_request(payload: dict) -> dict:
    """
    payload: {"dates": [str], "frequency": [str], "timezone"?, "now"?, "date"?}
    returns dict with ok/result or ok/error
    """
    if not isinstance(payload, dict):
        return _error("Request must be a JSON object.")
    date_strings, error = _extract_date_strings(payload)
    if error:
        return _error(error)
    frequency, error = _extract_frequency(payload)
    if error:
        return _error(error)
    now, error = _parse_optional_instant(payload, "now")
    if error:
        return _error(error)
    query, error = _parse_optional_instant(payload, "date")
    if error:
        return _error(error)

    zone_name = _resolve_zone_name(payload)
    recurrence = parse_recurrence(frequency)
    ledger = CompletionLedger.build(_parse_dates(date_strings), zone_name)
    today = normalize(now or datetime.now(timezone.utc), zone_name)

    result = {
        "today": today.isoformat(),
        "timezone": zone_name,
        "current_streak": compute_streak(today, recurrence, ledger),
        "longest_streak": longest_streak(recurrence, ledger, today),
        "due_today": is_due(today, recurrence),
        "completed_today": today in ledger,
    }
    if query is not None:
        result["completed_on_date"] = ledger.is_completed_for_date(query)
    return {"ok": True, "result": result}


def shutdown_listener(stop_flag):
    """
    Waits for the user to type 'q' then Enter to request shutdown.
    Sets stop_flag[0] = True so the main loop can exit cleanly.
    """
    print("Press 'q' then Enter to stop the microservice...")
    for line in sys.stdin:
        if line.strip().lower() == "q":
            stop_flag[0] = True
            logger.info("Shutdown requested")
            break


def start_shutdown_listener(stop_flag):
    """Start the background shutdown listener thread."""
    listener_thread = threading.Thread(
        target=shutdown_listener,
        args=(stop_flag,),
        daemon=True
    )
    listener_thread.start()
    return listener_thread


def handle_payload(payload):
    """process_request, with unexpected failures turned into an error payload."""
    try:
        return process_request(payload)
    except Exception as exc:
        logger.exception("Failed to process streaks request")
        return _error(f"Internal error: {exc}")


def serve_requests(socket, stop_flag):
    """Process inbound requests until stop_flag is set."""
    while not stop_flag[0]:
        if socket.poll(timeout=1000):
            try:
                payload = socket.recv_json()
            except ValueError:
                socket.send_json(_error("Invalid JSON in request body."))
                continue
            socket.send_json(handle_payload(payload))


def build_server_socket(port):
    """Create and bind the REP socket for the service."""
    context = zmq.Context()
    socket = context.socket(zmq.REP)
    address = f"tcp://*:{port}"
    socket.bind(address)
    return context, socket, address


def shutdown(context, socket):
    """Close resources cleanly."""
    logger.info("Shutting down streaks microservice")
    socket.close()
    context.term()


def run_service(port):
    """Start the microservice lifecycle for the given port."""
    context, socket, address = build_server_socket(port)
    logger.info("Streaks microservice listening on %s", address)
    stop_flag = [False]
    start_shutdown_listener(stop_flag)
    try:
        serve_requests(socket, stop_flag)
    except KeyboardInterrupt:
        logger.info("Interrupted via keyboard")
    finally:
        shutdown(context, socket)


def main(argv=None):
    configure_logging()
    argv = sys.argv[1:] if argv is None else argv
    port = DEFAULT_PORT
    if argv:
        try:
            port = int(argv[0])
        except ValueError:
            logger.warning("Invalid port %r, using default %s instead.", argv[0], DEFAULT_PORT)
    run_service(port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
