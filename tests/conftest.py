from __future__ import annotations

from datetime import date, datetime, time, timezone

import pytest

from repo_json import JSONRepo

# Monday 2025-03-03, mid-morning UTC.
NOW = datetime(2025, 3, 3, 15, 0, tzinfo=timezone.utc)

MWF = ["monday", "wednesday", "friday"]
EVERY_DAY = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def utc_noon(day: date) -> datetime:
    """Completion instant safely inside `day` for any zone within +-11h."""
    return datetime.combine(day, time(12), tzinfo=timezone.utc)


@pytest.fixture
def repo(tmp_path):
    return JSONRepo(str(tmp_path / "data" / "habits.json"))
