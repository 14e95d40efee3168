"""Daily streak re-evaluation, meant to be run from cron shortly after midnight."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from logging_config import configure_logging
from repo_json import JSONRepo

logger = logging.getLogger(__name__)

DEFAULT_DATA_PATH = "data/habits.json"


def run_daily_check(repo: JSONRepo, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    due = repo.habits_due_on(now)
    logger.info("Running daily habit check: %d habit(s) due today", len(due))
    changed = repo.refresh_streaks(now)
    logger.info("Daily habit check completed: %d streak(s) updated", len(changed))
    return len(changed)


def main() -> int:
    configure_logging()
    repo = JSONRepo(os.getenv("HABITS_DATA_PATH", DEFAULT_DATA_PATH))
    run_daily_check(repo)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
