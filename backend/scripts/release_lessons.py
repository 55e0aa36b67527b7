"""Publish lessons whose release date has arrived.

Scheduled weekly on the release weekday; safe to re-run since already
published lessons are skipped.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from typing import Optional

from portal.catalog import catalog_store
from portal.learning_week import ReleaseCalendar, utc_now
from portal.logging_config import configure_logging

LOGGER = logging.getLogger("portal.release")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish lessons due for release.")
    parser.add_argument(
        "--date",
        dest="release_day",
        type=date.fromisoformat,
        default=None,
        help="Release day as YYYY-MM-DD (default: today in the release timezone).",
    )
    return parser.parse_args(argv)


def resolve_release_day(release_day: Optional[date], calendar: Optional[ReleaseCalendar] = None) -> date:
    if release_day is not None:
        return release_day
    calendar = calendar or ReleaseCalendar.from_settings()
    return calendar.localize(utc_now()).date()


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        release_day = resolve_release_day(args.release_day)
        released = catalog_store.release_due(release_day)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Lesson release failed: %s", exc)
        return 1
    print(
        json.dumps(
            {
                "release_day": release_day.isoformat(),
                "released": [lesson.id for lesson in released],
            }
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
