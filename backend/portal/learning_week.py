"""Learning weeks: 7-day buckets anchored to the weekly release weekday."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import Settings, get_settings
from .learner_profile import ensure_aware

logger = logging.getLogger(__name__)

FRIDAY = 4
SECONDS_PER_DAY = 24 * 60 * 60


@lru_cache(maxsize=32)
def _resolve_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name.strip() or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown release timezone %r; falling back to UTC", name)
        return ZoneInfo("UTC")


@dataclass(frozen=True)
class ReleaseCalendar:
    """Weekly release boundary: local midnight on ``weekday`` (Monday is 0)."""

    weekday: int = FRIDAY
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"Release weekday must be between 0 and 6, got {self.weekday}.")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReleaseCalendar":
        settings = settings or get_settings()
        return cls(weekday=settings.release_weekday, timezone=settings.release_timezone)

    @property
    def zone(self) -> ZoneInfo:
        return _resolve_zone(self.timezone)

    def localize(self, moment: datetime) -> datetime:
        return ensure_aware(moment).astimezone(self.zone)

    def week_start(self, moment: datetime) -> datetime:
        """Most recent release boundary at or before ``moment``."""
        local = self.localize(moment)
        days_back = (local.weekday() - self.weekday) % 7
        start_date = local.date() - timedelta(days=days_back)
        return datetime.combine(start_date, time.min, tzinfo=self.zone)

    def days_into_week(self, now: datetime) -> int:
        """Whole days elapsed since the current learning week started."""
        return (self.localize(now) - self.week_start(now)).days

    def days_until_next_release(self, now: datetime) -> int:
        """Days (rounded up, 1 to 7) until the next release boundary."""
        local = self.localize(now)
        next_start = self.week_start(now) + timedelta(days=7)
        remaining = (next_start - local).total_seconds()
        return max(1, math.ceil(remaining / SECONDS_PER_DAY))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["FRIDAY", "ReleaseCalendar", "utc_now"]
