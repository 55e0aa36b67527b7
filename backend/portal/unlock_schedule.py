"""Rolling unlock schedule with catch-up acceleration and an anti-binge brake.

A learner starts with a starter pack of lessons and gains one lesson for every
learning week since joining. Learners far behind the live catalog gain two per
week instead (catch-up acceleration). Independently of the calendar, a learner
may only hold a small cushion of unlocked-but-incomplete lessons; growth beyond
that cushion is withheld until they complete more (anti-binge brake).

All functions here are pure; ``now`` is always passed in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from .catalog import LessonRecord, NumberedSlot
from .completions import CompletionEvent
from .config import Settings, get_settings
from .learner_profile import ensure_aware
from .learning_week import ReleaseCalendar

logger = logging.getLogger(__name__)

SECONDS_PER_WEEK = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class UnlockPolicy:
    starter_pack_size: int = 5
    backlog_cushion: int = 3
    catch_up_threshold_weeks: int = 4
    catch_up_unlock_rate: int = 2
    caught_up_margin: int = 2

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "UnlockPolicy":
        settings = settings or get_settings()
        return cls(
            starter_pack_size=settings.starter_pack_size,
            backlog_cushion=settings.backlog_cushion,
            catch_up_threshold_weeks=settings.catch_up_threshold_weeks,
            catch_up_unlock_rate=settings.catch_up_unlock_rate,
            caught_up_margin=settings.caught_up_margin,
        )


class ProgressionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_completed: int = Field(ge=0)
    available_lesson_count: int = Field(ge=0)
    unlock_rate: int = Field(ge=1)
    weeks_since_join: int = Field(ge=1)
    current_catalog_week: int = Field(ge=1)
    lessons_needed_for_next_unlock: int = Field(ge=0)
    days_until_next_unlock: int = Field(ge=0)
    is_caught_up: bool


def weeks_since_join(join_date: datetime, now: datetime) -> int:
    """1-based count of learning weeks since joining; clock skew clamps to 1."""
    elapsed = (ensure_aware(now) - ensure_aware(join_date)).total_seconds()
    if elapsed < 0:
        logger.warning("Join date %s is after now %s; clamping elapsed time to zero", join_date, now)
        elapsed = 0
    return max(1, math.floor(elapsed / SECONDS_PER_WEEK) + 1)


def current_catalog_week(lessons: Iterable[LessonRecord]) -> int:
    """Highest week among published numbered lessons, or 1 for an empty catalog."""
    weeks = [
        lesson.slot.week_number
        for lesson in lessons
        if lesson.published and isinstance(lesson.slot, NumberedSlot)
    ]
    return max(weeks, default=1)


def count_progression_completions(events: Iterable[CompletionEvent]) -> int:
    """Distinct completed numbered lessons; evergreen completions never count."""
    return len({event.lesson_id for event in events if event.counts_toward_progression})


def calculate_progression(
    *,
    join_date: datetime,
    now: datetime,
    current_catalog_week: int,
    total_completed: int,
    policy: Optional[UnlockPolicy] = None,
    calendar: Optional[ReleaseCalendar] = None,
) -> ProgressionState:
    policy = policy or UnlockPolicy.from_settings()
    calendar = calendar or ReleaseCalendar.from_settings()

    catalog_week = max(1, current_catalog_week)
    completed = max(0, total_completed)
    weeks = weeks_since_join(join_date, now)

    weeks_behind = catalog_week - weeks
    unlock_rate = policy.catch_up_unlock_rate if weeks_behind > policy.catch_up_threshold_weeks else 1
    raw_available = min(policy.starter_pack_size + max(0, weeks - 1) * unlock_rate, catalog_week)

    lessons_needed = max(0, raw_available - policy.backlog_cushion - completed)
    if lessons_needed == 0:
        available = raw_available
    else:
        available = completed + policy.backlog_cushion

    return ProgressionState(
        total_completed=completed,
        available_lesson_count=available,
        unlock_rate=unlock_rate,
        weeks_since_join=weeks,
        current_catalog_week=catalog_week,
        lessons_needed_for_next_unlock=lessons_needed,
        days_until_next_unlock=calendar.days_until_next_release(now),
        is_caught_up=available >= catalog_week - policy.caught_up_margin,
    )


__all__ = [
    "ProgressionState",
    "UnlockPolicy",
    "calculate_progression",
    "count_progression_completions",
    "current_catalog_week",
    "weeks_since_join",
]
