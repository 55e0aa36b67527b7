"""Weekly learning streak and completion-rate metrics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .completions import CompletionEvent
from .config import Settings, get_settings
from .learning_week import ReleaseCalendar
from .unlock_schedule import weeks_since_join


@dataclass(frozen=True)
class EngagementPolicy:
    calendar: ReleaseCalendar = ReleaseCalendar()
    grace_days: int = 2
    lookback_weeks: int = 26

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EngagementPolicy":
        settings = settings or get_settings()
        return cls(
            calendar=ReleaseCalendar.from_settings(settings),
            grace_days=settings.streak_grace_days,
            lookback_weeks=settings.streak_lookback_weeks,
        )


class EngagementSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_streak: int = Field(default=0, ge=0)
    this_week_completed_count: int = Field(default=0, ge=0)
    weekly_completion_rate: float = Field(default=0.0, ge=0.0)
    total_completed: int = Field(default=0, ge=0)
    average_score: int = Field(default=0, ge=0, le=100)


def _distinct_completions(events: Iterable[CompletionEvent]) -> List[CompletionEvent]:
    """One completed event per lesson; the earliest completion wins."""
    by_lesson: Dict[str, CompletionEvent] = {}
    for event in events:
        if not event.is_completed:
            continue
        current = by_lesson.get(event.lesson_id)
        if current is None:
            by_lesson[event.lesson_id] = event
        elif event.completed_at is not None and (
            current.completed_at is None or event.completed_at < current.completed_at
        ):
            by_lesson[event.lesson_id] = event
    return list(by_lesson.values())


def bucket_by_learning_week(
    events: Iterable[CompletionEvent],
    calendar: ReleaseCalendar,
) -> Counter[datetime]:
    """Count timestamped completions per learning-week start."""
    buckets: Counter[datetime] = Counter()
    for event in events:
        if event.completed_at is None:
            continue
        buckets[calendar.week_start(event.completed_at)] += 1
    return buckets


def current_streak(
    buckets: Counter[datetime],
    now: datetime,
    policy: EngagementPolicy,
) -> int:
    """Consecutive learning weeks with activity, walking back from the current week.

    An empty current week is skipped rather than ending the streak while it is
    still within the grace window.
    """
    calendar = policy.calendar
    week = calendar.week_start(now)
    streak = 0
    for index in range(policy.lookback_weeks):
        if buckets.get(week, 0) > 0:
            streak += 1
        elif index == 0 and calendar.days_into_week(now) <= policy.grace_days:
            pass
        else:
            break
        week = calendar.week_start(week - timedelta(days=1))
    return streak


def summarize_engagement(
    events: Iterable[CompletionEvent],
    *,
    join_date: datetime,
    now: datetime,
    policy: Optional[EngagementPolicy] = None,
) -> EngagementSummary:
    policy = policy or EngagementPolicy.from_settings()
    completed = _distinct_completions(events)
    if not completed:
        return EngagementSummary()

    buckets = bucket_by_learning_week(completed, policy.calendar)
    this_week = buckets.get(policy.calendar.week_start(now), 0)
    total = len(completed)
    rate = round(total / max(1, weeks_since_join(join_date, now)), 1)
    average = round(sum(event.percentage_score for event in completed) / total)

    return EngagementSummary(
        current_streak=current_streak(buckets, now, policy),
        this_week_completed_count=this_week,
        weekly_completion_rate=rate,
        total_completed=total,
        average_score=average,
    )


__all__ = [
    "EngagementPolicy",
    "EngagementSummary",
    "bucket_by_learning_week",
    "current_streak",
    "summarize_engagement",
]
