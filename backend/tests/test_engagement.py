from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from portal.catalog import NumberedSlot
from portal.completions import CompletionEvent
from portal.engagement import EngagementPolicy, summarize_engagement
from portal.learning_week import ReleaseCalendar

POLICY = EngagementPolicy(calendar=ReleaseCalendar(), grace_days=2, lookback_weeks=26)
# Learning weeks start on Fridays: 2026-10-16, 2026-10-09, 2026-10-02, 2026-09-25, ...
WEEK_START = datetime(2026, 10, 16, tzinfo=timezone.utc)
JOINED = WEEK_START - timedelta(weeks=8)


def _event(lesson_id: str, completed_at: Optional[datetime], score: int = 80, completed: bool = True) -> CompletionEvent:
    return CompletionEvent(
        learner_id="learner",
        lesson_id=lesson_id,
        is_completed=completed,
        completed_at=completed_at,
        percentage_score=score,
        slot=NumberedSlot(week_number=1),
    )


def _weeks_back(count: int, hours: int = 30) -> datetime:
    return WEEK_START - timedelta(weeks=count) + timedelta(hours=hours)


def test_empty_history_has_no_streak() -> None:
    summary = summarize_engagement([], join_date=JOINED, now=WEEK_START, policy=POLICY)
    assert summary.current_streak == 0
    assert summary.weekly_completion_rate == 0
    assert summary.average_score == 0


def test_grace_period_keeps_streak_alive_early_in_the_week() -> None:
    events = [_event("a", _weeks_back(1)), _event("b", _weeks_back(2)), _event("c", _weeks_back(3))]
    one_day_in = WEEK_START + timedelta(days=1, hours=10)
    summary = summarize_engagement(events, join_date=JOINED, now=one_day_in, policy=POLICY)
    assert summary.current_streak == 3
    assert summary.this_week_completed_count == 0


def test_empty_week_past_grace_breaks_streak() -> None:
    events = [_event("a", _weeks_back(1)), _event("b", _weeks_back(2))]
    three_days_in = WEEK_START + timedelta(days=3, hours=12)
    summary = summarize_engagement(events, join_date=JOINED, now=three_days_in, policy=POLICY)
    assert summary.current_streak == 0


def test_active_current_week_counts_toward_streak() -> None:
    events = [
        _event("a", WEEK_START + timedelta(hours=2)),
        _event("b", WEEK_START + timedelta(hours=5)),
        _event("c", _weeks_back(1)),
        _event("d", _weeks_back(3)),
    ]
    summary = summarize_engagement(events, join_date=JOINED, now=WEEK_START + timedelta(days=4), policy=POLICY)
    assert summary.current_streak == 2
    assert summary.this_week_completed_count == 2


def test_streak_walk_is_bounded_by_lookback() -> None:
    events = [_event(f"w{week}", _weeks_back(week)) for week in range(10)]
    policy = EngagementPolicy(calendar=ReleaseCalendar(), grace_days=2, lookback_weeks=4)
    summary = summarize_engagement(events, join_date=JOINED, now=WEEK_START + timedelta(days=3), policy=policy)
    assert summary.current_streak == 4


def test_relisted_lesson_counts_once() -> None:
    events = [_event("a", _weeks_back(1)), _event("a", _weeks_back(1, hours=50))]
    summary = summarize_engagement(events, join_date=JOINED, now=WEEK_START, policy=POLICY)
    assert summary.total_completed == 1


def test_rate_and_average_score() -> None:
    now = WEEK_START + timedelta(days=1)
    joined = now - timedelta(days=21)  # fourth learning week since joining
    events = [_event(f"l{index}", now - timedelta(days=index), score=80 if index % 2 else 90) for index in range(6)]
    summary = summarize_engagement(events, join_date=joined, now=now, policy=POLICY)
    assert summary.total_completed == 6
    assert summary.weekly_completion_rate == 1.5
    assert summary.average_score == 85


def test_incomplete_and_untimestamped_events() -> None:
    events = [
        _event("started", _weeks_back(0), completed=False),
        _event("legacy", None, score=60),
    ]
    summary = summarize_engagement(events, join_date=JOINED, now=WEEK_START + timedelta(days=1), policy=POLICY)
    assert summary.total_completed == 1
    assert summary.current_streak == 0
    assert summary.average_score == 60
