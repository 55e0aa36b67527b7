"""The learner-facing query and command over the progression engine."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .access_policy import NO_ACCESS, ContentAccess, available_filter_options, resolve_content_access
from .catalog import CatalogStore, LessonRecord, catalog_store
from .catalog_selector import (
    ManualFilters,
    apply_manual_filters,
    published_in_order,
    select_visible_lessons,
    sort_for_display,
)
from .completions import CompletionEvent, CompletionStore, clamp_score, completion_store
from .engagement import EngagementPolicy, EngagementSummary, summarize_engagement
from .errors import NotFound
from .learner_profile import LearnerProfile, LearnerProfileStore, ensure_aware, profile_store
from .learning_week import ReleaseCalendar, utc_now
from .telemetry import emit_event
from .unlock_schedule import (
    ProgressionState,
    UnlockPolicy,
    calculate_progression,
    count_progression_completions,
    current_catalog_week,
)

logger = logging.getLogger(__name__)

PROGRESSION_ISSUE = "progression"
ENGAGEMENT_ISSUE = "engagement"


class LearningView(BaseModel):
    """Everything the lessons and analytics pages need for one learner.

    ``progression``/``visible_lessons`` and ``engagement`` are computed
    independently; a failure in one leaves the other populated and is named in
    ``issues``.
    """

    model_config = ConfigDict(frozen=True)

    learner_id: str
    resolved_at: datetime
    profile_found: bool = True
    access: ContentAccess
    progression: Optional[ProgressionState] = None
    visible_lessons: Optional[List[LessonRecord]] = None
    engagement: Optional[EngagementSummary] = None
    issues: List[str] = Field(default_factory=list)


class CompletionReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    learner_id: str
    lesson_id: str
    recorded: bool
    percentage_score: int = 0
    completion: Optional[CompletionEvent] = None
    reason: Optional[str] = None


class LearningService:
    """Loads collaborators once per call and composes the pure engine components."""

    def __init__(
        self,
        profiles: LearnerProfileStore,
        catalog: CatalogStore,
        completions: CompletionStore,
        *,
        unlock_policy: Optional[UnlockPolicy] = None,
        engagement_policy: Optional[EngagementPolicy] = None,
        calendar: Optional[ReleaseCalendar] = None,
    ) -> None:
        self._profiles = profiles
        self._catalog = catalog
        self._completions = completions
        self._unlock_policy = unlock_policy
        self._engagement_policy = engagement_policy
        self._calendar = calendar

    @property
    def unlock_policy(self) -> UnlockPolicy:
        return self._unlock_policy or UnlockPolicy.from_settings()

    @property
    def engagement_policy(self) -> EngagementPolicy:
        return self._engagement_policy or EngagementPolicy.from_settings()

    @property
    def calendar(self) -> ReleaseCalendar:
        return self._calendar or ReleaseCalendar.from_settings()

    def load_profile(self, learner_id: str, now: datetime) -> tuple[LearnerProfile, bool]:
        profile = self._profiles.get(learner_id)
        if profile is None:
            logger.info("No profile for learner %s; using free defaults", learner_id)
            return LearnerProfile.anonymous(learner_id, now), False
        return profile, True

    def resolve_learning_view(
        self,
        learner_id: str,
        now: datetime,
        *,
        admin: bool = False,
    ) -> LearningView:
        now = ensure_aware(now)
        profile, found = self.load_profile(learner_id, now)
        access = resolve_content_access(profile.subscription_tier, profile.subscription_status)
        events = self._completions.list_for_learner(profile.id)
        lessons = self._catalog.list_published()
        issues: List[str] = []

        progression: Optional[ProgressionState] = None
        visible: Optional[List[LessonRecord]] = None
        try:
            progression = calculate_progression(
                join_date=profile.join_date,
                now=now,
                current_catalog_week=current_catalog_week(lessons),
                total_completed=count_progression_completions(events),
                policy=self.unlock_policy,
                calendar=self.calendar,
            )
            visible = select_visible_lessons(
                lessons,
                access,
                progression,
                profile.preferred_level,
                profile.language_support,
                admin=admin,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Failed to resolve progression for learner %s", learner_id)
            progression = None
            visible = None
            issues.append(PROGRESSION_ISSUE)

        engagement: Optional[EngagementSummary] = None
        try:
            engagement = summarize_engagement(
                events,
                join_date=profile.join_date,
                now=now,
                policy=self.engagement_policy,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Failed to summarize engagement for learner %s", learner_id)
            issues.append(ENGAGEMENT_ISSUE)

        emit_event(
            "learning_view_resolved",
            learner_id=profile.id,
            profile_found=found,
            tier=profile.subscription_tier,
            status=profile.subscription_status,
            available_lesson_count=progression.available_lesson_count if progression else None,
            visible_count=len(visible) if visible is not None else None,
            current_streak=engagement.current_streak if engagement else None,
            issues=issues,
        )
        return LearningView(
            learner_id=profile.id,
            resolved_at=now,
            profile_found=found,
            access=access,
            progression=progression,
            visible_lessons=visible,
            engagement=engagement,
            issues=issues,
        )

    def list_lessons(
        self,
        learner_id: str,
        now: datetime,
        filters: Optional[ManualFilters] = None,
        *,
        admin: bool = False,
    ) -> Optional[List[LessonRecord]]:
        """Visible lessons narrowed by the page's dropdowns, newest first.

        Returns ``None`` when the visible set could not be resolved.
        """
        view = self.resolve_learning_view(learner_id, now, admin=admin)
        if view.visible_lessons is None:
            return None
        lessons = view.visible_lessons
        if filters is not None and not filters.is_empty:
            lessons = apply_manual_filters(lessons, filters)
        return sort_for_display(lessons)

    def catalog_overview(self, filters: Optional[ManualFilters] = None) -> List[LessonRecord]:
        """Admin listing of the published catalog; no learner state is loaded."""
        lessons = published_in_order(self._catalog.list_published())
        if filters is not None and not filters.is_empty:
            lessons = apply_manual_filters(lessons, filters)
        return sort_for_display(lessons)

    def filter_options(self, learner_id: str, *, admin: bool = False) -> dict[str, List[str]]:
        profile = self._profiles.get(learner_id)
        if profile is None:
            return available_filter_options(NO_ACCESS, admin=admin)
        access = resolve_content_access(profile.subscription_tier, profile.subscription_status)
        return available_filter_options(access, admin=admin)

    def mark_lesson_complete(
        self,
        learner_id: str,
        lesson_id: str,
        score: float,
        now: Optional[datetime] = None,
    ) -> CompletionReceipt:
        """Record a completed lesson. Safe to repeat; the first completion time is kept."""
        completed_at = ensure_aware(now) if now is not None else utc_now()
        percentage = clamp_score(score)
        try:
            event = self._completions.upsert_completion(
                learner_id,
                lesson_id,
                is_completed=True,
                percentage_score=percentage,
                completed_at=completed_at,
            )
        except NotFound as exc:
            logger.warning("Completion not recorded for %s/%s: %s", learner_id, lesson_id, exc)
            return CompletionReceipt(
                learner_id=learner_id,
                lesson_id=lesson_id,
                recorded=False,
                percentage_score=percentage,
                reason=str(exc),
            )

        emit_event(
            "lesson_completion_recorded",
            learner_id=learner_id,
            lesson_id=lesson_id,
            percentage_score=event.percentage_score,
            completed_at=event.completed_at,
            evergreen=event.is_evergreen,
        )
        return CompletionReceipt(
            learner_id=learner_id,
            lesson_id=lesson_id,
            recorded=True,
            percentage_score=event.percentage_score,
            completion=event,
        )


def create_learning_service() -> LearningService:
    return LearningService(profile_store, catalog_store, completion_store)


_learning_service: Optional[LearningService] = None


def get_learning_service() -> LearningService:
    global _learning_service
    if _learning_service is None:
        _learning_service = create_learning_service()
    return _learning_service


__all__ = [
    "CompletionReceipt",
    "ENGAGEMENT_ISSUE",
    "LearningService",
    "LearningView",
    "PROGRESSION_ISSUE",
    "create_learning_service",
    "get_learning_service",
]
