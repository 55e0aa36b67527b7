"""Pydantic payloads exchanged with the lesson portal front end."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .access_policy import ContentAccess
from .catalog import LessonRecord
from .completions import MAX_SCORE, MIN_SCORE
from .engagement import EngagementSummary
from .learning_view import CompletionReceipt, LearningView
from .unlock_schedule import ProgressionState


class ContentAccessPayload(BaseModel):
    can_access_esl: bool
    can_access_clil: bool
    can_access_translation_support: bool


class ProgressionPayload(BaseModel):
    total_completed: int
    available_lesson_count: int
    unlock_rate: int
    weeks_since_join: int
    current_catalog_week: int
    lessons_needed_for_next_unlock: int
    days_until_next_unlock: int
    is_caught_up: bool


class EngagementPayload(BaseModel):
    current_streak: int
    this_week_completed_count: int
    weekly_completion_rate: float
    total_completed: int
    average_score: int


class LessonPayload(BaseModel):
    id: str
    title: str
    kind: Literal["evergreen", "numbered"]
    week_number: Optional[int] = None
    content_type: str
    level: str
    language_support: str
    release_date: Optional[date] = None


class LearningViewPayload(BaseModel):
    learner_id: str
    resolved_at: datetime
    profile_found: bool
    access: ContentAccessPayload
    progression: Optional[ProgressionPayload] = None
    visible_lessons: Optional[List[LessonPayload]] = None
    engagement: Optional[EngagementPayload] = None
    issues: List[str] = Field(default_factory=list)


class LessonListPayload(BaseModel):
    learner_id: str
    lessons: List[LessonPayload] = Field(default_factory=list)
    count: int = 0


class FilterOptionsPayload(BaseModel):
    content_types: List[str]
    levels: List[str]
    languages: List[str]


class CompletionRequest(BaseModel):
    lesson_id: str = Field(..., min_length=1)
    # Out-of-range scores are clamped by the service rather than rejected.
    score: float = Field(default=MAX_SCORE)
    completed_at: Optional[datetime] = None


class CompletionPayload(BaseModel):
    learner_id: str
    lesson_id: str
    recorded: bool
    percentage_score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    completed_at: Optional[datetime] = None
    reason: Optional[str] = None


def access_payload(access: ContentAccess) -> ContentAccessPayload:
    return ContentAccessPayload(
        can_access_esl=access.can_access_esl,
        can_access_clil=access.can_access_clil,
        can_access_translation_support=access.can_access_translation_support,
    )


def progression_payload(state: Optional[ProgressionState]) -> Optional[ProgressionPayload]:
    if state is None:
        return None
    return ProgressionPayload(**state.model_dump())


def engagement_payload(summary: Optional[EngagementSummary]) -> Optional[EngagementPayload]:
    if summary is None:
        return None
    return EngagementPayload(**summary.model_dump())


def lesson_payload(lesson: LessonRecord) -> LessonPayload:
    return LessonPayload(
        id=lesson.id,
        title=lesson.title,
        kind=lesson.slot.kind,
        week_number=lesson.week_number,
        content_type=lesson.content_type,
        level=lesson.level,
        language_support=lesson.language_support,
        release_date=lesson.release_date,
    )


def learning_view_payload(view: LearningView) -> LearningViewPayload:
    lessons = None
    if view.visible_lessons is not None:
        lessons = [lesson_payload(lesson) for lesson in view.visible_lessons]
    return LearningViewPayload(
        learner_id=view.learner_id,
        resolved_at=view.resolved_at,
        profile_found=view.profile_found,
        access=access_payload(view.access),
        progression=progression_payload(view.progression),
        visible_lessons=lessons,
        engagement=engagement_payload(view.engagement),
        issues=list(view.issues),
    )


def completion_payload(receipt: CompletionReceipt) -> CompletionPayload:
    completed_at = receipt.completion.completed_at if receipt.completion is not None else None
    return CompletionPayload(
        learner_id=receipt.learner_id,
        lesson_id=receipt.lesson_id,
        recorded=receipt.recorded,
        percentage_score=receipt.percentage_score,
        completed_at=completed_at,
        reason=receipt.reason,
    )


__all__ = [
    "CompletionPayload",
    "CompletionRequest",
    "ContentAccessPayload",
    "EngagementPayload",
    "FilterOptionsPayload",
    "LearningViewPayload",
    "LessonListPayload",
    "LessonPayload",
    "ProgressionPayload",
    "access_payload",
    "completion_payload",
    "engagement_payload",
    "learning_view_payload",
    "lesson_payload",
    "progression_payload",
]
