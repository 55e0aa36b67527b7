"""Combine access, progression, and learner preferences into the visible lesson set."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from .access_policy import ContentAccess
from .catalog import LessonRecord, partition_lessons
from .learner_profile import PreferredLevel, SupportLanguage
from .unlock_schedule import ProgressionState

ALL = "all"


class ManualFilters(BaseModel):
    """Dropdown selections from the lessons page. ``None`` or ``"all"`` means unfiltered."""

    model_config = ConfigDict(frozen=True)

    content_type: Optional[str] = None
    level: Optional[str] = None
    language: Optional[str] = None

    @field_validator("content_type", "level", "language", mode="before")
    @classmethod
    def _normalise(cls, value: object) -> object:
        if isinstance(value, str):
            trimmed = value.strip().lower()
            return None if not trimmed or trimmed == ALL else trimmed
        return value

    @property
    def is_empty(self) -> bool:
        return self.content_type is None and self.level is None and self.language is None


def _lesson_is_entitled(lesson: LessonRecord, access: ContentAccess, language_support: str) -> bool:
    if lesson.content_type == "esl":
        return access.can_access_esl
    if lesson.content_type == "clil":
        # Translation-bearing content only makes sense in the learner's support language.
        return access.can_access_clil and lesson.language_support == language_support
    return False


def _matches_level(lesson: LessonRecord, preferred_level: str) -> bool:
    return preferred_level == "both" or lesson.level == preferred_level


def _chronological_key(lesson: LessonRecord) -> tuple[int, str]:
    return (lesson.week_number or 0, lesson.id)


def published_in_order(lessons: Iterable[LessonRecord]) -> List[LessonRecord]:
    """Every published lesson, ignoring entitlement and unlock gating."""
    return sorted((lesson for lesson in lessons if lesson.published), key=_chronological_key)


def select_visible_lessons(
    lessons: Iterable[LessonRecord],
    access: ContentAccess,
    progression: ProgressionState,
    preferred_level: PreferredLevel,
    language_support: SupportLanguage,
    *,
    admin: bool = False,
) -> List[LessonRecord]:
    """Return the lessons a learner may see right now.

    Numbered lessons come first in chronological order, followed by evergreen
    lessons in catalog order. Only membership is guaranteed; use
    ``sort_for_display`` for presentation order.
    """
    if admin:
        return published_in_order(lessons)
    published = [lesson for lesson in lessons if lesson.published]

    evergreen, numbered = partition_lessons(published)

    if not access.has_any_category_access:
        # Samples stay fully discoverable before purchase: no level or language filter.
        return evergreen

    entitled = [
        lesson
        for lesson in numbered
        if _lesson_is_entitled(lesson, access, language_support) and _matches_level(lesson, preferred_level)
    ]
    entitled.sort(key=_chronological_key)
    unlocked = entitled[: max(0, progression.available_lesson_count)]

    samples = [lesson for lesson in evergreen if _matches_level(lesson, preferred_level)]
    return unlocked + samples


def apply_manual_filters(lessons: Sequence[LessonRecord], filters: ManualFilters) -> List[LessonRecord]:
    """Narrow an already-selected set; never adds lessons."""
    filtered = list(lessons)
    if filters.content_type is not None:
        filtered = [lesson for lesson in filtered if lesson.content_type == filters.content_type]
    if filters.level is not None:
        filtered = [lesson for lesson in filtered if lesson.level == filters.level]
    if filters.language is not None:
        filtered = [lesson for lesson in filtered if lesson.language_support == filters.language]
    return filtered


def sort_for_display(lessons: Sequence[LessonRecord]) -> List[LessonRecord]:
    """Numbered lessons newest first, then evergreen lessons in their existing order."""
    numbered = [lesson for lesson in lessons if not lesson.is_evergreen]
    evergreen = [lesson for lesson in lessons if lesson.is_evergreen]
    numbered.sort(key=lambda lesson: lesson.week_number or 0, reverse=True)
    return numbered + evergreen


__all__ = [
    "ManualFilters",
    "apply_manual_filters",
    "published_in_order",
    "select_visible_lessons",
    "sort_for_display",
]
