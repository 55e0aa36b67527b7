"""Lesson catalog models, the catalog store, and the scheduled release job."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Annotated, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .cache import catalog_cache
from .config import get_settings
from .db.session import store_scope
from .learner_profile import DEFAULT_SUPPORT_LANGUAGE, SupportLanguage
from .telemetry import emit_event

logger = logging.getLogger(__name__)

ContentCategory = Literal["esl", "clil"]
LessonLevel = Literal["beginner", "intermediate"]

# Legacy storage value marking sample content in the ``week_number`` column.
EVERGREEN_WEEK_NUMBER = 999


class EvergreenSlot(BaseModel):
    """Sample lesson outside the release schedule; always visible."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["evergreen"] = "evergreen"


class NumberedSlot(BaseModel):
    """Lesson released in catalog week ``week_number``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["numbered"] = "numbered"
    week_number: int = Field(ge=1)


LessonSlot = Annotated[Union[EvergreenSlot, NumberedSlot], Field(discriminator="kind")]


def slot_from_week_number(week_number: int) -> EvergreenSlot | NumberedSlot:
    if week_number == EVERGREEN_WEEK_NUMBER:
        return EvergreenSlot()
    return NumberedSlot(week_number=week_number)


def slot_to_week_number(slot: EvergreenSlot | NumberedSlot) -> int:
    if isinstance(slot, NumberedSlot):
        return slot.week_number
    return EVERGREEN_WEEK_NUMBER


class LessonRecord(BaseModel):
    """Catalog entry. The engine never mutates these."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    slot: LessonSlot
    content_type: ContentCategory = "esl"
    level: LessonLevel = "beginner"
    language_support: SupportLanguage = DEFAULT_SUPPORT_LANGUAGE
    published: bool = True
    release_date: Optional[date] = None

    @property
    def is_evergreen(self) -> bool:
        return isinstance(self.slot, EvergreenSlot)

    @property
    def week_number(self) -> Optional[int]:
        """Release week for numbered lessons, ``None`` for evergreen ones."""
        if isinstance(self.slot, NumberedSlot):
            return self.slot.week_number
        return None


def partition_lessons(lessons: Iterable[LessonRecord]) -> tuple[List[LessonRecord], List[LessonRecord]]:
    """Split lessons into (evergreen, numbered), preserving input order."""
    evergreen: List[LessonRecord] = []
    numbered: List[LessonRecord] = []
    for lesson in lessons:
        if lesson.is_evergreen:
            evergreen.append(lesson)
        else:
            numbered.append(lesson)
    return evergreen, numbered


if TYPE_CHECKING:
    from .repositories.lessons import LessonRepository


def _repo() -> "LessonRepository":
    from .repositories.lessons import lessons as repository

    return repository


class CatalogStore:
    """Database-backed lesson catalog with a process-local snapshot of published lessons."""

    def list_published(self) -> List[LessonRecord]:
        cached = catalog_cache.get(get_settings().catalog_cache_ttl_seconds)
        if cached is not None:
            return cached
        with store_scope(commit=False) as session:
            lessons = _repo().list_published(session)
        catalog_cache.set(lessons)
        return list(lessons)

    def max_week_number(self) -> int:
        """Highest published numbered week, or 1 for an empty catalog."""
        with store_scope(commit=False) as session:
            return _repo().max_week_number(session) or 1

    def upsert(self, lesson: LessonRecord) -> LessonRecord:
        with store_scope() as session:
            stored = _repo().upsert(session, lesson)
        catalog_cache.invalidate()
        return stored

    def delete(self, lesson_id: str) -> bool:
        with store_scope() as session:
            removed = _repo().delete(session, lesson_id)
        catalog_cache.invalidate()
        return removed

    def release_due(self, today: date) -> List[LessonRecord]:
        """Publish every lesson whose release date is on or before ``today``."""
        with store_scope() as session:
            released = _repo().release_due(session, today)
        if released:
            catalog_cache.invalidate()
            logger.info("Released %d lesson(s) due on or before %s", len(released), today.isoformat())
            for lesson in released:
                logger.info("Released week %s: %s", lesson.week_number, lesson.title)
        else:
            logger.info("No lessons due for release on %s", today.isoformat())
        emit_event(
            "lessons_released",
            release_day=today,
            count=len(released),
            lesson_ids=[lesson.id for lesson in released],
        )
        return released


catalog_store = CatalogStore()


__all__ = [
    "CatalogStore",
    "ContentCategory",
    "EVERGREEN_WEEK_NUMBER",
    "EvergreenSlot",
    "LessonLevel",
    "LessonRecord",
    "LessonSlot",
    "NumberedSlot",
    "catalog_store",
    "partition_lessons",
    "slot_from_week_number",
    "slot_to_week_number",
]
