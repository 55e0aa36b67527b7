"""Completion events and the completion store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import EvergreenSlot, LessonSlot, NumberedSlot
from .db.session import store_scope
from .learner_profile import ensure_aware

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100


class CompletionEvent(BaseModel):
    """Learner progress on one lesson, joined with the lesson's catalog slot."""

    model_config = ConfigDict(frozen=True)

    learner_id: str
    lesson_id: str
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    percentage_score: int = Field(default=0, ge=MIN_SCORE, le=MAX_SCORE)
    slot: Optional[LessonSlot] = None

    @field_validator("completed_at")
    @classmethod
    def _aware_completed_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    @property
    def counts_toward_progression(self) -> bool:
        return self.is_completed and isinstance(self.slot, NumberedSlot)

    @property
    def is_evergreen(self) -> bool:
        return isinstance(self.slot, EvergreenSlot)


def clamp_score(score: float | int) -> int:
    """Round and clamp a raw score into the 0-100 range."""
    value = int(round(score))
    if value < MIN_SCORE or value > MAX_SCORE:
        logger.warning("Clamping out-of-range score %s", score)
    return max(MIN_SCORE, min(MAX_SCORE, value))


if TYPE_CHECKING:
    from .repositories.completions import CompletionRepository


def _repo() -> "CompletionRepository":
    from .repositories.completions import completions as repository

    return repository


class CompletionStore:
    """Database-backed completion history."""

    def list_for_learner(self, learner_id: str) -> List[CompletionEvent]:
        with store_scope(commit=False) as session:
            return _repo().list_for_learner(session, learner_id)

    def upsert_completion(
        self,
        learner_id: str,
        lesson_id: str,
        *,
        is_completed: bool,
        percentage_score: int,
        completed_at: Optional[datetime],
    ) -> CompletionEvent:
        with store_scope() as session:
            return _repo().upsert_completion(
                session,
                learner_id,
                lesson_id,
                is_completed=is_completed,
                percentage_score=percentage_score,
                completed_at=completed_at,
            )


completion_store = CompletionStore()


__all__ = [
    "CompletionEvent",
    "CompletionStore",
    "MAX_SCORE",
    "MIN_SCORE",
    "clamp_score",
    "completion_store",
]
