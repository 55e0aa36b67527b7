"""Database-backed completion history repository."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..catalog import slot_from_week_number
from ..completions import CompletionEvent
from ..db.models import LearnerProfileModel, LessonCompletionModel, LessonModel
from ..errors import NotFound
from .audit import record_audit


class CompletionRepository:
    """Stores at most one progress row per (learner, lesson)."""

    def list_for_learner(self, session: Session, learner_id: str) -> List[CompletionEvent]:
        stmt = (
            select(LessonCompletionModel, LessonModel.week_number)
            .join(LessonModel, LessonModel.id == LessonCompletionModel.lesson_id)
            .where(LessonCompletionModel.learner_id == learner_id)
            .order_by(LessonCompletionModel.completed_at.asc(), LessonCompletionModel.lesson_id.asc())
        )
        rows = session.execute(stmt).all()
        return [self._to_domain(row, week_number) for row, week_number in rows]

    def upsert_completion(
        self,
        session: Session,
        learner_id: str,
        lesson_id: str,
        *,
        is_completed: bool,
        percentage_score: int,
        completed_at: Optional[datetime],
    ) -> CompletionEvent:
        if session.get(LearnerProfileModel, learner_id) is None:
            raise NotFound(f"Learner profile '{learner_id}' does not exist.")
        lesson = session.get(LessonModel, lesson_id)
        if lesson is None:
            raise NotFound(f"Lesson '{lesson_id}' does not exist.")

        stmt = select(LessonCompletionModel).where(
            LessonCompletionModel.learner_id == learner_id,
            LessonCompletionModel.lesson_id == lesson_id,
        )
        record = session.execute(stmt).scalar_one_or_none()
        created = record is None
        if record is None:
            record = LessonCompletionModel(
                learner_id=learner_id,
                lesson_id=lesson_id,
                is_completed=is_completed,
                percentage_score=percentage_score,
                completed_at=completed_at if is_completed else None,
            )
            session.add(record)
        elif is_completed:
            # The first completion timestamp is kept so streak buckets never move.
            if not record.is_completed or record.completed_at is None:
                record.completed_at = completed_at
            record.is_completed = True
            record.percentage_score = max(record.percentage_score or 0, percentage_score)
        elif not record.is_completed:
            record.percentage_score = percentage_score

        session.flush()
        record_audit(
            session,
            learner_id,
            "lesson_completion_upsert",
            {
                "lesson_id": lesson_id,
                "created": created,
                "is_completed": record.is_completed,
                "percentage_score": record.percentage_score,
            },
        )
        return self._to_domain(record, lesson.week_number)

    def _to_domain(self, model: LessonCompletionModel, week_number: int) -> CompletionEvent:
        return CompletionEvent(
            learner_id=model.learner_id,
            lesson_id=model.lesson_id,
            is_completed=bool(model.is_completed),
            completed_at=model.completed_at,
            percentage_score=int(model.percentage_score or 0),
            slot=slot_from_week_number(week_number),
        )


completions = CompletionRepository()

__all__ = ["CompletionRepository", "completions"]
