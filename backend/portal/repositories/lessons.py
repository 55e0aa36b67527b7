"""Database-backed lesson catalog repository."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..catalog import EVERGREEN_WEEK_NUMBER, LessonRecord, slot_from_week_number, slot_to_week_number
from ..db.models import LessonModel
from .audit import record_audit


class LessonRepository:
    """Maps catalog rows to ``LessonRecord``s; the week-number sentinel stays in here."""

    def list_published(self, session: Session) -> List[LessonRecord]:
        stmt = (
            select(LessonModel)
            .where(LessonModel.published.is_(True))
            .order_by(LessonModel.week_number.asc(), LessonModel.id.asc())
        )
        rows = session.execute(stmt).scalars().all()
        return [self._to_domain(row) for row in rows]

    def max_week_number(self, session: Session) -> Optional[int]:
        stmt = select(func.max(LessonModel.week_number)).where(
            LessonModel.published.is_(True),
            LessonModel.week_number != EVERGREEN_WEEK_NUMBER,
        )
        value = session.execute(stmt).scalar_one_or_none()
        return int(value) if value is not None else None

    def upsert(self, session: Session, lesson: LessonRecord) -> LessonRecord:
        model = session.get(LessonModel, lesson.id)
        if model is None:
            model = LessonModel(id=lesson.id)
            session.add(model)
        model.title = lesson.title
        model.week_number = slot_to_week_number(lesson.slot)
        model.content_type = lesson.content_type
        model.level = lesson.level
        model.language_support = lesson.language_support
        model.published = lesson.published
        model.release_date = lesson.release_date
        session.flush()
        return self._to_domain(model)

    def delete(self, session: Session, lesson_id: str) -> bool:
        model = session.get(LessonModel, lesson_id)
        if model is None:
            return False
        session.delete(model)
        session.flush()
        return True

    def release_due(self, session: Session, today: date) -> List[LessonRecord]:
        stmt = (
            select(LessonModel)
            .where(
                LessonModel.published.is_(False),
                LessonModel.release_date.is_not(None),
                LessonModel.release_date <= today,
            )
            .order_by(LessonModel.week_number.asc(), LessonModel.id.asc())
        )
        due = session.execute(stmt).scalars().all()
        if not due:
            return []
        ids = [row.id for row in due]
        session.execute(update(LessonModel).where(LessonModel.id.in_(ids)).values(published=True))
        session.flush()
        for row in due:
            session.refresh(row)
        record_audit(
            session,
            None,
            "lessons_release",
            {"release_day": today.isoformat(), "lesson_ids": ids},
        )
        return [self._to_domain(row) for row in due]

    def _to_domain(self, model: LessonModel) -> LessonRecord:
        return LessonRecord(
            id=model.id,
            title=model.title or "",
            slot=slot_from_week_number(model.week_number),
            content_type=model.content_type,
            level=model.level,
            language_support=model.language_support,
            published=bool(model.published),
            release_date=model.release_date,
        )


lessons = LessonRepository()

__all__ = ["LessonRepository", "lessons"]
