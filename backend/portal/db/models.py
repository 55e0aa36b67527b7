"""ORM models backing the lesson portal persistence layer."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class LearnerProfileModel(TimestampMixin, Base):
    __tablename__ = "learner_profiles"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    join_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    subscription_tier: Mapped[str] = mapped_column(String(32), default="free", nullable=False)
    subscription_status: Mapped[str] = mapped_column(String(32), default="inactive", nullable=False)
    preferred_level: Mapped[str] = mapped_column(String(32), default="both", nullable=False)
    language_support: Mapped[str] = mapped_column(String(32), default="english", nullable=False)

    completions: Mapped[list["LessonCompletionModel"]] = relationship(
        back_populates="learner", cascade="all, delete-orphan"
    )


class LessonModel(TimestampMixin, Base):
    __tablename__ = "lessons"
    __table_args__ = (
        Index("ix_lessons_published_week", "published", "week_number"),
        Index("ix_lessons_release_date", "release_date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    content_type: Mapped[str] = mapped_column(String(16), nullable=False)
    level: Mapped[str] = mapped_column(String(32), nullable=False)
    language_support: Mapped[str] = mapped_column(String(32), default="english", nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    release_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    completions: Mapped[list["LessonCompletionModel"]] = relationship(
        back_populates="lesson", cascade="all, delete-orphan"
    )


class LessonCompletionModel(TimestampMixin, Base):
    __tablename__ = "lesson_completions"
    __table_args__ = (
        Index("ix_lesson_completions_learner", "learner_id"),
        UniqueConstraint("learner_id", "lesson_id", name="uq_lesson_completion_learner_lesson"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    learner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("learner_profiles.id", ondelete="CASCADE"), nullable=False
    )
    lesson_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    percentage_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    learner: Mapped[LearnerProfileModel] = relationship(back_populates="completions")
    lesson: Mapped[LessonModel] = relationship(back_populates="completions")


class PersistenceAuditEventModel(Base):
    __tablename__ = "persistence_audit_events"
    __table_args__ = (Index("ix_audit_events_learner_created", "learner_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    learner_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("learner_profiles.id", ondelete="SET NULL"), nullable=True
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    learner: Mapped[LearnerProfileModel | None] = relationship()


__all__ = [
    "LearnerProfileModel",
    "LessonCompletionModel",
    "LessonModel",
    "PersistenceAuditEventModel",
]
