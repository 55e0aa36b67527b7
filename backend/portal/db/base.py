"""Declarative base and the bookkeeping columns shared by portal tables."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Registry for portal tables; ``Base.metadata`` backs Alembic and the test fixtures."""


class TimestampMixin:
    # Server defaults match the CURRENT_TIMESTAMP defaults in the initial migration.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["Base", "TimestampMixin"]
