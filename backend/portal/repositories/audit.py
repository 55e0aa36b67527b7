"""Append-only audit trail shared by the repositories."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import PersistenceAuditEventModel


class AuditEvent(BaseModel):
    event_type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    actor: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def record_audit(
    session: Session,
    learner_id: Optional[str],
    event_type: str,
    payload: Dict[str, Any],
    *,
    actor: str = "system",
) -> None:
    session.add(
        PersistenceAuditEventModel(
            learner_id=learner_id,
            event_type=event_type,
            payload=payload,
            actor=actor,
        )
    )


def recent_audit_events(
    session: Session,
    *,
    learner_id: Optional[str] = None,
    event_types: Optional[List[str]] = None,
    limit: int = 50,
) -> List[AuditEvent]:
    stmt = select(PersistenceAuditEventModel)
    if learner_id is not None:
        stmt = stmt.where(PersistenceAuditEventModel.learner_id == learner_id)
    if event_types:
        stmt = stmt.where(PersistenceAuditEventModel.event_type.in_(event_types))
    stmt = stmt.order_by(PersistenceAuditEventModel.created_at.desc()).limit(max(limit, 1))
    rows = session.execute(stmt).scalars().all()
    return [
        AuditEvent(
            event_type=row.event_type,
            payload=dict(row.payload or {}),
            actor=row.actor,
            created_at=row.created_at,
        )
        for row in rows
    ]


__all__ = ["AuditEvent", "recent_audit_events", "record_audit"]
