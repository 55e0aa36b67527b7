"""Telemetry listener that persists progression events for the analytics dashboard."""

from __future__ import annotations

import logging
from typing import Set

from .db.session import session_scope
from .repositories.audit import record_audit
from .telemetry import TelemetryEvent, register_listener

logger = logging.getLogger(__name__)

TELEMETRY_ACTOR = "telemetry"

_MONITORED_EVENTS: Set[str] = {
    "lesson_completion_recorded",
    "lessons_released",
}


def _persist_event(event: TelemetryEvent) -> None:
    if event.name not in _MONITORED_EVENTS:
        return
    learner_id = event.payload.get("learner_id")
    if learner_id is not None and (not isinstance(learner_id, str) or not learner_id.strip()):
        return
    try:
        with session_scope() as session:
            record_audit(session, learner_id, event.name, dict(event.payload), actor=TELEMETRY_ACTOR)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to persist telemetry event %s for learner_id=%s", event.name, learner_id)


register_listener(_persist_event)

__all__ = ["TELEMETRY_ACTOR", "_MONITORED_EVENTS", "_persist_event"]
