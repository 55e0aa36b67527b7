"""Connection pool observability helpers."""

from __future__ import annotations

import logging
import os
import time
import weakref
from dataclasses import dataclass
from typing import Dict

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..telemetry import emit_event

logger = logging.getLogger(__name__)

_TELEMETRY_INTERVAL = float(os.getenv("PORTAL_DB_TELEMETRY_INTERVAL", "30"))


@dataclass
class PoolCounters:
    connects: int = 0
    checkouts: int = 0
    checkins: int = 0
    invalidations: int = 0
    last_emit: float = 0.0

    @property
    def in_use(self) -> int:
        return max(self.checkouts - self.checkins, 0)

    def as_payload(self) -> Dict[str, int]:
        return {
            "connects": self.connects,
            "checkouts": self.checkouts,
            "checkins": self.checkins,
            "invalidations": self.invalidations,
            "in_use": self.in_use,
        }


_COUNTERS: "weakref.WeakKeyDictionary[Engine, PoolCounters]" = weakref.WeakKeyDictionary()


def instrument_engine(engine: Engine) -> None:
    """Count pool activity for ``engine`` and emit throttled ``db_pool_status`` events."""
    if engine in _COUNTERS:
        return
    counters = PoolCounters()
    _COUNTERS[engine] = counters

    def _report(trigger: str) -> None:
        now = time.time()
        if _TELEMETRY_INTERVAL > 0 and (now - counters.last_emit) < _TELEMETRY_INTERVAL:
            return
        counters.last_emit = now
        emit_event(
            "db_pool_status",
            trigger=trigger,
            status=_pool_status(engine),
            **counters.as_payload(),
        )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.connects += 1
        _report("connect")

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:  # type: ignore[no-untyped-def]
        counters.checkouts += 1
        _report("checkout")

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.checkins += 1

    @event.listens_for(engine, "invalidate")
    def _on_invalidate(dbapi_connection, connection_record, exception) -> None:  # type: ignore[no-untyped-def]
        counters.invalidations += 1
        logger.warning("Pooled connection invalidated: %s", exception)
        _report("invalidate")


def get_pool_snapshot(engine: Engine) -> Dict[str, object]:
    """Return the pool status string and counters recorded for ``engine``."""
    counters = _COUNTERS.get(engine) or PoolCounters()
    return {"status": _pool_status(engine), **counters.as_payload()}


def _pool_status(engine: Engine) -> str:
    try:
        return engine.pool.status()  # type: ignore[no-untyped-call]
    except Exception as exc:  # pragma: no cover - pool implementations vary
        return f"unavailable: {exc}"


__all__ = [
    "PoolCounters",
    "get_pool_snapshot",
    "instrument_engine",
]
