"""Simple in-memory cache for the published lesson catalog."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Any, Callable, List, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _CatalogEntry:
    lessons: List[Any]
    cached_at: datetime


class CatalogCache:
    """Process-local snapshot of published lessons.

    Other processes (the release job, admin tooling) write the lessons table
    too, so a snapshot is only served while it is younger than ``max_age``.
    Lesson records are frozen models; a shallow copy of the list is enough.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._entry: Optional[_CatalogEntry] = None
        self._lock = RLock()
        self._clock = clock

    def get(self, max_age: Optional[float] = None) -> Optional[List[Any]]:
        with self._lock:
            entry = self._entry
        if entry is None:
            return None
        if max_age is not None and self._clock() - entry.cached_at >= timedelta(seconds=max_age):
            self.invalidate()
            return None
        return list(entry.lessons)

    def set(self, lessons: List[Any]) -> None:
        with self._lock:
            self._entry = _CatalogEntry(
                lessons=list(lessons),
                cached_at=self._clock(),
            )

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None

    def clear(self) -> None:
        self.invalidate()


catalog_cache = CatalogCache()

__all__ = ["CatalogCache", "catalog_cache"]
