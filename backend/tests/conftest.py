from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy.engine import Engine

from portal.cache import catalog_cache
from portal.config import get_settings
from portal.db import models  # noqa: F401  registers tables on Base.metadata
from portal.db.base import Base
from portal.db.session import dispose_engine, get_engine


@pytest.fixture
def portal_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Engine]:
    """Fresh SQLite database wired into the portal settings for one test."""
    db_path = tmp_path / "portal.db"
    monkeypatch.setenv("PORTAL_DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()
    dispose_engine()
    catalog_cache.clear()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    catalog_cache.clear()
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def no_database(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Portal settings with no database configured."""
    monkeypatch.delenv("PORTAL_DATABASE_URL", raising=False)
    get_settings.cache_clear()
    dispose_engine()
    catalog_cache.clear()
    yield
    dispose_engine()
    get_settings.cache_clear()
