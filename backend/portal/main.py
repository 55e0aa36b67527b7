import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .developer_routes import router as developer_router
from .learning_routes import router as learning_router
from .logging_config import configure_logging
from . import telemetry_pipeline  # noqa: F401  registers the audit listener


configure_logging()
logger = logging.getLogger(__name__)
app = FastAPI(title="Lesson Portal Backend", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

settings_snapshot = get_settings()
logger.info("Database configured: %s", bool(settings_snapshot.database_url))
logger.info(
    "Unlock schedule: starter pack %d, backlog cushion %d, release weekday %d (%s)",
    settings_snapshot.starter_pack_size,
    settings_snapshot.backlog_cushion,
    settings_snapshot.release_weekday,
    settings_snapshot.release_timezone,
)

app.include_router(learning_router)
if settings_snapshot.debug_endpoints:
    logger.warning("Developer endpoints are enabled")
    app.include_router(developer_router)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "mode": "lesson-portal"}


@app.get("/healthz/database")
def database_health() -> Dict[str, Any]:
    try:
        engine = get_engine()
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return {
        "status": "ok",
        "dialect": engine.dialect.name,
        "pool": get_pool_snapshot(engine),
    }
