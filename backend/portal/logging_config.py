import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """Configure process logging from PORTAL_* environment flags."""
    level = os.getenv("PORTAL_LOG_LEVEL", "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": DEFAULT_LOG_FORMAT,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
            "loggers": {
                "sqlalchemy.engine": {
                    "level": os.getenv("PORTAL_SQL_LOG_LEVEL", "WARNING").upper(),
                },
            },
        }
    )

    if os.getenv("PORTAL_DEBUG_HTTP", "0") == "1":
        logging.getLogger("httpx").setLevel(logging.DEBUG)
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
