"""Upgrade the portal schema, then optionally publish lessons already due.

Deploys run this before starting the API. ``--release`` lets an environment
that was down over a release day catch up before serving traffic.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

from portal.catalog import catalog_store
from portal.config import get_settings
from portal.learning_week import ReleaseCalendar, utc_now
from portal.logging_config import configure_logging

LOGGER = logging.getLogger("portal.migrations")
BACKEND_ROOT = Path(__file__).resolve().parent.parent


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upgrade the lesson portal schema.")
    parser.add_argument("--revision", default="head", help="Target revision (default: head).")
    parser.add_argument(
        "--release",
        action="store_true",
        help="After upgrading, publish lessons whose release date has passed.",
    )
    return parser.parse_args(argv)


def resolve_database_url() -> str:
    url = get_settings().database_url
    if not url:
        raise RuntimeError("PORTAL_DATABASE_URL must be set before running migrations.")
    return url


def get_alembic_config(database_url: str) -> Config:
    config = Config(str(BACKEND_ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    # ConfigParser interpolation: percent-encoded passwords need doubling.
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    config.attributes["configure_logger"] = False
    return config


def upgrade(revision: str = "head", *, database_url: Optional[str] = None) -> None:
    config = get_alembic_config(database_url or resolve_database_url())
    LOGGER.info("Upgrading portal schema to %s", revision)
    command.upgrade(config, revision)
    LOGGER.info("Schema is at %s.", revision)


def release_overdue() -> int:
    release_day = ReleaseCalendar.from_settings().localize(utc_now()).date()
    return len(catalog_store.release_due(release_day))


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        upgrade(args.revision)
        if args.release:
            LOGGER.info("Published %d overdue lesson(s).", release_overdue())
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
