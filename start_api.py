#!/usr/bin/env python3
"""Container entrypoint for the guest-house API.

Waits for Postgres, brings the schema to head, makes sure the room inventory,
staff accounts and permission matrix exist, then hands the process over to
uvicorn.
"""
import os
import sys

import wait_for_db  # noqa: F401  blocks until the database accepts connections

from alembic import command
from alembic.config import Config

from guesthouse.core.config import settings
from guesthouse.core.logging import configure_logging, get_logger

logger = get_logger("start_api")


def migrate() -> None:
    cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(cfg, "head")
    logger.info("migrations_applied")


def seed() -> None:
    # imported late so the session factory binds to the migrated schema
    from guesthouse.seed import run

    run()


def serve() -> None:
    port = os.getenv("PORT", "8000")
    logger.info("starting_uvicorn", port=port, env=settings.ENV)
    os.execv(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "guesthouse.main:app", "--host", "0.0.0.0", "--port", port],
    )


if __name__ == "__main__":
    configure_logging()
    migrate()
    seed()
    serve()
