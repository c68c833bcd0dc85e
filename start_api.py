#!/usr/bin/env python3
"""Boot the API container: wait for Postgres, migrate, seed demo data, exec uvicorn."""
import logging
import os
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import make_engine
from app.seed import run as run_seed
from wait_for_db import wait_for_db

logger = logging.getLogger("start_api")


def migrate() -> None:
    cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    command.upgrade(cfg, "head")


def seed() -> None:
    # Fresh engine: the app engine's pooled connections may predate the migration
    engine = make_engine(settings.DATABASE_URL)
    try:
        run_seed(Session(bind=engine, autoflush=False))
    finally:
        engine.dispose()


def main() -> None:
    configure_logging()
    wait_for_db(settings.DATABASE_URL, settings.DB_WAIT_TIMEOUT_SECONDS)
    migrate()
    seed()
    logger.info("starting uvicorn on port %s", settings.PORT)
    os.execv(
        sys.executable,
        [sys.executable, "-m", "uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", str(settings.PORT)],
    )


if __name__ == "__main__":
    main()
