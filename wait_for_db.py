import logging
import time

import psycopg2
from sqlalchemy.engine import make_url

from app.core.config import settings

logger = logging.getLogger("wait_for_db")


def wait_for_db(database_url: str, timeout_s: int, interval_s: float = 1.0) -> None:
    """Block until Postgres accepts connections; re-raise the last error after `timeout_s`."""
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        return

    params = dict(
        host=url.host or "db",
        port=url.port or 5432,
        user=url.username or "nawabus",
        password=url.password or "nawabus",
        dbname=url.database or "nawabus",
        connect_timeout=settings.STORE_TIMEOUT_SECONDS,
    )
    logger.info("waiting for Postgres at %s:%s db=%s (timeout=%ss)", params["host"], params["port"], params["dbname"], timeout_s)
    deadline = time.monotonic() + timeout_s
    while True:
        try:
            psycopg2.connect(**params).close()
            logger.info("Postgres is ready")
            return
        except psycopg2.OperationalError as e:
            if time.monotonic() > deadline:
                logger.error("timed out waiting for Postgres: %s", e)
                raise
            time.sleep(interval_s)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    wait_for_db(settings.DATABASE_URL, settings.DB_WAIT_TIMEOUT_SECONDS)
