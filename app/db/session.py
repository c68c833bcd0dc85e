from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    """Bound every round trip to the store by STORE_TIMEOUT_SECONDS."""
    timeout = settings.STORE_TIMEOUT_SECONDS
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if url.startswith("postgresql"):
        return {"connect_timeout": timeout, "options": f"-c statement_timeout={timeout * 1000}"}
    return {}


def make_engine(url: str, **kwargs):
    return create_engine(url, pool_pre_ping=True, connect_args=_connect_args(url), **kwargs)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
