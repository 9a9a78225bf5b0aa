"""Database engine and session factory for SQLAlchemy."""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ..config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False},  # SQLite needs this for multi-thread
    echo=False,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Session:
    """Dependency for FastAPI endpoints."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on success, roll back on any exception and re-raise."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def utc_naive(value: datetime | None) -> datetime | None:
    """Normalize a datetime to naive UTC, the form stored in every table.

    Naive inputs are taken to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_database(bind=None) -> None:
    """Create all tables.

    Models must be imported before create_all() so they register with Base.metadata.
    """
    from . import reading  # noqa: F401
    from . import daily_stats  # noqa: F401
    from . import alert  # noqa: F401
    from . import setting  # noqa: F401

    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)

    # WAL lets the collector write while request handlers read
    if bind.dialect.name == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        with bind.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.commit()
