import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./dentos.db"

# Create Base class for models
Base = declarative_base()

# Internal lazy globals
_engine = None
_SessionLocal = None
_database_url = None


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_engine():
    """Return a cached SQLAlchemy engine, creating it from DATABASE_URL on
    first call. This allows tests to set DATABASE_URL before the engine is
    constructed."""
    global _engine, _SessionLocal, _database_url
    database_url = get_database_url()
    if _engine is not None and _database_url == database_url:
        return _engine

    if _engine is not None:
        _engine.dispose()
        _SessionLocal = None

    url = make_url(database_url)
    if url.drivername.startswith("postgres"):
        _engine = create_engine(
            database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,  # Detects and refreshes stale connections
            pool_recycle=3600,
            connect_args={"application_name": "dentos", "connect_timeout": 10},
        )
    elif url.drivername.startswith("sqlite") and url.database in (None, "", ":memory:"):
        # Single shared in-memory database so DDL persists across sessions
        _engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif url.drivername.startswith("sqlite"):
        _engine = create_engine(database_url, connect_args={"check_same_thread": False})
    else:
        _engine = create_engine(database_url, pool_pre_ping=True)

    logger.info(
        "Database engine created",
        extra={"context": {"dialect": _engine.dialect.name, "database": url.database}},
    )
    _database_url = database_url
    return _engine


def get_sessionmaker():
    """Return a cached sessionmaker bound to the lazy engine."""
    global _SessionLocal
    engine = get_engine()
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )
    return _SessionLocal


def SessionLocal() -> Session:
    """Open a new Session on the current engine."""
    return get_sessionmaker()()


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run a group of repository writes as one database transaction.

    Repositories called inside the block must be given ``commit=False``.
    The block commits on success and rolls back on any exception, which is
    re-raised.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def create_tables():
    """Create all tables on the lazy engine."""
    # Models must be imported so Base.metadata is populated
    from dentos.db import base  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def drop_tables():
    from dentos.db import base  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
