"""
Database configuration and session management.

One engine per process, a session per request through ``get_db``. SQLite is
used for local development and tests, PostgreSQL in production.
"""
from typing import Generator

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ledgerline.config import get_settings

logger = structlog.get_logger(__name__)

settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite connections get foreign key enforcement turned on so organization
    deletes cascade to memberships and transactions as they do on PostgreSQL.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )

    sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False})

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = create_db_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that provides a database session.

    Uncommitted work is rolled back when the request fails.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables for the registered models."""
    import ledgerline.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("database_initialized", tables=sorted(Base.metadata.tables))
