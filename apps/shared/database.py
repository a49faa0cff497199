"""
Database configuration and session management

This module provides the SQLAlchemy setup backing the key-value stores.
The engine is created lazily from DATABASE_URL; when the variable is unset
the SQL stores are treated as unconfigured.
"""

from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Depends
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

from apps.shared.config import Settings, get_settings

# Base class for ORM models
Base = declarative_base()


@lru_cache
def get_engine(database_url: str) -> Engine:
    """
    Create (once per URL) the engine for database_url.

    Using NullPool for better compatibility with containerized environments
    """
    return create_engine(
        database_url,
        poolclass=NullPool,
        echo=False,  # Set to True for SQL query logging during development
    )


def get_session_factory(database_url: str) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine(database_url))


def init_db(database_url: str) -> None:
    """Create the tables for all models registered on Base."""
    # Import models so they register themselves on Base.metadata
    from apps.shared import kv_store  # noqa: F401

    Base.metadata.create_all(bind=get_engine(database_url))


def get_db(settings: Settings = Depends(get_settings)) -> Iterator[Optional[Session]]:
    """
    Dependency injection for database sessions
    Yields None when DATABASE_URL is not configured.

    Usage in FastAPI endpoints:

    @app.get("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        # use db here
        pass
    """
    if not settings.database_url:
        yield None
        return

    db = get_session_factory(settings.database_url)()
    try:
        yield db
    finally:
        db.close()


def check_db_connection(database_url: Optional[str]) -> bool:
    """
    Test database connectivity
    Returns True if connection successful, False otherwise
    """
    if not database_url:
        return False
    try:
        with get_engine(database_url).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
