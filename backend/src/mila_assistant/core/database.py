"""
Database helpers for the SQL-backed memory store.

Engines are created per store instead of at import time so tests and
multi-tenant deployments can point at separate databases.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def create_memory_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine suitable for use from worker threads."""
    kwargs = {"echo": echo, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        # Sessions are opened from asyncio.to_thread workers
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Get database session with transaction management.

    Yields:
        Database session with transaction support

    Raises:
        SQLAlchemyError: If database operation fails
    """
    db = factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database transaction error: {e}")
        db.rollback()
        raise
    except Exception as e:
        logger.error(f"Unexpected error in database transaction: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(engine: Engine) -> None:
    """Create all memory tables."""
    from mila_assistant.models import Base

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Memory tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create memory tables: {e}")
        raise


def check_database_connection(engine: Engine) -> bool:
    """
    Check if database connection is working.

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
