"""Database infrastructure: engine, sessions and the storage error boundary."""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_db_engine(config: BaseConfig):
    """Create SQLModel engine from configuration."""
    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())

    if engine.dialect.name == "sqlite" and config.SQLITE_PRAGMAS:
        pragmas = dict(config.SQLITE_PRAGMAS)

        @event.listens_for(engine, "connect")
        def _apply_pragmas(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            for key, value in pragmas.items():
                cursor.execute(f"PRAGMA {key}={value}")
            cursor.close()

    return engine


def init_database(engine) -> None:
    """Initialize database schema."""
    # Import all models to ensure they're registered
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


@contextmanager
def session_scope(engine) -> Iterator[Session]:
    """Provide a transactional scope around operations."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_session_factory(engine) -> Callable[[], Any]:
    """Create a session factory returning transactional session scopes."""

    def factory():
        return session_scope(engine)

    return factory


def storage_guard(default: Callable[[], T]) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Turn storage failures into a logged, safe default result.

    Read paths degrade to an empty collection and write paths report failure
    instead of crashing the caller.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except SQLAlchemyError:
                logger.error("Storage operation %s failed", func.__qualname__, exc_info=True)
                return default()

        return wrapper

    return decorator
