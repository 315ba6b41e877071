"""
Declarative base and the process-wide store handle.

The engine is created lazily on first use and reused for the life of the
process. Concurrent first callers block on one lock, so only a single
engine is ever built; `dispose_engine()` tears it down and the next
caller builds a fresh one.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from habitrollup.core.config import settings
from habitrollup.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_lock = threading.Lock()


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=settings.DB_POOL_PRE_PING)


def get_engine() -> Engine:
    global _engine, _session_factory
    if _engine is not None:
        return _engine
    with _lock:
        if _engine is None:
            try:
                engine = _build_engine(settings.DATABASE_URL)
            except (ArgumentError, ImportError) as exc:
                logger.warning("Could not initialise store: %s", exc)
                raise StoreUnavailableError(f"Could not initialise store: {exc}") from exc
            _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
            _engine = engine
            logger.info("Store engine initialised", extra={"habit_dialect": engine.dialect.name})
    return _engine


def get_session_factory() -> sessionmaker:
    get_engine()
    if _session_factory is None:
        raise StoreUnavailableError("Store engine was disposed.")
    return _session_factory


def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _session_factory
    with _lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("Store engine disposed")
        _engine = None
        _session_factory = None


def get_db() -> Iterator[Session]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()
