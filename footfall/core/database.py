"""
Database connection and session management.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from footfall.core.config import get_settings
from footfall.core.models import Base

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Singleton engine & session factory, created once and reused everywhere
# ---------------------------------------------------------------------------
_engine: Optional[Engine] = None
_SessionLocal = None


def get_engine() -> Engine:
    """
    Get the shared database engine (singleton).

    The engine is created once from DATABASE_URL and reused for the
    lifetime of the process.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.require_database_url()
        engine_kwargs = {"pool_pre_ping": True, "echo": False}
        if not url.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
        _engine = create_engine(url, **engine_kwargs)
    return _engine


def create_tables(engine: Optional[Engine] = None) -> None:
    """
    Create all core tables if they don't exist.

    Idempotent - safe to call multiple times.
    """
    if engine is None:
        engine = get_engine()

    logger.info("Creating core tables if they don't exist...")
    Base.metadata.create_all(bind=engine)
    logger.info("Core tables ready")


def get_session_factory():
    """Get the shared session factory (singleton)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=get_engine()
        )
    return _SessionLocal


def reset_engine() -> None:
    """Dispose the shared engine so the next call re-reads DATABASE_URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
