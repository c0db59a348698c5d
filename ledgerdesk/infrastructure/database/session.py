"""Database session management with a lazily created, process-wide engine"""

from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledgerdesk.config import settings

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def init_engine(database_url: Optional[str] = None) -> Engine:
    """Create the shared engine on first use; later calls return the same one"""
    global _engine, _session_factory
    if _engine is None:
        url = database_url or settings.database_url
        options = {"pool_pre_ping": True}
        if not url.startswith("sqlite"):
            # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
            options.update(pool_size=10, max_overflow=10, pool_recycle=3600)
        _engine = create_engine(url, **options)
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the engine"""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """Dependency injection for database sessions"""
    init_engine()
    db = _session_factory()
    try:
        yield db
    finally:
        db.close()
