"""
SQLAlchemy engine and sessions for the settings snapshot store.
The database file comes from config (database.path) or ~/.masjid/masjid.db.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()

MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Optional[Engine]:
    return _engine


def is_initialized() -> bool:
    return _session_factory is not None


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """One unit of work: commit when the block succeeds, roll back when it raises."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def database_url(config_data: Optional[Dict[str, Any]] = None) -> str:
    """sqlite URL for database.path in config, else the per-user default file."""
    section = (config_data or {}).get("database") or {}
    path = section.get("path") if isinstance(section, dict) else None
    if path:
        target = Path(path).expanduser().resolve()
    else:
        target = Path.home() / ".masjid" / "masjid.db"
    target.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{target}"


def _build_engine(db_url: str) -> Engine:
    if db_url in MEMORY_URLS:
        # every session must share the single in-memory connection
        return create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(db_url, future=True)


def init_db(config_data: Optional[Dict[str, Any]] = None, db_url: Optional[str] = None) -> None:
    """
    Create the engine and the tables. Calling it again is a no-op until
    dispose_db().

    Args:
        config_data: app config; database.path is used when db_url is not given
        db_url: SQLAlchemy URL override ("sqlite://" for an in-memory database)
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.debug("Database already initialized")
        return

    url = db_url or database_url(config_data)
    engine = _build_engine(url)

    # registers the tables on Base
    from masjid.prayer import models  # noqa: F401

    Base.metadata.create_all(engine)
    _engine = engine
    _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    logger.info(f"Database initialized: {url.split('?')[0]}")


def dispose_db() -> None:
    """Close the engine and forget it, so init_db() can be called again."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
