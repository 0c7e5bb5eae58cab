"""SQLite location, engine lifecycle and the session context manager.

The engine is built on first use from :func:`database_url`.  Tests swap
it for an in-memory database with :func:`configure_engine`.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path(
    os.environ.get("FLOWTIMER_HOME")
    or Path.home() / ".local" / "share" / "FlowTimer"
)
DB_PATH = APP_SUPPORT_DIR / "flowtimer.db"

_engine: Engine | None = None
_sessions: sessionmaker | None = None


def database_url() -> str:
    """``FLOWTIMER_DB_URL`` if set, else the SQLite file in the data dir."""
    url = os.environ.get("FLOWTIMER_DB_URL")
    if url:
        return url
    APP_SUPPORT_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{DB_PATH}"


def configure_engine(url: str) -> Engine:
    """Replace the current engine with one bound to *url*."""
    global _engine, _sessions
    if _engine is not None:
        _engine.dispose()
    # Sessions are opened from Qt slots; the engine is shared across threads
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    _engine = create_engine(url, connect_args=connect_args)
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.debug("Database engine bound to %s", _engine.url)
    return _engine


def _current_engine() -> Engine:
    if _engine is None:
        configure_engine(database_url())
    return _engine


def init_db() -> None:
    """Create any missing tables."""
    Base.metadata.create_all(_current_engine())


@contextmanager
def get_session():
    """One unit of work: commits on exit, rolls back if the block raises."""
    _current_engine()
    session: Session = _sessions()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
