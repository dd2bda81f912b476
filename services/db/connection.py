"""Engine and session helpers for the SQLModel store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from services.config import config

log = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data/trekchat.db")

_engines: Dict[str, object] = {}


def get_engine(db_path: Optional[str] = None):
    """Return a cached engine for ``db_path``.

    ``":memory:"`` gives a single-connection in-memory SQLite database that all
    sessions share, which is what the test-suite uses.
    """
    path = db_path or config.DB_PATH or str(DEFAULT_DB_PATH)
    engine = _engines.get(path)
    if engine is not None:
        return engine

    if path == ":memory:":
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{path}",
            connect_args={"check_same_thread": False},
        )
    _engines[path] = engine
    log.debug(f"Created engine for {path}")
    return engine


@contextmanager
def session_scope(db_path: Optional[str] = None) -> Iterator[Session]:
    """Commit on success, roll back on error."""
    session = Session(get_engine(db_path), expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
