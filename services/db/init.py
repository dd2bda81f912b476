"""Create (or rebuild) the chat schema."""

from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import SQLModel

from .connection import get_engine
from .models import *  # noqa: F401,F403

log = logging.getLogger(__name__)


def init_db(db_path: Optional[str] = None):
    """Create missing tables; existing data is left alone."""
    engine = get_engine(db_path)
    SQLModel.metadata.create_all(engine)
    log.info(f"Database ready: {engine.url} ({len(SQLModel.metadata.tables)} tables)")
    return engine


def reset_db(db_path: Optional[str] = None):
    """Drop every table and create them again. Destroys all data."""
    engine = get_engine(db_path)
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    log.warning(f"Database reset: {engine.url}")
    return engine
