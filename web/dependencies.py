import logging
from typing import Iterator, Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlmodel import Session

from services.config import config
from services.db.connection import session_scope
from services.storage import BlobStore, BlobStoreError, S3BlobStore

logger = logging.getLogger(__name__)


# --- Rate Limiting Helpers ---
def key_func_remote(request: Request):
    """Return key for remote users (applies standard limits)."""
    ip = get_remote_address(request)
    if ip in ["127.0.0.1", "localhost", "::1"]:
        return "localhost-remote-exempt"  # Exempt from remote limits
    return ip


def key_func_local(request: Request):
    """Return key for local users (applies relaxed limits)."""
    ip = get_remote_address(request)
    if ip in ["127.0.0.1", "localhost", "::1"]:
        return ip  # Apply local limits
    return "remote-local-exempt"  # Exempt from local limits


# Initialize Limiter
limiter = Limiter(key_func=get_remote_address)


# --- Database ---
def get_db_session() -> Iterator[Session]:
    """FastAPI dependency for database session"""
    with session_scope() as session:
        yield session


# --- Blob storage ---
_blob_store: Optional[BlobStore] = None


def get_blob_store() -> Optional[BlobStore]:
    """S3 store when a bucket is configured, otherwise None (images are not released)."""
    global _blob_store
    if _blob_store is None and config.AWS_BUCKET_NAME:
        try:
            _blob_store = S3BlobStore(config)
        except BlobStoreError as e:
            logger.warning(f"Blob store unavailable: {e}")
    return _blob_store
