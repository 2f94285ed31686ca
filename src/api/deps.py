"""Storage dependencies for FastAPI routes."""
from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from core.db import get_session_factory
from core.store import DocumentStore, SqlDocumentStore


def get_store() -> DocumentStore:
    """
    The document store for one request.

    Each store operation opens and commits its own session, so there is
    nothing to close afterwards.
    """
    return SqlDocumentStore(get_session_factory())


def get_readonly_db() -> Generator[Session, None, None]:
    """Raw session for diagnostics; anything it did is rolled back."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


__all__ = ["get_store", "get_readonly_db"]
