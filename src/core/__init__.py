"""Core module exports."""
from __future__ import annotations

from core.config import Settings, get_settings, reload_settings
from core.db import Base, SessionLocal, get_session_factory, init_db
from core.exceptions import (
    ConcurrentModificationError,
    ConfigurationError,
    DatabaseError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    TimberMarketError,
    UnauthenticatedError,
)
from core.logging_config import (
    ContextLogger,
    JSONFormatter,
    get_context_logger,
    get_logger,
    setup_logging,
)
from core.models import (
    ActivityType,
    Collection,
    DocumentRecord,
    InquiryStatus,
    ProjectStatus,
    QuoteStatus,
)
from core.store import DocumentStore, SqlDocumentStore, Write

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "reload_settings",
    # Database
    "Base",
    "SessionLocal",
    "get_session_factory",
    "init_db",
    # Models
    "DocumentRecord",
    "Collection",
    "ProjectStatus",
    "InquiryStatus",
    "QuoteStatus",
    "ActivityType",
    # Store
    "DocumentStore",
    "SqlDocumentStore",
    "Write",
    # Exceptions
    "TimberMarketError",
    "UnauthenticatedError",
    "InvalidArgumentError",
    "NotFoundError",
    "PermissionDeniedError",
    "FailedPreconditionError",
    "ConcurrentModificationError",
    "InternalError",
    "ConfigurationError",
    "DatabaseError",
    # Logging
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "JSONFormatter",
    "ContextLogger",
]
