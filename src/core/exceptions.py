"""Custom exceptions for the timber marketplace service.

Every error carries a wire ``kind`` so the callable entry points and the HTTP
layer can report it without inspecting the class hierarchy.
"""
from __future__ import annotations

from typing import Any, Dict


class TimberMarketError(Exception):
    """Base exception for all application errors."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.kind

    def to_dict(self) -> Dict[str, Any]:
        """Structured form returned to callers."""
        return {"kind": self.kind, "message": self.message}


# =============================================================================
# Caller Errors
# =============================================================================


class UnauthenticatedError(TimberMarketError):
    """You must be signed in to perform this action."""

    kind = "unauthenticated"
    status_code = 401


class InvalidArgumentError(TimberMarketError):
    """A required field is missing or malformed."""

    kind = "invalid-argument"
    status_code = 400


class NotFoundError(TimberMarketError):
    """The referenced document does not exist."""

    kind = "not-found"
    status_code = 404


class PermissionDeniedError(TimberMarketError):
    """You do not have permission to modify this resource."""

    kind = "permission-denied"
    status_code = 403


class FailedPreconditionError(TimberMarketError):
    """The resource is not in a state that allows this action."""

    kind = "failed-precondition"
    status_code = 409


class ConcurrentModificationError(FailedPreconditionError):
    """The document changed after it was read; the write was not applied."""

    pass


# =============================================================================
# Server Errors
# =============================================================================


class InternalError(TimberMarketError):
    """An internal error occurred."""

    kind = "internal"
    status_code = 500


class ConfigurationError(InternalError):
    """Raised when required configuration is missing or invalid."""

    pass


class DatabaseError(InternalError):
    """Raised when the document store fails unexpectedly."""

    pass


_CALLER_ERRORS = (
    UnauthenticatedError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    FailedPreconditionError,
)

STATUS_BY_KIND = {cls.kind: cls.status_code for cls in _CALLER_ERRORS}


def status_for_kind(kind: str) -> int:
    """HTTP status for a wire error kind; unknown kinds are server errors."""
    return STATUS_BY_KIND.get(kind, InternalError.status_code)


__all__ = [
    "STATUS_BY_KIND",
    "status_for_kind",
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
]
