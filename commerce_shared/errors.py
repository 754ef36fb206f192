"""
Shared error handling for the commerce grants client.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


CONFLICT_STATUS = 409


class ErrorResponse(BaseModel):
    """Standard error payload, suitable for logging or returning to callers."""

    code: str
    message: str
    status: Optional[int] = None
    details: Dict[str, Any] = {}


class CommerceError(Exception):
    """Base exception for the commerce grants client."""

    is_conflict = False

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def status(self) -> Optional[int]:
        return None

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status=self.status,
            details=self.details
        )


class ValidationError(CommerceError):
    """Missing or invalid configuration/options. Raised before any network call."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class TransportError(CommerceError):
    """Network level failure (connection, timeout) talking to the auth server."""

    def __init__(self, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)


class HttpStatusError(CommerceError):
    """Non-2xx response from the remote API."""

    def __init__(self,
                 status: int,
                 message: str = "HTTP error",
                 body: Any = None,
                 details: Optional[Dict[str, Any]] = None,
                 code: str = "HTTP_ERROR"):
        self._status = status
        self.body = body
        super().__init__(code, message, details)

    @property
    def status(self) -> int:
        return self._status


class ConflictError(HttpStatusError):
    """409 Conflict: the resource version the caller sent is stale."""

    is_conflict = True

    def __init__(self,
                 message: str = "Version conflict",
                 body: Any = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(CONFLICT_STATUS, message, body, details, code="CONFLICT")


def http_status_error(status: int,
                      message: str = "HTTP error",
                      body: Any = None,
                      details: Optional[Dict[str, Any]] = None) -> HttpStatusError:
    """Build the error class matching a response status code."""
    if status == CONFLICT_STATUS:
        return ConflictError(message, body, details)
    return HttpStatusError(status, message, body, details)


def is_conflict(error: BaseException) -> bool:
    """Whether the error signals an optimistic-concurrency conflict."""
    return bool(getattr(error, "is_conflict", False))
