"""
NoteX Backend — Error Kinds and Exception Hierarchy
====================================================

What:  A closed set of error kinds and the exceptions that carry them.
How:   Each exception carries a public message (safe to return) and an
       optional context dict (logged, never returned). Handlers registered
       in main.py map the kind to a fixed HTTP status code.
Who:   Raised by the loader, services and routes; caught by global handlers.

Exception Hierarchy:
    NotexError (base)
    ├── ConfigurationError   kind=configuration → 500
    ├── ValidationError      kind=validation    → 400
    ├── DatabaseError        kind=persistence   → 500
    ├── StorageError         kind=persistence   → 500
    └── NotFoundError        kind=not_found     → 404

Anything that is not a NotexError is an unexpected error and becomes a
generic 500 at the readiness middleware boundary.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

GENERIC_ERROR_MESSAGE = "Internal server error"


class ErrorKind(str, Enum):
    """Closed set of failure causes known to the application."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"
    NOT_FOUND = "not_found"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.VALIDATION: 400,
    ErrorKind.PERSISTENCE: 500,
    ErrorKind.NOT_FOUND: 404,
}


class NotexError(Exception):
    """
    Base exception for all NoteX application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class ConfigurationError(NotexError):
    """
    Raised when process configuration cannot be assembled.

    When:  DB_HOST unset, secret lookup failed, pool or schema setup failed.
    HTTP:  500, generic body. The loader stays un-ready, so the next request
           retries the whole setup sequence.
    """

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        detail: str = "Configuration could not be loaded",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=GENERIC_ERROR_MESSAGE, context=context)
        # Server-side description; the response only ever carries `message`
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class ValidationError(NotexError):
    """
    Raised when client input fails the presence checks.

    HTTP:    400 Bad Request

    Example response:
        {"error": "title and description are required"}
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NotexError):
    """
    Raised when a database statement fails.

    When:  Connection lost mid-query, constraint violation, etc.
    HTTP:  500 Internal Server Error

    Security Note:
        The public message is always generic. The driver error is logged
        server-side only.
    """

    kind = ErrorKind.PERSISTENCE

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(NotexError):
    """Raised when writing an export object to blob storage fails."""

    kind = ErrorKind.PERSISTENCE

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NotexError):
    """
    Raised when no route matches the request's method and path.

    HTTP:    404 Not Found, echoing method and path for diagnostics.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        method: str,
        path: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"method": method, "path": path})
        super().__init__(message="Not found", context=ctx)
        self.method = method
        self.path = path


# ══════════════════════════════════════════════════════════════════════════
# Boundary Mapping
# ══════════════════════════════════════════════════════════════════════════

def error_body(exc: NotexError) -> Dict[str, Any]:
    """Public JSON body for `exc`; never includes `context`."""
    if isinstance(exc, NotFoundError):
        return {"error": exc.message, "method": exc.method, "path": exc.path}
    return {"error": exc.message}


def error_response(exc: NotexError) -> JSONResponse:
    """Map an application error to its fixed status code and public body."""
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


def internal_error_response() -> JSONResponse:
    """Generic 500 for anything outside the NotexError hierarchy."""
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})
