"""
Epic Notes — Custom Exception Hierarchy
========================================

What:  Defines application-specific exceptions for terminal request failures.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and short human-readable messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       render an error page (HTML routes) or a plain-text body (resource
       routes) with the correct status code.
Who:   Raised by services, storage backends and middleware.

Exception Hierarchy:
    EpicNotesError (base)        → 500
    ├── ValidationError          → 400 Bad Request (malformed request)
    ├── InvariantError           → 400 unless told otherwise (precondition)
    ├── NotFoundError            → 404 Not Found
    ├── CSRFError                → 403 Forbidden
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

What is NOT an exception:
    A form submission that breaks a field rule (empty title, oversized
    image) is an expected outcome. The editor returns it as a Submission
    and the route re-renders the form with status 400. Exceptions are for
    requests that cannot continue at all.
"""

from typing import Any, Dict, Optional


class EpicNotesError(Exception):
    """
    Base exception for all Epic Notes application errors.

    Attributes:
        message:     User-facing error description (safe to return in a response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status used by the global handler
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EpicNotesError):
    """
    Raised when a request is malformed in a way the form cannot represent.

    Example: a multipart part that is neither text nor a file.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvariantError(EpicNotesError):
    """
    Raised when a precondition the code relies on does not hold.

    What:    A programming error surfaced as a terminal response, e.g. a
             route reached without its identifier.
    HTTP:    400 by default; callers may pick another status.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


def invariant(condition: Any, message: str, status_code: int = 400) -> None:
    """Raise InvariantError(message) unless `condition` is truthy."""
    if not condition:
        raise InvariantError(message, status_code=status_code)


class NotFoundError(EpicNotesError):
    """
    Raised when a requested resource does not exist.

    The message is rendered verbatim, so raisers phrase it for the page it
    appears on ("No note with the id n1", "Image Not Found").
    HTTP:    404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        message: str,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class CSRFError(EpicNotesError):
    """
    Raised when a state-changing request does not carry a valid CSRF token.

    HTTP:    403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Invalid CSRF token. Reload the page and try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(EpicNotesError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, file vanished before it was opened.
    HTTP:    500 Internal Server Error (paths are logged, never returned)
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(EpicNotesError):
    """
    Raised when a Note Store operation fails unexpectedly.

    The message returned to the client is always generic; SQL details stay
    in the server log.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
