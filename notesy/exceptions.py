"""
Notesy Backend - Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for every failure the note handlers
       can report.
How:   Each exception carries a message and optional context dict. Handlers
       registered in main.py turn them into structured JSON error responses.
Who:   Raised by services, the record store, the blob store and auth;
       caught by the global handlers.

Exception Hierarchy:
    NotesyError (base)
    ├── ValidationError          → 400 Bad Request
    ├── SizeLimitError           → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── StoreError               → 500 Internal Server Error
    └── FilesystemError          → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class NotesyError(Exception):
    """
    Base exception for all Notesy application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotesyError):
    """
    Raised when client input fails validation.

    When:    Missing file, wrong media type, missing/blank required metadata,
             semester outside 1-8, malformed request body.
    HTTP:    400 Bad Request

    Example response:
        {
            "success": false,
            "error": "validation_error",
            "message": "Only PDF files are allowed",
            "details": {"field": "file", "content_type": "image/png"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = dict(context or {})
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class SizeLimitError(NotesyError):
    """
    Raised when an upload exceeds the configured byte cap.

    The blob store removes any partial write before raising, so no file
    larger than the cap is ever left behind.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        max_bytes: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        max_mb = max_bytes / (1024 * 1024)
        message = f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller PDF."
        ctx = dict(context or {})
        ctx["field"] = "file"
        ctx["max_bytes"] = max_bytes
        super().__init__(message=message, context=ctx)
        self.max_bytes = max_bytes


class AuthenticationError(NotesyError):
    """Request carries no usable bearer token, or its user no longer exists. HTTP 401."""

    def __init__(
        self,
        message: str = "Not authorized to access this route",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(NotesyError):
    """Authenticated user lacks the role the route requires. HTTP 403."""

    def __init__(
        self,
        role: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "You do not have permission to perform this action"
        if role:
            message = f"User role '{role}' is not authorized to access this route"
        ctx = dict(context or {})
        if role:
            ctx["role"] = role
        super().__init__(message=message, context=ctx)
        self.role = role


class NotFoundError(NotesyError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown or malformed note id, or a note whose blob is gone.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = dict(context or {})
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class StoreError(NotesyError):
    """
    Raised when the record store fails (connection lost, constraint
    violation, deadlock).

    The message returned to the client is always generic; details stay in
    the server log.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FilesystemError(NotesyError):
    """
    Raised when a blob cannot be written or deleted.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NotesyError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = dict(context or {})
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
