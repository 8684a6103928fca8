"""
Tripmark Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions, one per error kind the boundary layer
       must tell apart.
Why:   Each kind maps to a distinct, stable HTTP status and error code, so
       callers never have to inspect message text.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    TripmarkError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized (no caller identity)
    ├── AuthorizationError       → 403 Forbidden (not the owner)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (duplicate edge, dedup race exhausted)
    ├── DatabaseError            → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, Optional


class TripmarkError(Exception):
    """
    Base exception for all Tripmark application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TripmarkError):
    """
    Raised when input fails a rule the engine itself enforces.

    Field syntax is normally rejected by the Pydantic schemas (422) before a
    service is reached; this covers rules that need the caller's identity or
    stored state, such as inviting yourself.
    """

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


class AuthenticationError(TripmarkError):
    """
    Raised when the request carries no usable caller identity.

    HTTP:    401 Unauthorized
    The X-User-ID header is set by the upstream gateway; a missing or
    non-numeric value means the request bypassed it.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(TripmarkError):
    """
    Raised when a caller tries to mutate something they do not own.

    HTTP:    403 Forbidden
    Raised only by the guard checks, before any write has happened.
    """

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource",
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource:
            ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundError(TripmarkError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records (not an exception); the
    service layer converts None into this so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(TripmarkError):
    """
    Raised when a write collides with existing state.

    When:    A friend edge already exists for the pair, an invitation was
             already accepted, or a location could not be resolved after a
             unique-constraint race even after retrying.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The request conflicts with the current state of the resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(TripmarkError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Constraint
        names and SQL are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(TripmarkError):
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
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
