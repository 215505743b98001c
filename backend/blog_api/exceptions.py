"""
Blog API Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the failure modes of a request.
How:   Each exception class carries a message, an optional context dict and
       the HTTP status it maps to. Global exception handlers (registered in
       main.py) turn them into structured JSON error responses.
Who:   Raised by the repository and service layers; caught by global handlers.

Exception Hierarchy:
    BlogApiError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── DatabaseError            → 500 Internal Server Error
    └── ServiceUnavailableError  → 503 Service Unavailable (connection pool exhausted)
"""

from typing import Any, Dict, Optional


class BlogApiError(Exception):
    """
    Base exception for all Blog API application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned as `details`)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BlogApiError):
    """
    Raised when client input fails validation.

    When:    Missing or empty title/content, malformed image data URI,
             post id that is not an integer.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Field 'title' is required and must not be empty",
            "details": {"field": "title"}
        }
    """

    status_code = 400
    error_code = "validation_error"

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


class DatabaseError(BlogApiError):
    """
    Raised when a database statement fails.

    When:    Connection lost mid-query, constraint violation, driver error.
    HTTP:    500 Internal Server Error

    The context names the failed operation and the driver error type.
    The SQL text and bound values stay in the server log.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceUnavailableError(BlogApiError):
    """
    Raised when no pooled database connection became free in time.

    When:    Every connection is checked out for longer than db_pool_timeout.
    HTTP:    503 Service Unavailable, with a Retry-After header.
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        message: str = "The service is busy. Please retry shortly.",
        retry_after: int = 1,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
