"""
Blog API Backend - Unhandled Error Middleware
==============================================

What:  Turns exceptions that escaped every exception handler into the
       standard 500 `internal_server_error` JSON body.
How:   Wraps the downstream call. It sits inside the CORS, request ID and
       access-log layers, so a 500 built here still gets CORS headers, an
       X-Request-ID and an access-log line.

The FastAPI handler registered for `Exception` runs in Starlette's
ServerErrorMiddleware, outside every user middleware. This middleware catches
the same errors one layer further in.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from blog_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again or contact support."


def error_body(code: str, message: str, details: Optional[dict] = None) -> dict:
    """The JSON error shape shared by every error response (see ErrorResponse)."""
    return {
        "error": code,
        "message": message,
        "details": details,
        "request_id": request_id_var.get(""),
    }


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content=error_body("internal_server_error", INTERNAL_ERROR_MESSAGE),
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Renders a 500 for any exception the routing layer let through."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "[%s] Unhandled error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                str(e),
                exc_info=True,
            )
            return internal_error_response()
