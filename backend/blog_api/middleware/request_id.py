"""
Blog API Backend - Request ID Middleware
=========================================

What:  Gives every request a correlation ID, exposes it to loggers and error
       bodies through a ContextVar, and returns it as X-Request-ID.
How:   A client-supplied X-Request-ID is reused when it is a short token of
       safe characters; anything else (missing, too long, containing spaces
       or control characters) is replaced by a generated 12-hex-digit ID.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Echoed into response headers and log lines, so only plain tokens are accepted
CLIENT_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(header_value: str) -> str:
    """The client's ID when it is acceptable, otherwise a fresh one."""
    if header_value and CLIENT_REQUEST_ID.fullmatch(header_value):
        return header_value
    return uuid.uuid4().hex[:12]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
