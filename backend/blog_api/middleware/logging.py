"""
Blog API Backend - Access Log Middleware
=========================================

What:  One line per HTTP request on the `blog_api.access` logger.
How:   After the downstream call returns, the route FastAPI matched is read
       from the ASGI scope, so the line names the route template
       ("/posts/{post_id}") and the post id separately, the same way the
       transaction log does. Requests that matched no route are logged with
       their raw path.

Example:
    PUT /posts/{post_id} post_id=3 → 200 (4.2ms) rid=1f3a9c0b77de

Not logged: GET /health (polled by probes).
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from blog_api.middleware.request_id import request_id_var

logger = logging.getLogger("blog_api.access")

QUIET_ENDPOINTS = frozenset({"/health"})


def route_template(request: Request) -> Optional[str]:
    """Path template of the matched route, None when nothing matched."""
    route = request.scope.get("route")
    return getattr(route, "path_format", None)


def _status_level(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    return logging.WARNING if status >= 400 else logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log keyed by route template and post id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_ENDPOINTS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        endpoint = route_template(request) or request.url.path
        post_id = request.path_params.get("post_id")
        logger.log(
            _status_level(response.status_code),
            "%s %s%s → %d (%.1fms) rid=%s",
            request.method,
            endpoint,
            f" post_id={post_id}" if post_id is not None else "",
            response.status_code,
            elapsed_ms,
            request_id_var.get(""),
            extra={
                "endpoint": endpoint,
                "post_id": post_id,
                "status": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        return response
