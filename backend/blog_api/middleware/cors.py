"""
Blog API Backend - Permissive CORS Headers Middleware
======================================================

What:  Stamps permissive cross-origin headers on every response.
How:   Starlette's CORSMiddleware answers preflight requests and decorates
       responses to requests that carry an Origin header. This middleware
       fills in the same headers for every other response (curl, server to
       server, 404/501 short-circuits), leaving values already set untouched.

Headers:
    Access-Control-Allow-Origin:  * (or the configured origins)
    Access-Control-Allow-Headers: Origin, X-Requested-With, Content-Type, Accept
"""

from typing import List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

ALLOWED_REQUEST_HEADERS = ["Origin", "X-Requested-With", "Content-Type", "Accept"]


class PermissiveCORSHeadersMiddleware(BaseHTTPMiddleware):
    """Adds Access-Control-Allow-* headers to responses that lack them."""

    def __init__(self, app: ASGIApp, allow_origins: List[str] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.allow_origins = allow_origins or ["*"]
        self.allow_headers = ", ".join(ALLOWED_REQUEST_HEADERS)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        origin = self._allowed_origin(request)
        if origin:
            response.headers.setdefault("Access-Control-Allow-Origin", origin)
        response.headers.setdefault("Access-Control-Allow-Headers", self.allow_headers)
        return response

    def _allowed_origin(self, request: Request) -> str:
        # A list of origins cannot be sent as one header value; echo the match
        if "*" in self.allow_origins:
            return "*"
        origin = request.headers.get("origin", "")
        return origin if origin in self.allow_origins else ""
