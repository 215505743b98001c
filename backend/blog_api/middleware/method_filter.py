"""
Blog API Backend - Method Filter Middleware
============================================

What:  Answers 501 Not Implemented for any HTTP method the API does not serve.
How:   Checks request.method before routing; GET, POST, PUT and DELETE pass
       through, everything else (PATCH, HEAD, OPTIONS, ...) is rejected
       regardless of the path.
When:  After CORS, so browser preflight requests are still answered by
       CORSMiddleware.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


class MethodFilterMiddleware(BaseHTTPMiddleware):
    """Short-circuits unsupported methods with a plain-text 501."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method not in SUPPORTED_METHODS:
            logger.debug("Rejecting unsupported method %s %s", request.method, request.url.path)
            return PlainTextResponse("Not Implemented", status_code=501)
        return await call_next(request)
