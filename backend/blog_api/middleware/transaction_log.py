"""
Blog API Backend - Transaction Log Route Class
===============================================

What:  An APIRoute subclass that builds one transaction record per request
       served by a post route and hands it to the TransactionLog sink.
How:   Wraps the route handler FastAPI generates. The record is built after
       the handler returns or raises, so it holds the route template
       ("/posts/{post_id}"), the request payload and either the response body
       or the error. The sink call only enqueues; writing happens later.
Who:   Installed with APIRouter(route_class=TransactionLogRoute) in routes/posts.py.

Record format (one JSON line):
    {
        "timestamp": "2024-01-15T12:00:00.000000+00:00",
        "endpoint": "/posts/{post_id}",
        "method": "PUT",
        "path_params": {"post_id": "3"},
        "payload": {"title": "Hello", "content": "World"},
        "status": 200,
        "response": {"inserted_id": null, "affected_rows": 1}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, Dict

from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response

from blog_api.exceptions import BlogApiError

logger = logging.getLogger(__name__)

# Handlers whose response carries no body (204) can leave the value to log here
RESPONSE_STATE_KEY = "transaction_response"


async def _request_payload(request: Request) -> Any:
    """Parsed JSON body when one was sent, otherwise the query parameters."""
    body = await request.body()
    if body:
        try:
            return json.loads(body)
        except ValueError:
            return body.decode("utf-8", errors="replace")
    return dict(request.query_params)


def _response_payload(request: Request, response: Response) -> Any:
    body = getattr(response, "body", b"")
    if body:
        try:
            return json.loads(body)
        except ValueError:
            return body.decode("utf-8", errors="replace")
    return getattr(request.state, RESPONSE_STATE_KEY, None)


def _describe_error(exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, BlogApiError):
        return {"status": exc.status_code, "response": {"error": exc.error_code, "message": exc.message}}
    if isinstance(exc, RequestValidationError):
        return {
            "status": 400,
            "response": {"error": "validation_error", "message": "Request body is not valid"},
        }
    return {
        "status": getattr(exc, "status_code", 500),
        "response": {"error": type(exc).__name__, "message": str(exc)},
    }


class TransactionLogRoute(APIRoute):
    """Route class that records every request/response pair it serves."""

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        route_handler = super().get_route_handler()
        endpoint = self.path_format

        async def transaction_logged_handler(request: Request) -> Response:
            entry: Dict[str, Any] = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "endpoint": endpoint,
                "method": request.method,
                "path_params": dict(request.path_params),
                "payload": await _request_payload(request),
            }
            try:
                response = await route_handler(request)
            except Exception as exc:
                entry.update(_describe_error(exc))
                _record(request, entry)
                raise
            entry["status"] = response.status_code
            entry["response"] = _response_payload(request, response)
            _record(request, entry)
            return response

        return transaction_logged_handler


def _record(request: Request, entry: Dict[str, Any]) -> None:
    sink = getattr(request.app.state, "transaction_log", None)
    if sink is None:
        logger.debug("No transaction log configured; skipping record for %s", entry["endpoint"])
        return
    sink.record(entry)
