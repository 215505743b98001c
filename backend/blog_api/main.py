"""
Blog API Backend - FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) returns a configured FastAPI
       instance; the lifespan builds the connection pool and the
       transaction log for that instance and tears them down on shutdown.
Who:   uvicorn (uvicorn blog_api.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  CORS preflight → CORS headers → Req ID → Logging   │
    │  → Unhandled errors (500) → Method filter (501)     │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────────┐ ┌───────────────┐ │
    │  │ /posts, /posts/{post_id}     │ │ GET /health   │ │
    │  │ (transaction-logged)         │ │               │ │
    │  └──────────────────────────────┘ └───────────────┘ │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌───────────────────────────────────────────────┐  │
    │  │ Validation→400 │ DB→500 │ Pool→503 │ 404 text │  │
    │  └───────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Create the Database handle (connection pool); optionally create tables
    3. Start the transaction log writer
    4. Publish database, post_service and transaction_log on app.state

    Shutdown:
    1. Drain and stop the transaction log writer
    2. Dispose the database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from blog_api import __version__
from blog_api.config import Settings, settings as default_settings
from blog_api.database import Database
from blog_api.exceptions import BlogApiError, ServiceUnavailableError
from blog_api.middleware.cors import ALLOWED_REQUEST_HEADERS, PermissiveCORSHeadersMiddleware
from blog_api.middleware.errors import UnhandledErrorMiddleware, error_body, internal_error_response
from blog_api.middleware.logging import RequestLoggingMiddleware
from blog_api.middleware.method_filter import SUPPORTED_METHODS, MethodFilterMiddleware
from blog_api.middleware.request_id import RequestIDMiddleware, request_id_var
from blog_api.routes import health, posts
from blog_api.services.post_repository import PostRepository
from blog_api.services.post_service import PostService
from blog_api.services.transaction_log import TransactionLog

logger = logging.getLogger(__name__)

NOT_FOUND_TEXT = "404 Not Found: the requested endpoint does not exist."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure process logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Build and release the per-application resources.

    Code before yield runs on startup, code after yield on shutdown.
    """
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("Blog API starting up...")

    database = Database.from_settings(config)
    if config.db_auto_create:
        await database.create_all()
        logger.info("Database tables ensured")

    transaction_log = TransactionLog(
        config.transaction_log_path,
        max_queue_size=config.transaction_log_queue_size,
    )
    await transaction_log.start()

    app.state.database = database
    app.state.transaction_log = transaction_log
    app.state.post_service = PostService(PostRepository(database))

    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    try:
        yield
    finally:
        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("Blog API shutting down...")
        await transaction_log.stop(timeout=config.transaction_log_drain_timeout)
        if transaction_log.dropped:
            logger.warning("Transaction log dropped %d record(s)", transaction_log.dropped)
        await database.dispose()
        logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        BlogApiError subclasses → their status_code (400 / 500 / 503)
        RequestValidationError  → 400 Bad Request (wrong types, malformed JSON)
        HTTPException 404/405   → 404 plain text (no route for this request)
        HTTPException other     → its status code, JSON body
        Exception (fallback)    → 500 Internal Server Error
    """

    @app.exception_handler(BlogApiError)
    async def handle_blog_api_error(request: Request, exc: BlogApiError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.error_code, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, exc.error_code, exc.message)
        headers = {}
        if isinstance(exc, ServiceUnavailableError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, exc.context),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), exc.errors())
        return JSONResponse(
            status_code=400,
            content=error_body(
                "validation_error",
                "Request body is not valid",
                {"errors": jsonable_encoder(exc.errors())},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # 405 means the path exists but not for this method: same as no route
        if exc.status_code in (404, 405):
            return PlainTextResponse(NOT_FOUND_TEXT, status_code=404)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("http_error", str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    # Errors raised inside the middleware chain are answered by
    # UnhandledErrorMiddleware; this covers failures in the outer layers
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error outside the middleware chain: %s", str(exc), exc_info=True)
        return internal_error_response()


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration for this instance; defaults to the values
                  loaded from the environment.

    Nothing is connected here: the pool and the transaction log are created
    by the lifespan, so building an app has no side effects.
    """
    config = settings or default_settings

    app = FastAPI(
        title="Blog API",
        description=(
            "CRUD API for blog posts with optional base64 data-URI images. "
            "Every post request is recorded in a JSON-lines transaction log."
        ),
        version=__version__,
        docs_url="/api-docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
        # "/posts/" is an unknown endpoint, not a redirect to "/posts"
        redirect_slashes=False,
    )
    app.state.settings = config

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # CORS → CORS headers → RequestID → Logging → Errors → MethodFilter → router

    app.add_middleware(MethodFilterMiddleware)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        PermissiveCORSHeadersMiddleware,
        allow_origins=config.cors_origins_list,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_methods=sorted(SUPPORTED_METHODS),
        allow_headers=ALLOWED_REQUEST_HEADERS,
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(posts.router)
    app.include_router(health.router)

    return app


app = create_app()
