"""
Storefront Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (`uvicorn storefront.main:app`).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware Chain:                                        │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────────┐  │
    │  │  Req ID  │→│ Logging  │→│   GZip   │→│     CORS     │  │
    │  └──────────┘ └──────────┘ └──────────┘ └──────────────┘  │
    │                                                           │
    │  Routes (/api/v1):                                        │
    │  ┌──────┐ ┌───────┐ ┌────────────┐ ┌──────────┐ ┌──────┐  │
    │  │ base │ │ users │ │ categories │ │ products │ │ blogs│  │
    │  └──────┘ └───────┘ └────────────┘ └──────────┘ └──────┘  │
    │  ┌─────────┐                        ┌──────────────────┐  │
    │  │ banners │                        │  GET /health     │  │
    │  └─────────┘                        └──────────────────┘  │
    │                                                           │
    │  Exception Handlers → {status, data: null, message}       │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → temp dir → Mongo indexes
    Shutdown: close the Mongo client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront import __version__
from storefront.config import settings
from storefront.database import close_client, ensure_indexes, get_db
from storefront.exceptions import StorefrontError
from storefront.middleware.logging import RequestLoggingMiddleware
from storefront.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
)
from storefront.routes import banners, base, blogs, categories, health, products, users
from storefront.validation import first_error_message

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
GENERIC_ERROR_MESSAGE = "Something went wrong"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2024-05-01T12:00:00 [INFO] storefront.services.product_service [a1b2c3d4] ...
    The bracketed id comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup sequence:
        1. Setup logging
        2. Report missing Cloudinary credentials (does not abort; reads work
           without them)
        3. Create TEMP_DIR when staging uploads to disk
        4. Ensure Mongo indexes (unique category names and user emails)

    Shutdown sequence:
        1. Close the Mongo client
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Storefront Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Image uploads will fail until the configuration is fixed.")

    if not settings.memory_uploads:
        settings.temp_path.mkdir(parents=True, exist_ok=True)
        logger.info("Staging uploads in %s", settings.temp_path)
    else:
        logger.info("Staging uploads in memory")

    try:
        await ensure_indexes(get_db())
    except PyMongoError as e:
        # Keep serving; /health reports the database as disconnected
        logger.error("Could not ensure Mongo indexes: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Storefront Backend shutting down...")
    await close_client()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def envelope(status: int, message: str, headers=None) -> JSONResponse:
    """Failure envelope: `{status, data: null, message}` with matching HTTP status."""
    return JSONResponse(
        status_code=status,
        content={"status": status, "data": None, "message": message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every failure to the response envelope.

    Handler hierarchy:
        StorefrontError         → its status_code (400/401/404/500)
        RequestValidationError  → 400 (path/query/body parsing by FastAPI)
        HTTPException           → its status (unknown route 404, 405, ...)
        Exception (fallback)    → 500 "Something went wrong"

    Context dicts and stack traces are logged server-side only.
    """

    @app.exception_handler(StorefrontError)
    async def handle_storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("%s: %s | Context: %s", type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("%s: %s", type(exc).__name__, exc.message)
        return envelope(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        _, message = first_error_message(exc)
        logger.warning("Request validation error: %s", message)
        return envelope(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return envelope(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Unexpected error on %s %s: %s",
            request.method,
            request.url.path,
            str(exc),
            exc_info=True,
        )
        return envelope(500, GENERIC_ERROR_MESSAGE)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Assemble middleware, exception handlers and routers."""
    app = FastAPI(
        title="Storefront API",
        description=(
            "Content backend for the storefront: products, categories, blog posts, "
            "home page banners and the admin login. Images are resized and hosted "
            "on Cloudinary."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    for module in (base, users, categories, products, blogs, banners):
        app.include_router(module.router, prefix=API_PREFIX)
    app.include_router(health.router)

    return app


app = create_app()
