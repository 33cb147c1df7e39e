"""
PotTogether Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the Database, middleware chain, exception handlers
       and routers; `app = create_app()` is what uvicorn imports
       (uvicorn pottogether.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:      /api/rooms  /api/records  /api/users       │
    │               /api/ingredients  /files  /health          │
    │                                                          │
    │  Exception Handlers (ErrorKind → status, envelope body): │
    │    invalid_input 400 · unauthorized 401 · not_found 404  │
    │    conflict 409 · internal 500                           │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, log the storage root
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from pottogether import __version__
from pottogether.config import settings
from pottogether.database import Database
from pottogether.exceptions import ErrorKind, PotTogetherError
from pottogether.middleware.logging import RequestLoggingMiddleware
from pottogether.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from pottogether.routes import files, health, ingredients, records, rooms, users
from pottogether.schemas.common import Envelope

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}

INTERNAL_MESSAGE = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once at startup.

    Format: 2026-10-19T12:00:00 [INFO] pottogether.services.room_service [a1b2c3d4]: ...
    The bracketed id comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("PotTogether Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so health checks and logs still work
        logger.error("Configuration error: %s", str(e))

    logger.info("Calendar zone: %s, level step: %ds", settings.timezone, settings.level_step_seconds)
    logger.info("Storage directory: %s", settings.storage_root)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("PotTogether Backend shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _envelope_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=Envelope.fail(message).model_dump(by_alias=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps the error hierarchy onto HTTP responses.

    Every failure body is the envelope with isSuccess=false. Internal errors
    never expose their context; it is logged server-side with the request id.
    """

    @app.exception_handler(PotTogetherError)
    async def handle_app_error(request: Request, exc: PotTogetherError):
        rid = request_id_var.get("")
        status_code = STATUS_BY_KIND.get(exc.kind, 500)

        if exc.kind is ErrorKind.INTERNAL:
            logger.error(
                "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
            )
            return _envelope_response(status_code, INTERNAL_MESSAGE)

        logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return _envelope_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        message = "Invalid request: " + "; ".join(problems)
        logger.info("[%s] %s", request_id_var.get(""), message)
        return _envelope_response(400, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _envelope_response(500, INTERNAL_MESSAGE)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Assembles the application.

    Args:
        database: Database to serve requests from. Tests pass one bound to a
            temporary SQLite file; by default it is built from
            settings.database_url.
    """
    app = FastAPI(
        title="PotTogether API",
        description=(
            "Shared cooking rooms, timed ingredient records and the progress "
            "overviews built from them."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.database = database or Database()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
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
    app.include_router(rooms.router)
    app.include_router(records.router)
    app.include_router(users.router)
    app.include_router(ingredients.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
