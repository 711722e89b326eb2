"""
Epic Notes — FastAPI Application Factory
=========================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, route mounting, error rendering
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn epicnotes.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌─────────────┐                            │
    │  │  Req ID  │→│  Logging    │                            │
    │  └──────────┘ └─────────────┘                            │
    │                                                          │
    │  Routes:                                                 │
    │  ┌───────────────┐ ┌───────────────────┐ ┌────────────┐  │
    │  │ /users/{name} │ │ /users/.../notes  │ │ /resources │  │
    │  └───────────────┘ └───────────────────┘ └────────────┘  │
    │  /static (note-editor.js, styles.css)                    │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌─────────────────────────────────────────────────────┐ │
    │  │ EpicNotesError → its status │ HTTP errors │ → 500   │ │
    │  └─────────────────────────────────────────────────────┘ │
    └──────────────────────────────────────────────────────────┘

Error Rendering:
    Page routes get the HTML error page with the exception's message.
    /resources/* routes (images, healthcheck) answer in plain text, since
    their callers are <img> tags and probes, not people.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (production refuses the default secret)
    3. Create the storage directory
    4. Create tables (SQLite only) and seed demo data when enabled
    Shutdown:
    1. Dispose the database engine (NOTE_STORE=sql)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from epicnotes import __version__
from epicnotes.config import settings
from epicnotes.exceptions import EpicNotesError
from epicnotes.middleware.logging import RequestLoggingMiddleware
from epicnotes.middleware.request_id import RequestIDMiddleware, request_id_var
from epicnotes.routes import health, images, notes, users
from epicnotes.seed import seed_demo_data
from epicnotes.storage import build_note_store
from epicnotes.templating import STATIC_DIR, templates

logger = logging.getLogger(__name__)

RESOURCE_PREFIX = "/resources/"


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: 2024-01-15T12:00:00 [INFO] epicnotes.access: GET /users/kody 200 ...
    Called from create_app() so log lines from request handling are
    formatted even when the server never runs the lifespan (tests).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("=" * 60)
    logger.info("Epic Notes %s starting up (APP_ENV=%s)", __version__, settings.app_env)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    if settings.note_store == "sql" and settings.database_url.startswith("sqlite"):
        from epicnotes.database import create_all_tables

        await create_all_tables()
        logger.info("SQLite schema created")

    if settings.seed_demo_data:
        await seed_demo_data(app.state.note_store)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Epic Notes shutting down...")
    if settings.note_store == "sql":
        from epicnotes.database import dispose_engine

        await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(request: Request, status_code: int, message: str):
    if request.url.path.startswith(RESOURCE_PREFIX):
        return PlainTextResponse(message, status_code=status_code)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status_code": status_code, "message": message},
        status_code=status_code,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to responses.

    Handler hierarchy:
        EpicNotesError            → exc.status_code, exc.message
        StarletteHTTPException    → its status and detail (unknown routes etc.)
        Exception (fallback)      → 500, generic message

    Server errors never expose internal details (stack traces, file paths,
    SQL) in the response body; those are logged server-side with the
    request ID.
    """

    @app.exception_handler(EpicNotesError)
    async def handle_epic_notes_error(request: Request, exc: EpicNotesError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
            )
            return _error_response(
                request, exc.status_code, "An internal error occurred. Please try again later."
            )
        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return _error_response(request, exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return _error_response(
            request, 500, "An unexpected error occurred. Please try again later."
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    The NoteStore is built here rather than in the lifespan so it exists on
    app.state even when a test transport never sends lifespan events.
    """
    setup_logging()

    app = FastAPI(
        title="Epic Notes",
        description="Server-rendered notes with a validated editor and streamed note images.",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.note_store = build_note_store(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → route
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(users.router)
    app.include_router(notes.router)
    app.include_router(images.router)
    app.include_router(health.router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    return app


# uvicorn imports `epicnotes.main:app`
app = create_app()
