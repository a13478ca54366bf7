"""
School Registry Backend: FastAPI Application Factory
======================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the Database handle, ImageStorage and
       SchoolService, stores them on app.state, registers middleware,
       exception handlers and routers.
Who:   uvicorn (`uvicorn school_registry.main:app`, or the `school-registry`
       console script which calls run()).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐              │
    │  │  Req ID  │→│  Logging    │→│ CORS │              │
    │  └──────────┘ └─────────────┘ └──────┘              │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌────────────────┐ ┌──────────┐   │
    │  │ /api/schools │ │ /schoolImages  │ │ /health  │   │
    │  └──────────────┘ └────────────────┘ └──────────┘   │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ DB/File→500  │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup (strictly sequential):
    1. Configure logging
    2. Ensure the image directory exists
    3. Create the schools table if absent
       -> on failure: log and re-raise, uvicorn aborts and never listens
    Shutdown:
    1. Dispose the database engine (close pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_registry import __version__
from school_registry.config import Settings, settings as default_settings
from school_registry.database import Database
from school_registry.exceptions import (
    DatabaseError,
    FileStorageError,
    FileTooLargeError,
    NotFoundError,
    SchoolRegistryError,
    ValidationError,
)
from school_registry.middleware.logging import RequestLoggingMiddleware
from school_registry.middleware.request_id import RequestIDMiddleware, request_id_var
from school_registry.routes import health, images, schools
from school_registry.services.image_storage import ImageStorage
from school_registry.services.school_service import SchoolService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s, to stdout.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request lines come from RequestLoggingMiddleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging → image directory → schema. Shutdown: dispose pool.

    A schema failure is fatal: the exception propagates out of startup and
    the server never starts accepting requests against a missing table.
    """
    config: Settings = app.state.settings
    database: Database = app.state.database

    setup_logging(config.log_level)
    logger.info("School Registry Backend starting up...")

    image_dir = Path(config.image_dir)
    image_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Image directory: %s", image_dir.resolve())

    try:
        await database.init_schema()
    except Exception as e:
        logger.error("Error initializing database: %s", str(e), exc_info=True)
        await database.dispose()
        raise

    logger.info("Server ready on port %d", config.port)

    yield

    logger.info("School Registry Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(message: str, **extra) -> dict:
    body = {"success": False, "message": message, "request_id": request_id_var.get("")}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to `{"success": false, "message": ...}` responses.

    Handler hierarchy:
        FileTooLargeError       → 400
        ValidationError         → 400
        RequestValidationError  → 400 (FastAPI param/form parsing)
        NotFoundError           → 404
        DatabaseError           → 500, raw driver text in `error`
        FileStorageError        → 500
        SchoolRegistryError     → 500
        HTTPException           → its own status (unknown route, bad method)
        Exception               → 500 with the exception's message
    """

    @app.exception_handler(FileTooLargeError)
    async def handle_file_too_large(request: Request, exc: FileTooLargeError):
        logger.warning("[%s] Upload rejected: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=error_body(exc.message))

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body(exc.message, details=exc.context or None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = {
            ".".join(str(part) for part in err["loc"]): err["msg"]
            for err in exc.errors()
        }
        return JSONResponse(
            status_code=400,
            content=error_body("Invalid request", details=problems),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=error_body(exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | %s | Context: %s",
            request_id_var.get(""), exc.message, exc.error, exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(exc.message, error=exc.error or exc.message),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error(
            "[%s] File storage error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return JSONResponse(status_code=500, content=error_body(exc.message))

    @app.exception_handler(SchoolRegistryError)
    async def handle_app_error(request: Request, exc: SchoolRegistryError):
        logger.error("[%s] Application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=500, content=error_body(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True
        )
        return JSONResponse(status_code=500, content=error_body(str(exc)))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; the environment-loaded settings by default.
        database: Pre-built Database handle; built from settings by default.
                  No connection is opened until the first statement runs.
    """
    config = settings or default_settings
    database = database or Database.from_settings(config)
    image_storage = ImageStorage.from_settings(config)

    app = FastAPI(
        title="School Registry API",
        description="Create, list and fetch school records with an optional image.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.database = database
    app.state.image_storage = image_storage
    app.state.school_service = SchoolService(database=database, images=image_storage)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestLoggingMiddleware, quiet_paths=config.log_quiet_paths_list)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(schools.router)
    app.include_router(images.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve `app` on HOST:PORT (default 0.0.0.0:3001)."""
    uvicorn.run(
        "school_registry.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
