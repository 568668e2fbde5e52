"""
Recordbook Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() binds the collaborators (records store,
       static asset server, account table), registers middleware, exception
       handlers and routes, and returns the app.
Who:   Called by uvicorn (uvicorn recordbook.main:app) and by the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────────────────┐ │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│  CORS headers    │ │
    │  └──────────┘ └──────────┘ └──────┘ └──────────────────┘ │
    │                                                          │
    │  Routes:                                                 │
    │  /api/health  /api/init  /api/records[/{id}]  /api/stats │
    │  /api/login   /api/* → 404   everything else → assets    │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ValidationError→400 │ DatabaseError→500 │ other→500     │
    └──────────────────────────────────────────────────────────┘

Bindings (held on app.state):
    record_store   RecordStore around the injected AsyncEngine (or None)
    login_service  LoginService around the account table
    bindings       {"DB": bool, "ASSETS": bool}, reported by /api/health
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.types import ASGIApp

from recordbook import __version__
from recordbook.config import Settings, settings
from recordbook.database import create_store_engine, dispose_engine
from recordbook.exceptions import (
    DatabaseError,
    RecordbookError,
    ValidationError,
    server_error_body,
)
from recordbook.middleware.cors import CORSHeadersMiddleware
from recordbook.middleware.logging import RequestLoggingMiddleware
from recordbook.middleware.request_id import RequestIDMiddleware, request_id_var
from recordbook.routes import fallback, health, login, records
from recordbook.services.login_service import LoginService
from recordbook.services.record_store import RecordStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(app_settings: Settings = settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, app_settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    # Third-party libraries that log every operation at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic.runtime.migration").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Setup logging
        2. Validate configuration (log problems, keep serving)
        3. Log the bindings

    Shutdown:
        1. Dispose the database engine (close all pooled connections)

    The schema is not created here; record endpoints ensure it on demand.
    """
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings)
    logger.info("=" * 60)
    logger.info("Recordbook Backend %s starting up...", __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # The server still answers /api/health and reports the missing binding
        logger.error("Configuration error: %s", str(e))

    for name, bound in sorted(app.state.bindings.items()):
        logger.info("Binding %s: %s", name, "bound" if bound else "not bound")
    logger.info(
        "Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port
    )
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Recordbook Backend shutting down...")
    await dispose_engine(app.state.record_store.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI, app_settings: Settings = settings) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        ValidationError         → 400 {error, required?, received?}
        DatabaseError           → 500 {error, stack, type?}
        RecordbookError (base)  → 500 {error, stack}
        Exception (fallback)    → 500 {error, stack}

    `stack` is omitted when settings.expose_error_stack is false.
    """

    def error_body(exc: BaseException, message: str) -> Dict[str, Any]:
        return server_error_body(exc, message, app_settings.expose_error_stack)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client sent an invalid body; report expectation and what was received."""
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, **exc.details},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Store failure; the driver message is echoed back."""
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        body = error_body(exc, exc.message)
        if exc.error_type:
            body["type"] = exc.error_type
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RecordbookError)
    async def handle_recordbook_error(request: Request, exc: RecordbookError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc, exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all for errors no service translated."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(exc, str(exc) or type(exc).__name__),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def build_static_assets(app_settings: Settings = settings) -> Optional[ASGIApp]:
    """Static file app for STATIC_ROOT, or None when the directory is missing."""
    root = Path(app_settings.static_root)
    if not root.is_dir():
        logger.warning("Static root %s does not exist; assets are not bound", root)
        return None
    return StaticFiles(directory=str(root), html=True)


def create_app(
    store: Optional[AsyncEngine] = None,
    assets: Optional[ASGIApp] = None,
    app_settings: Settings = settings,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store:        Async engine for the records table. When None, one is
                      built from app_settings.database_url (which may itself
                      be empty, leaving the store unbound).
        assets:       ASGI app serving non-/api paths. When None, a
                      StaticFiles app for app_settings.static_root is used if
                      that directory exists.
        app_settings: Settings for this app instance.

    Returns:
        Fully configured FastAPI instance.
    """
    if store is None:
        store = create_store_engine(app_settings=app_settings)
    if assets is None:
        assets = build_static_assets(app_settings)

    app = FastAPI(
        title="Recordbook API",
        description="Daily records by date, grade and department, with summary statistics.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Bind Collaborators ────────────────────────────────────────────────
    app.state.settings = app_settings
    app.state.record_store = RecordStore(store)
    app.state.login_service = LoginService(app_settings.login_accounts)
    app.state.bindings = {"DB": store is not None, "ASSETS": assets is not None}

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute
    app.add_middleware(
        CORSHeadersMiddleware,
        headers=app_settings.cors_headers,
        expose_stack=app_settings.expose_error_stack,
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, app_settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(records.router)
    app.include_router(login.router)
    app.include_router(fallback.router)

    # Non-/api paths
    if assets is not None:
        app.mount("/", assets, name="assets")
    else:
        app.add_api_route(
            "/{path:path}",
            fallback.not_found,
            methods=fallback.ALL_METHODS,
            include_in_schema=False,
        )

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `recordbook.main:app` to be importable
app = create_app()
