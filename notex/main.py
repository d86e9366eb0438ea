"""
NoteX Backend — FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       bound to a ConfigurationLoader (the process one by default).
Who:   Called by uvicorn to start the server (uvicorn notex.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────────────────────┐ │
    │  │  Req ID  │→│ Logging  │→│ Readiness (loader +  │ │
    │  └──────────┘ └──────────┘ │ catch-all 500)       │ │
    │                            └──────────────────────┘ │
    │  Routes:                                            │
    │  ┌────────┐ ┌───────────┐ ┌────────────┐ ┌────────┐ │
    │  │ GET /  │ │ GET notes │ │ POST notes │ │ export │ │
    │  └────────┘ └───────────┘ └────────────┘ └────────┘ │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌───────────────────────────────────────────────┐  │
    │  │ validation→400 │ not_found→404 │ others→500   │  │
    │  └───────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging. Secrets and the pool are NOT loaded here;
              the first request does that through the loader.
    Shutdown: dispose the connection pool.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from notex import __version__
from notex.config import settings
from notex.exceptions import ErrorKind, NotexError, NotFoundError, error_response
from notex.middleware.logging import RequestLoggingMiddleware
from notex.middleware.readiness import ReadinessMiddleware
from notex.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware
from notex.routes import notes, ui
from notex.services.loader import ConfigurationLoader

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    Output: stdout (captured by the platform's log collector)
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
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("NoteX Backend %s starting up (configuration loads on first request)", __version__)

    yield

    logger.info("NoteX Backend shutting down...")
    await app.state.loader.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map errors raised inside route handlers to responses.

    Handler hierarchy:
        NotexError            → status fixed by its ErrorKind
        HTTPException 404/405 → 404 {"error": "Not found", method, path}
        HTTPException (other) → its status, {"error": detail}

    Anything else propagates to ReadinessMiddleware and becomes a generic 500.
    Response bodies never carry exception context or stack traces.
    """

    @app.exception_handler(NotexError)
    async def handle_notex_error(request: Request, exc: NotexError):
        if exc.kind is ErrorKind.VALIDATION:
            logger.warning("Validation error: %s", exc.message)
        elif exc.kind is not ErrorKind.NOT_FOUND:
            logger.error("%s error: %s | Context: %s", exc.kind.value, exc, exc.context)
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Unknown path and known path with the wrong method are both "not found"
        if exc.status_code in (404, 405):
            return error_response(NotFoundError(method=request.method, path=request.url.path))
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(loader: Optional[ConfigurationLoader] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        loader: Configuration loader shared by all requests. Defaults to one
                backed by Secret Manager, PostgreSQL and Cloud Storage.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="NoteX API",
        description="Minimal note-taking backend with Cloud Storage export.",
        version=__version__,
        # Every path outside the route table answers 404
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.loader = loader or ConfigurationLoader()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → Readiness → router
    app.add_middleware(ReadinessMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(ui.router)
    app.include_router(notes.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
