"""
NoteX Backend — Readiness Middleware (top-level error boundary)
================================================================

What:  Runs the configuration loader before every request and converts
       anything that escapes the app into a generic 500.
How:   Awaits `app.state.loader.ensure_ready()` (a no-op after the first
       success), then hands the request to the router. NotexErrors raised
       during setup are mapped by kind; every other exception is logged with
       its stack trace and answered with {"error": "Internal server error"}.
When:  Innermost middleware, so request IDs and access logs cover failed
       setups too.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notex.exceptions import NotexError, error_response, internal_error_response

logger = logging.getLogger(__name__)


class ReadinessMiddleware(BaseHTTPMiddleware):
    """Ensures process configuration is loaded; last line of error handling."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            await request.app.state.loader.ensure_ready()
            return await call_next(request)
        except NotexError as exc:
            logger.error("%s: %s | Context: %s", exc.kind.value, exc, exc.context)
            return error_response(exc)
        except Exception as exc:
            logger.error("Error in notex API: %s", str(exc), exc_info=True)
            return internal_error_response()
