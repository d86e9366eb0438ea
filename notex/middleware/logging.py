"""
NoteX Backend — Access Log Middleware
======================================

What:  One line per request on the `notex.access` logger:

           GET /notes -> 200 (12.4ms)
           POST /notes -> 201 (880.1ms, cold start)

How:   Level follows the status class (5xx ERROR, 4xx WARNING, else INFO).
       "cold start" marks the requests that found the ConfigurationLoader
       un-ready, so the Secret Manager and schema setup cost is visible.
       The request ID comes from RequestIDLogFilter, not from this module.

Request bodies are never logged (note text is user content).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("notex.access")


def status_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log; sits between the request ID and readiness middleware."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        cold = not request.app.state.loader.ready
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.log(
            status_level(response.status_code),
            "%s %s -> %d (%.1fms%s)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            ", cold start" if cold else "",
        )
        return response
