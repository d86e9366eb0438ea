"""
NoteX Backend — Request ID Middleware
======================================

What:  Correlates every log line of a request, including those written by
       the loader, NoteStore and ExportWriter, under one short ID.
How:   The middleware binds the ID to a ContextVar for the duration of the
       request and echoes it in the X-Request-ID response header.
       RequestIDLogFilter, installed on the root handler by setup_logging(),
       copies the current ID onto each LogRecord as `request_id`.

Log line:
    2024-01-15T12:00:00 [INFO] notex.services.note_store [3f2a9c1e]: Note 7 created

Records emitted outside a request (startup, shutdown) carry "-".
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "-"

# Client-supplied IDs longer than this are replaced
MAX_REQUEST_ID_LENGTH = 64

request_id_var: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDLogFilter(logging.Filter):
    """Stamps `record.request_id`; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: binds the request ID before anything logs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER, "")
        if not rid or len(rid) > MAX_REQUEST_ID_LENGTH:
            rid = new_request_id()

        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
