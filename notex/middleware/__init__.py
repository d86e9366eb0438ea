"""
NoteX Backend — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [Readiness] → Router

    1. Request ID: correlation ID for every log line of the request
    2. Logging: method, path, status, duration
    3. Readiness: one-time configuration load, then the catch-all that turns
       unexpected errors into a generic 500
"""
