"""
NoteX Backend — Notes Route Handlers
=====================================

What:  GET /notes (list), POST /notes (create), POST /notes/export (export).
How:   Thin handlers: read the request, delegate to NoteStore / ExportWriter,
       return Pydantic models. Errors are raised as NotexError subclasses
       and mapped to responses by the handlers registered in main.py.

Responses:
    GET  /notes         200 [{id, title, description, created_at}, ...] newest first
    POST /notes         201 {id, title, description, created_at}
                        400 {"error": "title and description are required"}
                        500 {"error": "DB insert failed"}
    POST /notes/export  200 {"message": "Export completed", "file": "gs://..."}
"""

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from notex.database import get_db_session
from notex.exceptions import ValidationError
from notex.schemas.note import (
    ErrorResponse,
    ExportResponse,
    NoteResponse,
    parse_note_input,
)
from notex.services.export_service import export_writer
from notex.services.loader import Runtime
from notex.services.note_store import note_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notes"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_runtime(request: Request) -> Runtime:
    """Runtime loaded by the readiness middleware for this process."""
    return request.app.state.loader.runtime


async def read_parsed_body(request: Request) -> Any:
    """
    Body as parsed by the framework, for form submissions.

    Form posts arrive as field mappings; other content types have nothing
    beyond the raw bytes. A form body the parser rejects (missing boundary,
    truncated part) counts as no body at all.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(FORM_CONTENT_TYPES):
        return None
    try:
        return await request.form()
    except (MultiPartException, HTTPException) as e:
        logger.warning("Unparseable form body (content-type=%s): %s", content_type, e)
        return None


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List all notes, newest first",
)
async def list_notes(db: AsyncSession = Depends(get_db_session)) -> List[NoteResponse]:
    return await note_store.list_notes(db)


@router.post(
    "/notes",
    status_code=status.HTTP_201_CREATED,
    response_model=NoteResponse,
    responses={
        400: {"description": "title or description missing", "model": ErrorResponse},
        500: {"description": "Insert failed", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    """
    Create a note from a JSON body, a JSON-encoded string body, or form fields.

    The raw bytes are tried as JSON first; the framework-parsed body is the
    fallback. Nothing is written unless both fields resolve to non-empty
    strings.
    """
    raw = await request.body()
    note_input = parse_note_input(raw)
    if note_input is None:
        note_input = parse_note_input(raw, await read_parsed_body(request))

    if note_input is None:
        logger.warning(
            "Missing title or description in body (content-type=%s, %d bytes)",
            request.headers.get("content-type", ""),
            len(raw),
        )
        raise ValidationError(message="title and description are required")

    return await note_store.create_note(db, note_input.title, note_input.description)


@router.post(
    "/notes/export",
    response_model=ExportResponse,
    responses={500: {"description": "Export failed", "model": ErrorResponse}},
    summary="Export every note to the backup bucket",
)
async def export_notes(
    db: AsyncSession = Depends(get_db_session),
    runtime: Runtime = Depends(get_runtime),
) -> ExportResponse:
    location = await export_writer.export_notes(db, runtime)
    return ExportResponse(message="Export completed", file=location)
