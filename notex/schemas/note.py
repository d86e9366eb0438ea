"""
NoteX Backend — Pydantic Request/Response Schemas
==================================================

What:  Pydantic models defining the API contract, plus the normalization
       step that turns an inbound create-note body into a NoteInput.
Who:   Used by routes as return types, by NoteStore for row conversion and
       by ExportWriter for serialization.
"""

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """
    What:  Full representation of a note, all four columns verbatim.
    Who:   Returned by GET /notes (as array items) and POST /notes (201).
           Also the element type of the export artifact.
    """
    id: int = Field(description="Store-assigned identifier, increasing")
    title: str = Field(description="Note title")
    description: str = Field(description="Note body")
    created_at: datetime = Field(description="Insertion time assigned by the database")

    model_config = {"from_attributes": True}


class ExportResponse(BaseModel):
    """Returned by POST /notes/export once the object is written."""
    message: str = Field(default="Export completed")
    file: str = Field(description="gs://<bucket>/<key> of the export artifact")


class ErrorResponse(BaseModel):
    """
    What:  Error body for 400 and 500 responses.

    Example:
        {"error": "title and description are required"}
    """
    error: str = Field(description="Human-readable error description")


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class NoteInput(BaseModel):
    """A create-note request that resolved to both required fields."""
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)

    model_config = {"frozen": True}


def _decode_json(data: Any) -> Any:
    """Decode JSON text or UTF-8 bytes; None when it is not valid JSON."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        return json.loads(data)
    except ValueError:
        return None


def _as_mapping(value: Any) -> Optional[Mapping]:
    # JSON-encoded string bodies: '"{\"title\": \"a\", ...}"'
    if isinstance(value, str):
        value = _decode_json(value)
    return value if isinstance(value, Mapping) else None


def parse_note_input(raw: Optional[bytes], parsed: Any = None) -> Optional[NoteInput]:
    """
    Normalize a create-note body into a NoteInput.

    Args:
        raw:    Raw request bytes. Decoded as JSON first.
        parsed: Body already parsed upstream (form fields, a JSON string or
                a mapping). Used only when `raw` does not yield an object.

    Returns:
        NoteInput when the body resolves to a mapping with non-empty string
        `title` and `description`; None for anything else.
    """
    body = None
    if raw:
        body = _as_mapping(_decode_json(raw))
    if body is None and parsed:
        body = _as_mapping(parsed)
    if body is None:
        return None

    title = body.get("title")
    description = body.get("description")
    if not isinstance(title, str) or not isinstance(description, str):
        return None
    if not title or not description:
        return None
    return NoteInput(title=title, description=description)
