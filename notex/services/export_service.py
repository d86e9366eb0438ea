"""
NoteX Backend — Note Export Writer
===================================

What:  Snapshots every note into a pretty-printed JSON object in the export
       bucket.
How:   Lists notes through NoteStore (same newest-first order as the API),
       serializes them with a Pydantic TypeAdapter, and uploads the bytes
       under note_exports/notes-<UTC timestamp>.json.
Who:   Called by POST /notes/export.

Artifact:
    [
      {
        "id": 2,
        "title": "...",
        "description": "...",
        "created_at": "2024-01-15T12:00:00.123456"
      },
      ...
    ]

Every call re-exports the whole table; keys never collide because they
carry the export's wall-clock time down to the millisecond.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from notex.config import settings
from notex.exceptions import StorageError
from notex.schemas.note import NoteResponse
from notex.services.loader import Runtime
from notex.services.note_store import NoteStore, note_store

logger = logging.getLogger(__name__)

EXPORT_CONTENT_TYPE = "application/json"

_notes_adapter = TypeAdapter(List[NoteResponse])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def export_timestamp(moment: datetime) -> str:
    """Render `moment` as a sortable UTC string: 2024-01-15T12:00:00.123Z."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + (
        f"{moment.microsecond // 1000:03d}Z"
    )


def serialize_notes(notes: List[NoteResponse]) -> bytes:
    """Indented UTF-8 JSON array; an empty list becomes `[]`."""
    return _notes_adapter.dump_json(notes, indent=2)


class ExportWriter:
    """Writes full-table note snapshots to blob storage."""

    def __init__(
        self,
        store: NoteStore = note_store,
        prefix: str = "note_exports/",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._prefix = prefix
        self._clock = clock or _utcnow

    def object_key(self, moment: datetime) -> str:
        return f"{self._prefix}notes-{export_timestamp(moment)}.json"

    async def export_notes(self, db: AsyncSession, runtime: Runtime) -> str:
        """
        Export every note and return the object location.

        Returns:
            "gs://<bucket>/note_exports/notes-<timestamp>.json"

        Raises:
            DatabaseError: Listing notes failed
            StorageError:  The upload failed
        """
        notes = await self._store.list_notes(db)
        payload = serialize_notes(notes)
        key = self.object_key(self._clock())
        bucket = runtime.config.export_bucket

        try:
            location = await runtime.storage.upload(bucket, key, payload, EXPORT_CONTENT_TYPE)
        except Exception as e:
            logger.error("Export upload to %s/%s failed: %s", bucket, key, e, exc_info=True)
            raise StorageError(context={"bucket": bucket, "key": key}) from e

        logger.info("Exported %d notes to %s", len(notes), location)
        return location


# ── Singleton Instance ────────────────────────────────────────────────────
export_writer = ExportWriter(prefix=settings.export_prefix)
