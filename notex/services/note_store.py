"""
NoteX Backend — Note Store
===========================

What:  The two database operations the API needs: list-all-ordered and
       insert-one.
How:   SQLAlchemy ORM statements on the session handed in by the route.
       create_note() commits before returning, so the note is durable by the
       time the handler builds its 201 response.
Who:   Called by the notes routes and by ExportWriter.

Error Handling Strategy:
    SQLAlchemy errors are logged with full detail and re-raised as
    DatabaseError carrying only a generic public message.
"""

import logging
from typing import List

from sqlalchemy import desc, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notex.exceptions import DatabaseError
from notex.models.note import Note
from notex.schemas.note import NoteResponse

logger = logging.getLogger(__name__)


class NoteStore:
    """
    Stateless persistence layer for notes.

    Responsibilities:
        - list_notes(): every note, newest first
        - create_note(): single INSERT ... RETURNING
    """

    async def list_notes(self, db: AsyncSession) -> List[NoteResponse]:
        """
        Return all notes ordered by created_at descending.

        Ties on created_at (same-instant inserts) fall back to id
        descending, so the newest id always comes first.

        Returns:
            List of NoteResponse; empty when the table is empty.

        Raises:
            DatabaseError: Query execution failed (→ 500)
        """
        query = select(Note).order_by(desc(Note.created_at), desc(Note.id))
        try:
            result = await db.execute(query)
            notes = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__}) from e

        return [NoteResponse.model_validate(note) for note in notes]

    async def create_note(self, db: AsyncSession, title: str, description: str) -> NoteResponse:
        """
        Insert one note and return it with its assigned id and created_at.

        Query:
            INSERT INTO notes (title, description) VALUES (:t, :d) RETURNING *

        Raises:
            DatabaseError: Insert or commit failed (→ 500 "DB insert failed")
        """
        stmt = (
            insert(Note)
            .values(title=title, description=description)
            .returning(Note)
        )
        try:
            result = await db.execute(stmt)
            note = NoteResponse.model_validate(result.scalar_one())
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Error inserting note into DB: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="DB insert failed",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Note %d created", note.id)
        return note


# ── Singleton Instance ────────────────────────────────────────────────────
note_store = NoteStore()
