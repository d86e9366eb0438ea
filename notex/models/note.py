"""
NoteX Backend — Note SQLAlchemy Model
======================================

What:  ORM model representing the `notes` table in PostgreSQL.
Who:   Used by NoteStore for insert/list and by create_schema() for the
       idempotent CREATE TABLE.

Table:
    notes(
        id          SERIAL PRIMARY KEY,
        title       VARCHAR(255) NOT NULL,
        description TEXT NOT NULL,
        created_at  TIMESTAMP NOT NULL DEFAULT now()
    )

Notes are append-only: no code path updates or deletes a row.
"""

from datetime import datetime

from sqlalchemy import TIMESTAMP, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from notex.database import Base


class Note(Base):
    """
    A persisted note.

    id and created_at are assigned by the database on insert and read back
    through INSERT ... RETURNING.
    """

    __tablename__ = "notes"

    # Integer primary key renders as SERIAL on PostgreSQL
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', created_at='{self.created_at}')>"
