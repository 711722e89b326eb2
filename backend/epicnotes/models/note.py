"""
Epic Notes — Note and NoteImage SQLAlchemy Models
==================================================

What:  ORM models for the `notes` and `note_images` tables.
Why:   Maps notes and their image metadata to rows for SqlNoteStore.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.

Table Design Rationale:
    - String ids: ids are minted in Python (uuid4) by both store backends,
      so the same id format works on PostgreSQL and SQLite.
    - title / content: length limits are enforced by the editor's rule set;
      the columns allow the same maxima so the database never truncates.
    - note_images.file_path: relative path from STORAGE_ROOT, never absolute
      (portable between environments).
    - note_images rows are never updated in place except for alt_text;
      a new upload always gets a new row and a new id, which is what lets
      the image route send `immutable` caching headers.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from epicnotes.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A text note owned by one user, with an ordered list of images.

    Lifecycle:
        1. Created by seeding (or a future create flow)
        2. Updated in place by the edit form (title, content, image)
        3. Never deleted by this application
    """

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now
    )

    owner = relationship("User", back_populates="notes", lazy="selectin")

    # delete-orphan: replacing the image list removes the old rows
    images = relationship(
        "NoteImage",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="NoteImage.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_notes_owner_updated", "owner_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title[:20]}')>"


class NoteImage(Base):
    """Metadata of one stored image file attached to a note."""

    __tablename__ = "note_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    note_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Order within the note; the editor manipulates position 0
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    alt_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now
    )

    note = relationship("Note", back_populates="images")

    def __repr__(self) -> str:
        return f"<NoteImage(id={self.id}, note_id={self.note_id})>"
