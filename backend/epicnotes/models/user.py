"""
Epic Notes — User SQLAlchemy Model
===================================

What:  ORM model representing the `users` table.
Who:   Read by SqlNoteStore for profile pages and note ownership.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from epicnotes.database import Base


class User(Base):
    """A profile that owns notes. Looked up by the unique `username`."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # What: URL segment in /users/{username}; unique and indexed
    username: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # Optional display name; pages fall back to the username
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    notes = relationship("Note", back_populates="owner", lazy="raise")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
