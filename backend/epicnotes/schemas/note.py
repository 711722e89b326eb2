"""
Epic Notes — Pydantic Domain Schemas
=====================================

What:  Pydantic models passed between storage backends, services and routes.
Why:   Both NoteStore backends (in-memory and SQLAlchemy) return the same
       plain records, so services never see ORM instances or dict rows.
How:   Storage layers build these with `model_validate(..., from_attributes)`
       or directly; templates read their attributes.

Design Decision:
    Records are separate from SQLAlchemy models for the same reason as in
    any API contract: the template layer should not be able to trigger lazy
    loads, and the in-memory store has no ORM at all.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(BaseModel):
    """A user profile as shown on /users/{username}."""

    id: str
    username: str
    name: Optional[str] = None

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        """Name when set, otherwise the username."""
        return self.name or self.username


class ImageMeta(BaseModel):
    """
    What:  Stored metadata of one note image.
    Who:   Returned by NoteStore.find_image_by_id for the streaming route and
           embedded in NoteRecord.images for the editor and detail page.

    file_path is relative to STORAGE_ROOT; content_type is whatever the
    browser declared at upload time and is echoed back when streaming.
    """

    id: str
    note_id: Optional[str] = None
    alt_text: Optional[str] = None
    content_type: str = "application/octet-stream"
    file_path: str

    model_config = {"from_attributes": True}


class NoteRecord(BaseModel):
    """
    What:  A note with its ordered images.
    Who:   Returned by NoteStore.find_note_by_id / list_notes_by_owner.
    """

    id: str
    owner_username: str
    title: str
    content: str
    images: List[ImageMeta] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = {"from_attributes": True}

    @property
    def image(self) -> Optional[ImageMeta]:
        """The single image the editor manipulates (first in order)."""
        return self.images[0] if self.images else None


class StoredUpload(BaseModel):
    """Location and type of an upload already written to disk."""

    content_type: str
    file_path: str


class ImageChange(BaseModel):
    """
    What:  The image part of a successful edit.

    Two shapes:
        upload set   → a new image with a freshly minted `id` replaces the
                       note's images (ids are never reused)
        upload None  → the existing image `id` keeps its bytes; only
                       alt_text is updated
    """

    id: str
    alt_text: Optional[str] = None
    upload: Optional[StoredUpload] = None


class NoteChanges(BaseModel):
    """Fields written by one NoteStore.update_note call."""

    title: str
    content: str
    image: Optional[ImageChange] = None
