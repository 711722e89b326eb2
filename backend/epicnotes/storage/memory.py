"""
Epic Notes — In-Memory NoteStore (mock database)
=================================================

What:  Key-indexed dictionaries standing in for a database.
Why:   The app is meant to run with zero infrastructure; tests use it too.
How:   Users, notes and images live in dicts keyed by id (and username).
       Writes take an asyncio.Lock so concurrent edits of the same note are
       applied one after another (last write wins).

Records handed out are deep copies: callers can never mutate stored state
except through update_note.
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from epicnotes.exceptions import InvariantError, NotFoundError
from epicnotes.schemas.note import (
    ImageMeta,
    NoteChanges,
    NoteRecord,
    UserRecord,
    utc_now,
)

logger = logging.getLogger(__name__)


class InMemoryNoteStore:
    """NoteStore backed by process memory. Contents are lost on restart."""

    def __init__(self) -> None:
        self._users: Dict[str, UserRecord] = {}
        self._notes: Dict[str, NoteRecord] = {}
        self._lock = asyncio.Lock()

    # ── Users ─────────────────────────────────────────────────────────────

    async def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        user = self._users.get(username)
        return user.model_copy() if user else None

    async def create_user(self, username: str, name: Optional[str] = None) -> UserRecord:
        async with self._lock:
            if username in self._users:
                raise InvariantError(f"Username '{username}' is already taken", status_code=409)
            user = UserRecord(id=str(uuid.uuid4()), username=username, name=name)
            self._users[username] = user
            return user.model_copy()

    # ── Notes ─────────────────────────────────────────────────────────────

    async def list_notes_by_owner(self, username: str) -> List[NoteRecord]:
        notes = [n for n in self._notes.values() if n.owner_username == username]
        notes.sort(key=lambda n: n.updated_at, reverse=True)
        return [n.model_copy(deep=True) for n in notes]

    async def find_note_by_id(self, note_id: str) -> Optional[NoteRecord]:
        note = self._notes.get(note_id)
        return note.model_copy(deep=True) if note else None

    async def create_note(
        self,
        owner_username: str,
        title: str,
        content: str,
        images: Optional[List[ImageMeta]] = None,
        note_id: Optional[str] = None,
    ) -> NoteRecord:
        async with self._lock:
            if owner_username not in self._users:
                raise NotFoundError(
                    f'User "{owner_username}" not found',
                    resource="user",
                    resource_id=owner_username,
                )
            note_id = note_id or str(uuid.uuid4())
            if note_id in self._notes:
                raise InvariantError(f"Note id '{note_id}' already exists", status_code=409)
            note = NoteRecord(
                id=note_id,
                owner_username=owner_username,
                title=title,
                content=content,
                images=[img.model_copy(update={"note_id": note_id}) for img in images or []],
            )
            self._notes[note_id] = note
            return note.model_copy(deep=True)

    async def update_note(self, note_id: str, changes: NoteChanges) -> None:
        async with self._lock:
            note = self._notes.get(note_id)
            if note is None:
                raise NotFoundError(
                    f"No note with the id {note_id}", resource="note", resource_id=note_id
                )

            images = note.images
            if changes.image is not None:
                change = changes.image
                if change.upload is not None:
                    images = [
                        ImageMeta(
                            id=change.id,
                            note_id=note_id,
                            alt_text=change.alt_text,
                            content_type=change.upload.content_type,
                            file_path=change.upload.file_path,
                        )
                    ]
                else:
                    images = [
                        img.model_copy(update={"alt_text": change.alt_text})
                        if img.id == change.id
                        else img
                        for img in images
                    ]

            self._notes[note_id] = note.model_copy(
                update={
                    "title": changes.title,
                    "content": changes.content,
                    "images": images,
                    "updated_at": utc_now(),
                }
            )
            logger.debug("Note %s updated in memory", note_id)

    # ── Images ────────────────────────────────────────────────────────────

    async def find_image_by_id(self, image_id: str) -> Optional[ImageMeta]:
        for note in self._notes.values():
            for image in note.images:
                if image.id == image_id:
                    return image.model_copy()
        return None

    async def ping(self) -> bool:
        return True
