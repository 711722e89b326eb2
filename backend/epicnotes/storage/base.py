"""
Epic Notes — NoteStore Protocol
================================

What:  The narrow repository interface every flow depends on.
Why:   The editor and the image streamer only need a handful of lookups and
       one update. Keeping the interface this small means services can be
       tested against the in-memory store, and the SQL backend can be
       swapped in without touching them.

Semantics shared by all backends:
    - find_* return None for unknown ids (never raise for "not found")
    - update_note applies one NoteChanges atomically (last write wins)
    - image ids are minted by the caller and never reused
"""

from typing import List, Optional, Protocol, runtime_checkable

from epicnotes.schemas.note import ImageMeta, NoteChanges, NoteRecord, UserRecord


@runtime_checkable
class NoteStore(Protocol):
    async def find_user_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    async def list_notes_by_owner(self, username: str) -> List[NoteRecord]:
        ...

    async def find_note_by_id(self, note_id: str) -> Optional[NoteRecord]:
        ...

    async def update_note(self, note_id: str, changes: NoteChanges) -> None:
        ...

    async def find_image_by_id(self, image_id: str) -> Optional[ImageMeta]:
        ...

    async def create_user(self, username: str, name: Optional[str] = None) -> UserRecord:
        ...

    async def create_note(
        self,
        owner_username: str,
        title: str,
        content: str,
        images: Optional[List[ImageMeta]] = None,
        note_id: Optional[str] = None,
    ) -> NoteRecord:
        ...

    async def ping(self) -> bool:
        ...
