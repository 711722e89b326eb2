"""
Epic Notes — Storage Package
=============================

What:  NoteStore backends and the factory that picks one from settings.

Backend Inventory:
    - InMemoryNoteStore: dict-backed mock database (default, NOTE_STORE=memory)
    - SqlNoteStore:      async SQLAlchemy (NOTE_STORE=sql)
"""

from epicnotes.config import Settings
from epicnotes.storage.base import NoteStore
from epicnotes.storage.memory import InMemoryNoteStore


def build_note_store(config: Settings) -> NoteStore:
    """Create the NoteStore selected by NOTE_STORE."""
    if config.note_store == "sql":
        # Imported lazily so the memory backend never loads the ORM models
        from epicnotes.database import async_session_factory
        from epicnotes.storage.sql import SqlNoteStore

        return SqlNoteStore(async_session_factory)
    return InMemoryNoteStore()


__all__ = ["NoteStore", "InMemoryNoteStore", "build_note_store"]
