"""
Epic Notes — FastAPI Dependencies
==================================

What:  Request-scoped accessors injected into route handlers via Depends().
Why:   Routes never import a concrete store; tests swap it with
       `app.dependency_overrides[get_note_store]`.
"""

from starlette.requests import Request

from epicnotes.storage.base import NoteStore


def get_note_store(request: Request) -> NoteStore:
    """The NoteStore built by create_app() and kept on app.state."""
    return request.app.state.note_store
