"""
Epic Notes — Application Package Initializer
=============================================

What: Marks the `epicnotes` directory as a Python package.
Why:  Enables module imports like `from epicnotes.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The app is server-rendered; every page is produced by a route handler
    and a Jinja2 template. Layers:

    ┌─────────────────────────────────────┐
    │     Routes + Templates (HTML)       │  ← HTTP and rendering concerns only
    ├─────────────────────────────────────┤
    │   Forms (shared validation rules)   │  ← One rule set, two call sites
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Edit workflow, image streaming
    ├─────────────────────────────────────┤
    │      Storage (Note Store backends)  │  ← In-memory mock DB or SQLAlchemy
    └─────────────────────────────────────┘

    Services only talk to the narrow NoteStore protocol, so the editor and
    the image streamer are testable without a database or a real filesystem.
"""

__version__ = "1.0.0"
