"""
Epic Notes — Test Configuration (conftest.py)
==============================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory store, temp storage,
       HTTP client) so tests never need a database server or a browser.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── temp_storage:   Temporary STORAGE_ROOT
    ├── files:          FileService on temp_storage, patched into the services
    ├── store:          InMemoryNoteStore with user "alice" and note "n1"
    ├── store_with_image: store plus image "x1" (12345-byte JPEG) on note n1
    ├── sample_image_bytes: minimal JPEG bytes
    ├── app:            fresh FastAPI app wired to `store`
    ├── test_client:    HTTPX AsyncClient over ASGITransport
    ├── image_client:   test_client over store_with_image
    └── fetch_csrf_token: helper that reads the token from an edit form
"""

import os
import re
import tempfile

# Override settings BEFORE any epicnotes import; Settings() reads the
# environment once at import time
os.environ["APP_ENV"] = "test"
os.environ["NOTE_STORE"] = "memory"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="epicnotes_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import patch  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from epicnotes.dependencies import get_note_store  # noqa: E402
from epicnotes.schemas.note import ImageMeta  # noqa: E402
from epicnotes.services.file_service import FileService  # noqa: E402
from epicnotes.storage.memory import InMemoryNoteStore  # noqa: E402

IMAGE_SIZE = 12345

CSRF_INPUT = re.compile(r'name="csrf" value="([^"]+)"')


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def files(temp_storage):
    """
    FileService rooted in temp_storage, used by both services.

    Patched at the import sites so uploads and streams in a test never touch
    the shared STORAGE_ROOT.
    """
    service = FileService(storage_root=temp_storage)
    with patch("epicnotes.services.note_service.file_service", service), \
         patch("epicnotes.services.image_service.file_service", service):
        yield service


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).
    Not a real photograph; nothing here decodes images.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def store():
    """In-memory store holding alice (name "Alice") and her note n1."""
    store = InMemoryNoteStore()
    await store.create_user("alice", name="Alice")
    await store.create_note("alice", "Old title", "Old content", note_id="n1")
    return store


@pytest_asyncio.fixture
async def store_with_image(files):
    """
    Like `store`, with image x1 on note n1: a 12345-byte JPEG on disk
    at images/x1.jpg.
    """
    image_path = files.storage_root / "images" / "x1.jpg"
    image_path.parent.mkdir(parents=True, exist_ok=True)
    image_path.write_bytes(b"\xff\xd8" + b"\x00" * (IMAGE_SIZE - 4) + b"\xff\xd9")

    store = InMemoryNoteStore()
    await store.create_user("alice", name="Alice")
    await store.create_note(
        "alice",
        "Old title",
        "Old content",
        note_id="n1",
        images=[
            ImageMeta(
                id="x1",
                alt_text="A koala",
                content_type="image/jpeg",
                file_path="images/x1.jpg",
            )
        ],
    )
    return store


def _build_app(note_store):
    from epicnotes.main import create_app

    app = create_app()
    app.dependency_overrides[get_note_store] = lambda: note_store
    return app


@pytest.fixture
def app(store, files):
    return _build_app(store)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to a fresh app.

    The client keeps cookies between requests, so the CSRF cookie set by a
    GET is sent back on the following POST.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def image_client(store_with_image):
    """test_client variant whose store holds image x1."""
    transport = ASGITransport(app=_build_app(store_with_image))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fetch_csrf_token():
    """Returns a coroutine: GET an edit form, give back its hidden CSRF token."""

    async def _fetch(client: AsyncClient, url: str) -> str:
        response = await client.get(url)
        assert response.status_code == 200
        match = CSRF_INPUT.search(response.text)
        assert match, "edit form has no csrf field"
        return match.group(1)

    return _fetch
