"""
Epic Notes — File Storage Service
==================================

What:  Writes uploaded note images to disk and streams them back out.
Why:   Centralizes all file system operations and their safety checks.
How:   Uploads are stored in date-organized directories under fresh UUID
       names; reads go through FileStream, which yields fixed-size chunks
       with aiofiles so a large image never sits in memory at once.
Who:   Called by NoteService (store/cleanup) and ImageService (open).

Invariants:
    - A stored file is never overwritten. New bytes always get a new path,
      which is what makes `immutable` caching of /resources/images/{id} safe.
    - Relative paths are resolved inside STORAGE_ROOT only; anything that
      escapes it is rejected before the file system is touched.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

import aiofiles
import magic

from epicnotes.config import settings
from epicnotes.exceptions import FileStorageError, NotFoundError
from epicnotes.forms.note_editor import ACCEPTED_IMAGE_TYPES
from epicnotes.schemas.note import StoredUpload

logger = logging.getLogger(__name__)

# libmagic needs only the header; 2 KiB covers every accepted image format
MAGIC_SNIFF_BYTES = 2048


class FileStream:
    """
    Incremental reader over one open file.

    Iterating yields chunks until EOF and then closes the handle. The handle
    is also closed when iteration stops early (client disconnect) or fails.

    Truncation guard:
        `size` is taken from the open descriptor. If EOF arrives before that
        many bytes were read (the file shrank or vanished mid-read), iteration
        raises FileStorageError instead of ending quietly, so the HTTP
        response is aborted rather than delivered short.
    """

    def __init__(self, handle, size: int, path: Path, chunk_size: int):
        self._handle = handle
        self.size = size
        self.path = path
        self.chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        sent = 0
        try:
            while True:
                try:
                    chunk = await self._handle.read(self.chunk_size)
                except OSError as e:
                    logger.error("Read failed for %s after %d bytes: %s", self.path, sent, str(e))
                    raise FileStorageError(
                        message="Could not read the image file.",
                        context={"path": str(self.path), "os_error": str(e)},
                    ) from e
                if not chunk:
                    break
                sent += len(chunk)
                yield chunk

            if sent != self.size:
                logger.error(
                    "Short read for %s: expected %d bytes, got %d", self.path, self.size, sent
                )
                raise FileStorageError(
                    message="Image file changed while it was being read.",
                    context={"path": str(self.path), "expected": self.size, "read": sent},
                )
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the file handle. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        await self._handle.close()


class FileService:
    """
    Manages the stored-image lifecycle: store, open for streaming, clean up.

    Directory Structure:
        storage/
        └── images/
            └── 2024/
                └── 01/
                    └── 15/
                        └── a1b2c3d4-5678.jpg
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Paths ─────────────────────────────────────────────────────────────

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path to an absolute one inside storage_root.

        Raises:
            FileStorageError if the path escapes the storage root
            (e.g. "../../etc/passwd" stored by a tampered record).
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise FileStorageError(
                message="Invalid file path",
                context={"path": relative_path},
            )
        return full_path

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Creates an images/YYYY/MM/DD/<uuid><ext> path pair (absolute, relative)."""
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"images/{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    @staticmethod
    def detect_content_type(content: bytes) -> str:
        """
        MIME type of the upload, read from its leading bytes with libmagic.

        The Content-Type the client declared is never consulted: renaming
        page.html to cat.jpg changes the label, not the bytes.

        Raises:
            FileStorageError if libmagic cannot inspect the buffer.
        """
        try:
            return magic.from_buffer(content[:MAGIC_SNIFF_BYTES], mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

    # ── Store ─────────────────────────────────────────────────────────────

    async def store_image(self, content: bytes, content_type: str) -> StoredUpload:
        """
        Write validated image bytes to a fresh file.

        Callers validate first and pass the type detect_content_type()
        found; this method only stores.

        Returns:
            StoredUpload with the relative path (for the database) and the
            content type to serve the bytes with.

        Raises:
            FileStorageError if directory creation or file write fails.
        """
        extensions = ACCEPTED_IMAGE_TYPES.get(content_type, ())
        extension = extensions[0] if extensions else ""
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes, %s)", relative_path, len(content), content_type)
        return StoredUpload(content_type=content_type, file_path=relative_path)

    # ── Read ──────────────────────────────────────────────────────────────

    async def open_stream(self, relative_path: str, chunk_size: Optional[int] = None) -> FileStream:
        """
        Open a stored file for incremental reading.

        The file is opened and measured BEFORE any response starts, so a
        missing file turns into a 404 instead of a 200 with an empty body.

        Raises:
            NotFoundError    if the file is gone
            FileStorageError for any other OS error
        """
        path = self.resolve(relative_path)
        try:
            handle = await aiofiles.open(path, "rb")
        except FileNotFoundError:
            logger.warning("Stored file missing: %s", path)
            raise NotFoundError("Image Not Found", resource="file", resource_id=relative_path)
        except OSError as e:
            logger.error("Failed to open %s: %s", path, str(e))
            raise FileStorageError(
                message="Could not read the image file.",
                context={"path": str(path), "os_error": str(e)},
            )

        try:
            size = os.fstat(handle.fileno()).st_size
        except OSError as e:
            await handle.close()
            raise FileStorageError(
                message="Could not read the image file.",
                context={"path": str(path), "os_error": str(e)},
            )

        return FileStream(handle, size, path, chunk_size or settings.stream_chunk_size)

    # ── Cleanup ───────────────────────────────────────────────────────────

    async def cleanup_file(self, relative_path: str) -> None:
        """
        Remove a stored file (best effort).

        When:  An upload was stored but the note update failed, or an image
               was replaced by a new upload.
        Why best effort: Failing to delete a file must not fail the request
        that triggered it; the failure is logged for manual cleanup.
        """
        try:
            path = self.resolve(relative_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except (OSError, FileStorageError) as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
