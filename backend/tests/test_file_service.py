"""
Epic Notes — File Service Unit Tests
=====================================

What:  Tests for storing uploads and streaming stored images back out.
Why:   FileService guards the storage root and owns the file handles behind
       every image response, so leaks or silent truncation would reach users.
How:   Real files in a per-test temporary directory; mock handles where an
       OS failure has to be simulated.

Test Strategy:
    ✅ Uploads land in images/YYYY/MM/DD/<uuid><ext> and are never overwritten
    ✅ Content type is read from the bytes with libmagic, never from the client
    ✅ Paths escaping the storage root are rejected
    ✅ Streams yield every byte, report the on-disk size and close afterwards
    ✅ Read errors and short reads raise instead of ending quietly
    ✅ Cleanup is best effort
"""

import re
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import magic
import pytest

from epicnotes.exceptions import FileStorageError, NotFoundError
from epicnotes.forms.note_editor import ACCEPTED_IMAGE_TYPES
from epicnotes.services.file_service import FileService, FileStream

STORED_PATH = re.compile(r"^images/\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.jpg$")


async def _drain(stream: FileStream) -> bytes:
    chunks = []
    async for chunk in stream:
        chunks.append(chunk)
    return b"".join(chunks)


class TestContentType:
    def test_jpeg_detected_from_bytes(self, sample_image_bytes):
        assert FileService.detect_content_type(sample_image_bytes) == "image/jpeg"

    def test_png_and_gif_signatures(self):
        png = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 32
        assert FileService.detect_content_type(png) == "image/png"
        assert FileService.detect_content_type(b"GIF89a" + b"\x00" * 32) == "image/gif"

    def test_html_is_not_an_image(self):
        detected = FileService.detect_content_type(
            b"<!DOCTYPE html><html><body><script>alert(1)</script></body></html>"
        )
        assert detected not in ACCEPTED_IMAGE_TYPES

    def test_libmagic_failure_raises(self, monkeypatch):
        def broken(*args, **kwargs):
            raise magic.MagicException("bad magic file")

        monkeypatch.setattr(magic, "from_buffer", broken)
        with pytest.raises(FileStorageError, match="Could not verify file type"):
            FileService.detect_content_type(b"\xff\xd8\xff")


class TestStoreImage:
    @pytest.mark.asyncio
    async def test_store_creates_date_directory(self, temp_storage, sample_image_bytes):
        service = FileService(storage_root=temp_storage)
        stored = await service.store_image(sample_image_bytes, "image/jpeg")

        assert STORED_PATH.match(stored.file_path)
        assert stored.content_type == "image/jpeg"
        assert (Path(temp_storage) / stored.file_path).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_extension_follows_content_type(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        stored = await service.store_image(b"GIF89a", "image/gif")
        assert stored.file_path.endswith(".gif")

    @pytest.mark.asyncio
    async def test_store_never_reuses_a_path(self, temp_storage, sample_image_bytes):
        service = FileService(storage_root=temp_storage)
        first = await service.store_image(sample_image_bytes, "image/jpeg")
        second = await service.store_image(sample_image_bytes, "image/jpeg")
        assert first.file_path != second.file_path


class TestResolve:
    def test_traversal_rejected(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        with pytest.raises(FileStorageError, match="Invalid file path"):
            service.resolve("../../etc/passwd")

    def test_inside_root(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        assert service.resolve("images/a.jpg") == Path(temp_storage).resolve() / "images/a.jpg"


class TestOpenStream:
    @pytest.mark.asyncio
    async def test_stream_yields_all_bytes_in_chunks(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        content = bytes(range(256)) * 40  # 10240 bytes
        (Path(temp_storage) / "img.bin").write_bytes(content)

        stream = await service.open_stream("img.bin", chunk_size=1000)
        assert stream.size == len(content)

        chunks = []
        async for chunk in stream:
            chunks.append(chunk)

        assert b"".join(chunks) == content
        assert max(len(c) for c in chunks) == 1000
        assert stream.closed

    @pytest.mark.asyncio
    async def test_missing_file_is_not_found(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        with pytest.raises(NotFoundError, match="Image Not Found"):
            await service.open_stream("images/missing.jpg")

    @pytest.mark.asyncio
    async def test_short_read_raises(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        (Path(temp_storage) / "img.bin").write_bytes(b"x" * 100)
        stream = await service.open_stream("img.bin")
        # The file shrank after it was measured
        stream.size = 200

        with pytest.raises(FileStorageError, match="changed while it was being read"):
            await _drain(stream)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_read_error_propagates_and_closes(self):
        handle = MagicMock()
        handle.read = AsyncMock(side_effect=[b"abc", OSError("I/O error")])
        handle.close = AsyncMock()
        stream = FileStream(handle, size=10, path=Path("img.bin"), chunk_size=3)

        with pytest.raises(FileStorageError, match="Could not read"):
            await _drain(stream)
        handle.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_early_stop_and_aclose_release_handle_once(self):
        handle = MagicMock()
        handle.read = AsyncMock(return_value=b"abc")
        handle.close = AsyncMock()
        stream = FileStream(handle, size=1000, path=Path("img.bin"), chunk_size=3)

        iterator = stream.__aiter__()
        assert await iterator.__anext__() == b"abc"
        # Consumer went away mid-body
        await iterator.aclose()
        await stream.aclose()

        assert stream.closed
        handle.close.assert_awaited_once()


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        test_file = Path(temp_storage) / "test.jpg"
        test_file.write_bytes(b"test content")

        await service.cleanup_file("test.jpg")
        assert not test_file.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        # Should not raise
        await service.cleanup_file("nonexistent.jpg")

    @pytest.mark.asyncio
    async def test_cleanup_outside_root_is_ignored(self, temp_storage):
        service = FileService(storage_root=temp_storage)
        await service.cleanup_file("../outside.jpg")
