"""
Epic Notes — Image Resource Route Tests
========================================

What:  Tests for GET /resources/images/{imageId}.
Why:   Responses are cached for a year as immutable, so headers must be
       exact and a response must never be delivered short.

What we test:
    ✅ Exact headers and full body for a stored 12345-byte JPEG
    ✅ 400 / 404 answered in plain text
    ✅ A file missing on disk is a 404, not an empty 200
    ✅ The file handle is closed once the response is sent
"""

import pytest

# Size of the x1 fixture file written by conftest.store_with_image
IMAGE_SIZE = 12345


class TestImageStreaming:
    @pytest.mark.asyncio
    async def test_streams_image_with_exact_headers(self, image_client):
        response = await image_client.get("/resources/images/x1")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["content-length"] == str(IMAGE_SIZE)
        assert response.headers["content-disposition"] == 'inline; filename="x1"'
        assert response.headers["cache-control"] == "public, max-age=35136000, immutable"
        assert len(response.content) == IMAGE_SIZE
        assert response.content.startswith(b"\xff\xd8")

    @pytest.mark.asyncio
    async def test_missing_id_is_400(self, image_client):
        response = await image_client.get("/resources/images/")
        assert response.status_code == 400
        assert response.text == "Invalid Image ID"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, image_client):
        response = await image_client.get("/resources/images/nope")
        assert response.status_code == 404
        assert response.text == "Image Not Found"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_file_gone_from_disk_is_404(self, image_client, files):
        (files.storage_root / "images" / "x1.jpg").unlink()

        response = await image_client.get("/resources/images/x1")
        assert response.status_code == 404
        assert response.text == "Image Not Found"

    @pytest.mark.asyncio
    async def test_stream_closed_after_response(self, image_client, files, monkeypatch):
        opened = []
        original = files.open_stream

        async def spy(relative_path, chunk_size=None):
            stream = await original(relative_path, chunk_size=1024)
            opened.append(stream)
            return stream

        monkeypatch.setattr(files, "open_stream", spy)

        response = await image_client.get("/resources/images/x1")

        assert response.status_code == 200
        assert len(response.content) == IMAGE_SIZE
        assert len(opened) == 1
        assert opened[0].closed
