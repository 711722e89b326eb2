"""
Epic Notes — Image Resource Route
==================================

What:  GET /resources/images/{imageId} streams a stored note image.
Why:   Images are served from storage outside the static web root, with
       long-lived immutable caching since an id always names the same bytes.
How:   ImageService resolves the id and opens the file BEFORE the response
       starts, so a missing file becomes a 404 rather than an empty 200.
       The body is then pulled from FileStream chunk by chunk as the client
       consumes it.

Resource Cleanup:
    FileStream closes its handle when iteration ends or fails. A client that
    disconnects mid-body cancels the iteration instead, so the response
    also closes the stream once it is done sending, whatever the outcome.

Errors here are rendered as plain text (see main.py), not as an HTML page.
"""

import logging
from typing import Dict

from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from epicnotes.dependencies import get_note_store
from epicnotes.services.file_service import FileStream
from epicnotes.services.image_service import image_service
from epicnotes.storage.base import NoteStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources/images", tags=["Images"])


class ImageStreamResponse(StreamingResponse):
    """StreamingResponse that always releases the underlying FileStream."""

    def __init__(self, stream: FileStream, headers: Dict[str, str]):
        super().__init__(content=stream, headers=headers)
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()


@router.get("/")
async def image_without_id(store: NoteStore = Depends(get_note_store)):
    """No id segment at all: rejected with 400 `Invalid Image ID`."""
    await image_service.open_image(store, None)


@router.get("/{image_id}")
async def get_image(
    image_id: str,
    store: NoteStore = Depends(get_note_store),
) -> ImageStreamResponse:
    image, stream = await image_service.open_image(store, image_id)
    return ImageStreamResponse(
        stream,
        headers=image_service.response_headers(image_id, image, stream),
    )
