"""
Epic Notes — Image Service
===========================

What:  Resolves an image id to stored bytes plus the headers to send them with.
Who:   Called by GET /resources/images/{imageId}.

Caching:
    Image bytes for an id never change (every upload mints a new id), so
    responses are marked `public, max-age=35136000, immutable`: about 13
    months, and browsers skip revalidation entirely.
"""

import logging
from typing import Dict, Optional, Tuple

from epicnotes.exceptions import NotFoundError, invariant
from epicnotes.schemas.note import ImageMeta
from epicnotes.services.file_service import FileStream, file_service
from epicnotes.storage.base import NoteStore

logger = logging.getLogger(__name__)

IMAGE_CACHE_CONTROL = "public, max-age=35136000, immutable"


class ImageService:
    async def open_image(
        self, store: NoteStore, image_id: Optional[str]
    ) -> Tuple[ImageMeta, FileStream]:
        """
        Look up an image and open its file for streaming.

        Raises:
            InvariantError:   image_id missing (→ 400 "Invalid Image ID")
            NotFoundError:    unknown id or file gone (→ 404 "Image Not Found")
            FileStorageError: file exists but cannot be opened (→ 500)
        """
        invariant(image_id, "Invalid Image ID")
        image = await store.find_image_by_id(image_id)
        if image is None:
            raise NotFoundError("Image Not Found", resource="image", resource_id=image_id)

        stream = await file_service.open_stream(image.file_path)
        logger.debug("Streaming image %s (%d bytes)", image_id, stream.size)
        return image, stream

    @staticmethod
    def response_headers(image_id: str, image: ImageMeta, stream: FileStream) -> Dict[str, str]:
        return {
            "content-type": image.content_type,
            "content-length": str(stream.size),
            "content-disposition": f'inline; filename="{image_id}"',
            "cache-control": IMAGE_CACHE_CONTROL,
        }


image_service = ImageService()
