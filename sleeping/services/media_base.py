"""
Sleeping Backend: Media Storage Interface
==========================================

What:  Abstract base class for object storage backends (post videos,
       thumbnails, avatars).
How:   Concrete backends implement `_store()`; the shared `upload()` wrapper
       validates the payload first and translates backend failures into
       MediaUploadError, so callers only ever see application exceptions.
Who:   FeedService.create_post(); selected by get_media_storage().

Implementations:
    - CloudinaryStorage:   Cloudinary CDN (default, production)
    - LocalMediaStorage:   date-organized directory on disk (development, tests)
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from sleeping.config import settings
from sleeping.exceptions import MediaUploadError, ValidationError

logger = logging.getLogger(__name__)

KIND_IMAGE = "image"
KIND_VIDEO = "video"


@dataclass
class MediaUpload:
    """An uploaded file read into memory by the route layer."""
    content: bytes
    filename: str = ""
    content_type: Optional[str] = None


class MediaStorage(ABC):
    """
    Contract:
        - upload() returns a URL clients can fetch the object from
        - empty or oversize payloads raise ValidationError before any I/O
        - any backend failure surfaces as MediaUploadError
    """

    name = "abstract"

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_upload_size

    def validate(self, content: bytes, field: str = "file") -> None:
        if not content:
            raise ValidationError(message="Uploaded file is empty", field=field)
        if len(content) > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({len(content) / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field=field,
                context={"max_size": self.max_size, "actual_size": len(content)},
            )

    async def upload(
        self,
        content: bytes,
        filename: str = "",
        folder: str = "posts",
        kind: str = KIND_VIDEO,
    ) -> str:
        """
        Store `content` and return its public URL.

        Args:
            content:  Raw file bytes
            filename: Original client filename (only its extension is kept)
            folder:   Logical folder, e.g. "posts/videos"
            kind:     "video" or "image"
        """
        self.validate(content, field=kind)
        try:
            url = await self._store(content, filename, folder, kind)
        except MediaUploadError:
            raise
        except Exception as e:
            logger.error("%s upload failed (%s, %d bytes): %s", self.name, folder, len(content), e)
            raise MediaUploadError(context={"backend": self.name, "error": str(e)})

        logger.info("Stored %s in %s via %s (%d bytes)", kind, folder, self.name, len(content))
        return url

    @abstractmethod
    async def _store(self, content: bytes, filename: str, folder: str, kind: str) -> str:
        """Backend-specific write. May raise anything; upload() translates it."""
        ...


def get_media_storage() -> MediaStorage:
    """
    FastAPI dependency selecting the backend from `settings.media_backend`.

    Tests override this dependency with an in-memory fake.
    """
    if settings.media_backend == "local":
        from sleeping.services.local_storage import LocalMediaStorage

        return LocalMediaStorage()

    from sleeping.services.cloudinary_storage import CloudinaryStorage

    return CloudinaryStorage()
