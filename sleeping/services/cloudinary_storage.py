"""
Sleeping Backend: Cloudinary Media Storage
===========================================

What:  MediaStorage backed by the Cloudinary upload API.
How:   The Cloudinary SDK is synchronous, so each upload runs in a worker
       thread via asyncio.to_thread() and the event loop keeps serving.
When:  settings.media_backend == "cloudinary" (the default).
"""

import asyncio
import logging
from typing import Optional

import cloudinary
import cloudinary.uploader

from sleeping.config import settings
from sleeping.exceptions import MediaUploadError
from sleeping.services.media_base import KIND_IMAGE, MediaStorage

logger = logging.getLogger(__name__)

ROOT_FOLDER = "sleeping"


def resource_type_for(kind: str) -> str:
    # Cloudinary files audio under the "video" resource type as well
    if kind == KIND_IMAGE:
        return "image"
    return "video"


class CloudinaryStorage(MediaStorage):
    name = "cloudinary"

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(max_size=max_size)
        self.cloud_name = cloud_name or settings.cloudinary_cloud_name
        self.api_key = api_key or settings.cloudinary_api_key
        self.api_secret = api_secret or settings.cloudinary_api_secret
        self._configured = False

    def _configure(self) -> None:
        if self._configured:
            return
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise MediaUploadError(
                message="Media storage is not configured.",
                context={"missing": "CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET"},
            )
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )
        self._configured = True

    async def _store(self, content: bytes, filename: str, folder: str, kind: str) -> str:
        self._configure()
        response = await asyncio.to_thread(
            cloudinary.uploader.upload,
            content,
            folder=f"{ROOT_FOLDER}/{folder}",
            resource_type=resource_type_for(kind),
            unique_filename=True,
        )
        url = response.get("secure_url") or response.get("url")
        if not url:
            raise MediaUploadError(context={"backend": self.name, "response": str(response)[:200]})
        return url
