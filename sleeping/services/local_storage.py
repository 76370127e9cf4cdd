"""
Sleeping Backend: Local Disk Media Storage
===========================================

What:  MediaStorage that writes uploads under settings.storage_root.
How:   Async file I/O (aiofiles) into date-organized directories with UUID
       filenames; the returned URL is public_media_base_url + relative path.
When:  settings.media_backend == "local" (development without a CDN).

Directory Structure:
    storage/
    └── posts/
        └── videos/
            └── 2024/
                └── 01/
                    └── 15/
                        └── a1b2c3d4-5678.mp4
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from sleeping.config import settings
from sleeping.services.media_base import KIND_IMAGE, MediaStorage

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {KIND_IMAGE: ".jpg"}
_MAX_EXTENSION_LENGTH = 8


class LocalMediaStorage(MediaStorage):
    name = "local"

    def __init__(
        self,
        storage_root: Optional[str] = None,
        base_url: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(max_size=max_size)
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.base_url = (base_url or settings.public_media_base_url).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def extension_for(filename: str, kind: str) -> str:
        """Keep the client's extension when it looks sane; never any other part of its name."""
        ext = Path(filename or "").suffix.lower()
        if ext and len(ext) <= _MAX_EXTENSION_LENGTH and ext[1:].isalnum():
            return ext
        return DEFAULT_EXTENSIONS.get(kind, ".mp4")

    def _generate_storage_path(self, folder: str, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        safe_folder = "/".join(part for part in folder.split("/") if part not in ("", ".", ".."))
        relative_path = f"{safe_folder}/{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def _store(self, content: bytes, filename: str, folder: str, kind: str) -> str:
        absolute_path, relative_path = self._generate_storage_path(
            folder, self.extension_for(filename, kind)
        )
        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(absolute_path, "wb") as f:
            await f.write(content)
        logger.debug("Wrote %s", absolute_path)
        return f"{self.base_url}/{relative_path}"
