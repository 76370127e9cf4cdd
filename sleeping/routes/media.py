"""
Sleeping Backend: Local Media Route
====================================

What:  GET /media/{path} serves files written by LocalMediaStorage.
When:  Only useful with MEDIA_BACKEND=local; Cloudinary URLs point at the CDN.
"""

import mimetypes
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from sleeping.config import settings
from sleeping.exceptions import NotFoundError, ValidationError

router = APIRouter(tags=["Media"])


@router.get("/media/{file_path:path}", summary="Serve locally stored media")
async def serve_media(file_path: str) -> FileResponse:
    storage_root = Path(settings.storage_root).resolve()
    full_path = (storage_root / file_path).resolve()

    # Reject ../ escapes out of the storage root
    if not full_path.is_relative_to(storage_root):
        raise ValidationError(message="Invalid file path", field="file_path")
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=86400"},
    )
