"""
Sleeping Backend: Feed Routes
==============================

What:  Video posts, likes and comments.

Route Inventory:
    GET  /posts?viewer_id=&limit=     feed, newest first
    POST /posts/upload                multipart: video, thumbnail?, title, description
    POST /posts/{id}/like             toggle the caller's like
    GET  /posts/{id}/comments         comments, oldest first
    POST /posts/{id}/comments         add a comment

Uploads are read into memory here and handed to the media storage; the
size ceiling is enforced by the storage before any bytes leave the process.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.database import get_db_session
from sleeping.dependencies import get_current_account_id
from sleeping.schemas.common import ErrorResponse
from sleeping.schemas.feed import (
    CommentRequest,
    CommentResponse,
    FeedResponse,
    LikeResponse,
    PostResponse,
)
from sleeping.services.feed_service import feed_service
from sleeping.services.media_base import MediaStorage, MediaUpload, get_media_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


async def read_upload(upload: Optional[UploadFile]) -> Optional[MediaUpload]:
    if upload is None:
        return None
    content = await upload.read()
    return MediaUpload(
        content=content,
        filename=upload.filename or "",
        content_type=upload.content_type,
    )


@router.get("", response_model=FeedResponse, summary="List the feed")
async def list_feed(
    viewer_id: Optional[int] = Query(default=None, ge=1, description="Account whose likes fill `is_liked`"),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await feed_service.list_feed(db, viewer_id=viewer_id, limit=limit)


@router.post(
    "/upload",
    status_code=201,
    response_model=PostResponse,
    responses={
        400: {"description": "Missing, empty or oversize video", "model": ErrorResponse},
        502: {"description": "Media storage failed", "model": ErrorResponse},
    },
    summary="Upload a video post",
)
async def upload_post(
    video: Optional[UploadFile] = File(default=None),
    thumbnail: Optional[UploadFile] = File(default=None),
    title: Optional[str] = Form(default=None, max_length=200),
    description: Optional[str] = Form(default=None, max_length=5000),
    account_id: int = Depends(get_current_account_id),
    storage: MediaStorage = Depends(get_media_storage),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await feed_service.create_post(
        db,
        storage,
        user_id=account_id,
        video=await read_upload(video),
        thumbnail=await read_upload(thumbnail),
        title=title,
        description=description,
    )


@router.post(
    "/{post_id}/like",
    response_model=LikeResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await feed_service.toggle_like(db, post_id, account_id)


@router.get("/{post_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    post_id: int = Path(ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> List[CommentResponse]:
    return await feed_service.list_comments(db, post_id)


@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    body: CommentRequest,
    post_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> CommentResponse:
    return await feed_service.add_comment(db, post_id, account_id, body.content)
