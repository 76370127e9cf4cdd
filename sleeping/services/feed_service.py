"""
Sleeping Backend: Feed Service (Posts, Likes, Comments)
========================================================

What:  Content store for short videos and the interactions on them.
How:   Request-scoped (receives the request's AsyncSession). Media bytes go
       to the injected MediaStorage first; only the resulting URLs are stored.

Like counts are derived, never stored: every read computes
    likes    = correlated COUNT(post_likes) for the post
    is_liked = correlated EXISTS(post_likes) for (post, viewer)
so a count can never drift from the like rows it summarizes.
"""

import logging
from typing import List, Optional

from sqlalchemy import Select, delete, exists, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.exceptions import NotFoundError, ValidationError
from sleeping.models import Account, Comment, Post, PostLike
from sleeping.schemas.feed import CommentResponse, FeedResponse, LikeResponse, PostResponse
from sleeping.services.media_base import KIND_IMAGE, KIND_VIDEO, MediaStorage, MediaUpload

logger = logging.getLogger(__name__)

MAX_FEED_LIMIT = 100


def post_query(viewer_id: Optional[int] = None) -> Select:
    """
    SELECT posts joined with their author plus derived `likes` and `is_liked`.

    Callers add their own WHERE / ORDER BY / LIMIT.
    """
    likes = (
        select(func.count(PostLike.id))
        .where(PostLike.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )
    if viewer_id is not None:
        is_liked = (
            exists()
            .where(PostLike.post_id == Post.id, PostLike.user_id == viewer_id)
            .correlate(Post)
        )
    else:
        is_liked = literal(False)

    return select(
        Post,
        Account.username,
        Account.avatar_url,
        Account.aura_color,
        likes.label("likes"),
        is_liked.label("is_liked"),
    ).join(Account, Account.id == Post.user_id)


def row_to_post(row) -> PostResponse:
    post = row.Post
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        title=post.title,
        description=post.description,
        video_url=post.video_url,
        thumbnail_url=post.thumbnail_url,
        created_at=post.created_at,
        username=row.username,
        avatar_url=row.avatar_url,
        aura_color=row.aura_color,
        likes=row.likes or 0,
        is_liked=bool(row.is_liked),
    )


def fallback_thumbnail(video_url: str) -> Optional[str]:
    """CDN convention: the poster frame of `x.mp4` is served at `x.jpg`."""
    if ".mp4" not in video_url:
        return None
    return video_url.replace(".mp4", ".jpg")


class FeedService:

    async def create_post(
        self,
        db: AsyncSession,
        storage: MediaStorage,
        user_id: int,
        video: Optional[MediaUpload],
        thumbnail: Optional[MediaUpload] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PostResponse:
        """
        Upload media and record a post.

        Raises:
            ValidationError:  no video, empty or oversize media
            NotFoundError:    author account does not exist
            MediaUploadError: the storage backend failed
        """
        if video is None or not video.content:
            raise ValidationError(message="A video file is required", field="video")

        author = await db.get(Account, user_id)
        if author is None:
            raise NotFoundError(resource="account", resource_id=user_id)

        video_url = await storage.upload(
            video.content, filename=video.filename, folder="posts/videos", kind=KIND_VIDEO
        )
        if thumbnail is not None and thumbnail.content:
            thumbnail_url = await storage.upload(
                thumbnail.content,
                filename=thumbnail.filename,
                folder="posts/thumbnails",
                kind=KIND_IMAGE,
            )
        else:
            thumbnail_url = fallback_thumbnail(video_url)

        post = Post(
            user_id=user_id,
            title=title,
            description=description,
            video_url=video_url,
            thumbnail_url=thumbnail_url,
        )
        db.add(post)
        await db.flush()
        await db.refresh(post)
        logger.info("Post %s created by account %s", post.id, user_id)

        return PostResponse(
            id=post.id,
            user_id=post.user_id,
            title=post.title,
            description=post.description,
            video_url=post.video_url,
            thumbnail_url=post.thumbnail_url,
            created_at=post.created_at,
            username=author.username,
            avatar_url=author.avatar_url,
            aura_color=author.aura_color,
            likes=0,
            is_liked=False,
        )

    async def list_feed(
        self,
        db: AsyncSession,
        viewer_id: Optional[int] = None,
        limit: int = 20,
    ) -> FeedResponse:
        """Newest posts first, each with its like count and the viewer's like state."""
        limit = max(1, min(limit, MAX_FEED_LIMIT))
        rows = await db.execute(
            post_query(viewer_id).order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        )
        return FeedResponse(posts=[row_to_post(row) for row in rows.all()])

    async def toggle_like(self, db: AsyncSession, post_id: int, user_id: int) -> LikeResponse:
        """Like the post if `user_id` has not liked it yet, otherwise remove the like."""
        await self._require_post(db, post_id)

        removed = await db.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        liked = removed.rowcount == 0
        if liked:
            db.add(PostLike(post_id=post_id, user_id=user_id))
        await db.flush()

        likes = await db.scalar(select(func.count(PostLike.id)).where(PostLike.post_id == post_id))
        return LikeResponse(liked=liked, likes=likes or 0)

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self, db: AsyncSession, post_id: int, user_id: int, content: str
    ) -> CommentResponse:
        await self._require_post(db, post_id)
        author = await db.get(Account, user_id)
        if author is None:
            raise NotFoundError(resource="account", resource_id=user_id)

        content = content.strip()
        if not content:
            raise ValidationError(message="Comment cannot be empty", field="content")

        comment = Comment(post_id=post_id, user_id=user_id, content=content)
        db.add(comment)
        await db.flush()
        await db.refresh(comment)
        return self._comment_response(comment, author.username, author.avatar_url, author.aura_color)

    async def list_comments(self, db: AsyncSession, post_id: int) -> List[CommentResponse]:
        """Oldest first, each with its author's username, avatar and aura."""
        await self._require_post(db, post_id)
        rows = await db.execute(
            select(Comment, Account.username, Account.avatar_url, Account.aura_color)
            .join(Account, Account.id == Comment.user_id)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return [
            self._comment_response(row.Comment, row.username, row.avatar_url, row.aura_color)
            for row in rows.all()
        ]

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    async def _require_post(db: AsyncSession, post_id: int) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=post_id)
        return post

    @staticmethod
    def _comment_response(
        comment: Comment, username: str, avatar_url: Optional[str], aura_color: Optional[str]
    ) -> CommentResponse:
        return CommentResponse(
            id=comment.id,
            post_id=comment.post_id,
            user_id=comment.user_id,
            content=comment.content,
            created_at=comment.created_at,
            username=username,
            avatar_url=avatar_url,
            aura_color=aura_color,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
feed_service = FeedService()
