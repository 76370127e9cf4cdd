"""
Sleeping Backend: Feed Service Tests
=====================================

What:  Posts, likes and comments against a real database and a fake
       media backend.

What we test:
    ✅ create_post uploads video (+ thumbnail) and records the returned URLs
    ✅ Missing thumbnail falls back to the video URL with a .jpg extension
    ✅ Missing video → ValidationError; storage failure → MediaUploadError, no post row
    ✅ Like toggles, and the count is derived from like rows
    ✅ is_liked reflects the viewing account only
    ✅ Comments come back oldest first with author data
"""

import pytest
from sqlalchemy import func, select

from conftest import FakeMediaStorage
from sleeping.exceptions import MediaUploadError, NotFoundError, ValidationError
from sleeping.models import Post
from sleeping.services.feed_service import fallback_thumbnail, feed_service
from sleeping.services.media_base import MediaUpload


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_create_post_with_thumbnail(self, db_session, make_account, media_storage):
        author = await make_account("luna")

        post = await feed_service.create_post(
            db_session,
            media_storage,
            author,
            video=MediaUpload(b"\x00video", "clip.mp4", "video/mp4"),
            thumbnail=MediaUpload(b"\x89PNG", "thumb.png", "image/png"),
            title="night",
            description="sonhando #AuraGold",
        )

        assert post.video_url == "https://cdn.test/posts/videos/1.mp4"
        assert post.thumbnail_url == "https://cdn.test/posts/thumbnails/2.jpg"
        assert post.username == "luna"
        assert post.likes == 0
        assert [u[:2] for u in media_storage.uploads] == [
            ("posts/videos", "video"),
            ("posts/thumbnails", "image"),
        ]

    @pytest.mark.asyncio
    async def test_missing_thumbnail_is_derived_from_video(self, db_session, make_account, media_storage):
        author = await make_account()

        post = await feed_service.create_post(
            db_session, media_storage, author, video=MediaUpload(b"v", "clip.mp4")
        )

        assert post.thumbnail_url == "https://cdn.test/posts/videos/1.jpg"
        assert len(media_storage.uploads) == 1

    @pytest.mark.asyncio
    async def test_missing_video_is_rejected(self, db_session, make_account, media_storage):
        author = await make_account()

        with pytest.raises(ValidationError):
            await feed_service.create_post(db_session, media_storage, author, video=None)

        assert media_storage.uploads == []

    @pytest.mark.asyncio
    async def test_storage_failure_creates_no_post(self, db_session, make_account):
        author = await make_account()
        storage = FakeMediaStorage(fail=True)

        with pytest.raises(MediaUploadError):
            await feed_service.create_post(db_session, storage, author, video=MediaUpload(b"v"))

        assert await db_session.scalar(select(func.count(Post.id))) == 0

    def test_fallback_thumbnail(self):
        assert fallback_thumbnail("https://cdn/x/clip.mp4") == "https://cdn/x/clip.jpg"
        assert fallback_thumbnail("https://cdn/x/clip.webm") is None


class TestLikes:

    @pytest.mark.asyncio
    async def test_like_toggles(self, db_session, make_account, make_post):
        author = await make_account("luna")
        fan = await make_account("sol")
        post_id = await make_post(author)

        liked = await feed_service.toggle_like(db_session, post_id, fan)
        assert (liked.liked, liked.likes) == (True, 1)

        unliked = await feed_service.toggle_like(db_session, post_id, fan)
        assert (unliked.liked, unliked.likes) == (False, 0)

    @pytest.mark.asyncio
    async def test_like_missing_post(self, db_session, make_account):
        fan = await make_account()

        with pytest.raises(NotFoundError):
            await feed_service.toggle_like(db_session, 12345, fan)

    @pytest.mark.asyncio
    async def test_feed_counts_likes_and_viewer_state(self, db_session, make_account, make_post):
        author = await make_account("luna")
        fan = await make_account("sol")
        other = await make_account("estrela")
        older = await make_post(author, title="older")
        newer = await make_post(author, title="newer")
        await feed_service.toggle_like(db_session, older, fan)
        await feed_service.toggle_like(db_session, older, other)

        as_fan = await feed_service.list_feed(db_session, viewer_id=fan)
        anonymous = await feed_service.list_feed(db_session)

        assert [p.id for p in as_fan.posts] == [newer, older]
        assert as_fan.posts[1].likes == 2
        assert as_fan.posts[1].is_liked is True
        assert as_fan.posts[0].is_liked is False
        assert anonymous.posts[1].likes == 2
        assert anonymous.posts[1].is_liked is False

    @pytest.mark.asyncio
    async def test_feed_limit_is_clamped(self, db_session, make_account, make_post):
        author = await make_account()
        for _ in range(3):
            await make_post(author)

        feed = await feed_service.list_feed(db_session, limit=0)

        assert len(feed.posts) == 1


class TestComments:

    @pytest.mark.asyncio
    async def test_comments_oldest_first(self, db_session, make_account, make_post):
        author = await make_account("luna")
        fan = await make_account("sol", aura_color="#ffd700")
        post_id = await make_post(author)

        await feed_service.add_comment(db_session, post_id, fan, "primeiro")
        await feed_service.add_comment(db_session, post_id, author, "  segundo  ")
        comments = await feed_service.list_comments(db_session, post_id)

        assert [c.content for c in comments] == ["primeiro", "segundo"]
        assert comments[0].username == "sol"
        assert comments[0].aura_color == "#ffd700"

    @pytest.mark.asyncio
    async def test_blank_comment_is_rejected(self, db_session, make_account, make_post):
        author = await make_account()
        post_id = await make_post(author)

        with pytest.raises(ValidationError):
            await feed_service.add_comment(db_session, post_id, author, "   ")

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, db_session, make_account):
        author = await make_account()

        with pytest.raises(NotFoundError):
            await feed_service.add_comment(db_session, 777, author, "oi")
