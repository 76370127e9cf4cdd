"""
Sleeping Backend: Social Graph Tests
=====================================

What we test:
    ✅ Follow creates one edge; following twice is a no-op
    ✅ Self-follow and self-block are rejected
    ✅ Blocking removes follow edges in both directions and prevents new ones
    ✅ Unblock lifts the restriction
"""

import pytest
from sqlalchemy import func, select

from sleeping.exceptions import BlockedError, NotFoundError, ValidationError
from sleeping.models import Follow
from sleeping.services.social_service import social_service


async def follow_edges(db) -> int:
    return await db.scalar(select(func.count(Follow.id)))


class TestFollow:

    @pytest.mark.asyncio
    async def test_follow_is_idempotent(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")

        assert await social_service.follow(db_session, luna, sol) is True
        assert await social_service.follow(db_session, luna, sol) is False
        assert await follow_edges(db_session) == 1
        assert await social_service.counts(db_session, sol) == (1, 0)
        assert await social_service.counts(db_session, luna) == (0, 1)

    @pytest.mark.asyncio
    async def test_self_follow_is_rejected(self, db_session, make_account):
        luna = await make_account("luna")

        with pytest.raises(ValidationError):
            await social_service.follow(db_session, luna, luna)

    @pytest.mark.asyncio
    async def test_follow_unknown_account(self, db_session, make_account):
        luna = await make_account("luna")

        with pytest.raises(NotFoundError):
            await social_service.follow(db_session, luna, 999)

    @pytest.mark.asyncio
    async def test_unfollow(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")
        await social_service.follow(db_session, luna, sol)

        assert await social_service.unfollow(db_session, luna, sol) is True
        assert await social_service.unfollow(db_session, luna, sol) is False
        assert await follow_edges(db_session) == 0


class TestBlock:

    @pytest.mark.asyncio
    async def test_block_removes_follows_both_ways(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")
        await social_service.follow(db_session, luna, sol)
        await social_service.follow(db_session, sol, luna)

        assert await social_service.block(db_session, luna, sol) is True

        assert await follow_edges(db_session) == 0
        assert await social_service.is_blocked_between(db_session, sol, luna) is True

    @pytest.mark.asyncio
    async def test_blocked_accounts_cannot_follow_either_way(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")
        await social_service.block(db_session, luna, sol)

        with pytest.raises(BlockedError) as exc_info:
            await social_service.follow(db_session, sol, luna)
        assert exc_info.value.code == "blocked"

        with pytest.raises(BlockedError):
            await social_service.follow(db_session, luna, sol)

    @pytest.mark.asyncio
    async def test_block_twice_keeps_one_edge(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")

        assert await social_service.block(db_session, luna, sol) is True
        assert await social_service.block(db_session, luna, sol) is False

    @pytest.mark.asyncio
    async def test_self_block_is_rejected(self, db_session, make_account):
        luna = await make_account("luna")

        with pytest.raises(ValidationError):
            await social_service.block(db_session, luna, luna)

    @pytest.mark.asyncio
    async def test_unblock_allows_follow_again(self, db_session, make_account):
        luna = await make_account("luna")
        sol = await make_account("sol")
        await social_service.block(db_session, luna, sol)

        assert await social_service.unblock(db_session, luna, sol) is True

        assert await social_service.is_blocked_between(db_session, luna, sol) is False
        assert await social_service.follow(db_session, sol, luna) is True
