"""
Sleeping Backend: Social Graph Service
=======================================

What:  Directed follow and block edges between accounts.
How:   Request-scoped: each call receives the request's AsyncSession; the
       commit happens in get_db_session() once the handler returns.

Rules:
    - follow is idempotent; following yourself is rejected
    - no follow edge may be created while either account blocks the other
    - block removes follow edges in both directions and is idempotent
    - unfollow / unblock of a missing edge is a no-op
"""

import logging
from typing import Tuple

from sqlalchemy import delete, func, or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.exceptions import BlockedError, NotFoundError, ValidationError
from sleeping.models import Account, Block, Follow

logger = logging.getLogger(__name__)


class SocialService:

    async def follow(self, db: AsyncSession, follower_id: int, following_id: int) -> bool:
        """
        Create the edge follower → following.

        Returns:
            True if a new edge was created, False if it already existed.
        """
        if follower_id == following_id:
            raise ValidationError(message="You cannot follow yourself", field="user_id")
        await self._require_accounts(db, follower_id, following_id)

        if await self.is_blocked_between(db, follower_id, following_id):
            raise BlockedError(context={"follower_id": follower_id, "following_id": following_id})

        existing = await db.scalar(
            select(Follow.id).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        if existing is not None:
            return False

        db.add(Follow(follower_id=follower_id, following_id=following_id))
        await db.flush()
        logger.info("Account %s followed %s", follower_id, following_id)
        return True

    async def unfollow(self, db: AsyncSession, follower_id: int, following_id: int) -> bool:
        result = await db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return result.rowcount > 0

    async def block(self, db: AsyncSession, blocker_id: int, blocked_id: int) -> bool:
        """
        Block `blocked_id` and drop follow edges in both directions.

        Returns:
            True if a new block edge was created.
        """
        if blocker_id == blocked_id:
            raise ValidationError(message="You cannot block yourself", field="user_id")
        await self._require_accounts(db, blocker_id, blocked_id)

        await db.execute(
            delete(Follow).where(
                or_(
                    and_(Follow.follower_id == blocker_id, Follow.following_id == blocked_id),
                    and_(Follow.follower_id == blocked_id, Follow.following_id == blocker_id),
                )
            )
        )

        existing = await db.scalar(
            select(Block.id).where(Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
        )
        if existing is not None:
            return False

        db.add(Block(blocker_id=blocker_id, blocked_id=blocked_id))
        await db.flush()
        logger.info("Account %s blocked %s", blocker_id, blocked_id)
        return True

    async def unblock(self, db: AsyncSession, blocker_id: int, blocked_id: int) -> bool:
        result = await db.execute(
            delete(Block).where(Block.blocker_id == blocker_id, Block.blocked_id == blocked_id)
        )
        return result.rowcount > 0

    async def is_blocked_between(self, db: AsyncSession, a: int, b: int) -> bool:
        """True when either account blocks the other."""
        found = await db.scalar(
            select(Block.id)
            .where(
                or_(
                    and_(Block.blocker_id == a, Block.blocked_id == b),
                    and_(Block.blocker_id == b, Block.blocked_id == a),
                )
            )
            .limit(1)
        )
        return found is not None

    async def counts(self, db: AsyncSession, account_id: int) -> Tuple[int, int]:
        """Return (followers, following) for an account."""
        followers = await db.scalar(
            select(func.count(Follow.id)).where(Follow.following_id == account_id)
        )
        following = await db.scalar(
            select(func.count(Follow.id)).where(Follow.follower_id == account_id)
        )
        return followers or 0, following or 0

    @staticmethod
    async def _require_accounts(db: AsyncSession, *account_ids: int) -> None:
        for account_id in account_ids:
            if await db.get(Account, account_id) is None:
                raise NotFoundError(resource="account", resource_id=account_id)


# ── Singleton Instance ────────────────────────────────────────────────────
social_service = SocialService()
