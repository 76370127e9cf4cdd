# Models package init
"""
Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and the test fixtures rely on that).
"""

from sleeping.models.account import Account, ROLES, ROLE_ADMIN, ROLE_STAFF, ROLE_USER
from sleeping.models.event import Event
from sleeping.models.feed import Comment, Post, PostLike
from sleeping.models.message import Message
from sleeping.models.shop import (
    CATEGORIES,
    CATEGORY_AURA,
    CATEGORY_BOOST,
    CATEGORY_GENERIC,
    InventoryEntry,
    LedgerEntry,
    ShopItem,
)
from sleeping.models.social import Block, Follow

__all__ = [
    "Account",
    "Block",
    "CATEGORIES",
    "CATEGORY_AURA",
    "CATEGORY_BOOST",
    "CATEGORY_GENERIC",
    "Comment",
    "Event",
    "Follow",
    "InventoryEntry",
    "LedgerEntry",
    "Message",
    "Post",
    "PostLike",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_STAFF",
    "ROLE_USER",
    "ShopItem",
]
