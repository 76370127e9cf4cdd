"""
Sleeping Backend: Account Service
==================================

What:  Registration, login, profiles and progression (XP, aura).
How:   Request-scoped: every method receives the request's AsyncSession and
       flushes; get_db_session() commits after the handler returns.
Who:   /auth and /users route handlers.

Balance is deliberately absent here: only LedgerService writes it.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.config import settings
from sleeping.exceptions import (
    AuthenticationError,
    DuplicateCredentialError,
    NotFoundError,
    ValidationError,
)
from sleeping.models import (
    CATEGORY_AURA,
    ROLE_USER,
    Account,
    Follow,
    InventoryEntry,
    ShopItem,
)
from sleeping.schemas.account import (
    AccountResponse,
    ContactListResponse,
    ProfileResponse,
    PublicAccount,
    normalize_email,
)
from sleeping.schemas.shop import InventoryItemResponse, InventoryResponse
from sleeping.security import create_access_token, hash_password_async, verify_password_async
from sleeping.services.social_service import social_service

logger = logging.getLogger(__name__)


class AccountService:
    """
    Responsibilities:
        - register() / login(): credentials and session tokens
        - get_profile() / update_profile(): public profile data
        - add_xp() / equip_aura(): progression
        - list_inventory() / list_contacts(): read models for the profile screen
    """

    # ── Credentials ───────────────────────────────────────────────────────

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
    ) -> Account:
        """
        Create an account with the starting balance and default aura.

        Raises:
            DuplicateCredentialError: username or email already taken (409)
        """
        email = normalize_email(email)
        taken = (
            await db.execute(
                select(Account.username, Account.email).where(
                    or_(Account.username == username, Account.email == email)
                )
            )
        ).first()
        if taken is not None:
            field = "email" if taken.email == email else "username"
            raise DuplicateCredentialError(field=field)

        account = Account(
            username=username,
            email=email,
            password_hash=await hash_password_async(password),
            balance=settings.starting_balance,
            xp=0,
            role=ROLE_USER,
            aura_color=settings.default_aura_color,
            avatar_url=settings.default_avatar_url,
        )
        db.add(account)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same credentials
            raise DuplicateCredentialError(field="username or email")

        await db.refresh(account)
        logger.info("Registered account %s (%s)", account.id, account.username)
        return account

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[str, Account]:
        """
        Returns:
            (token, account): a signed JWT bound to the account id and the account.

        Raises:
            AuthenticationError: unknown email or wrong password. The message
                is the same for both so it does not reveal which emails exist.
        """
        account = await db.scalar(select(Account).where(Account.email == normalize_email(email)))
        if account is None or not await verify_password_async(password, account.password_hash):
            raise AuthenticationError(message="Invalid email or password")

        return create_access_token(account.id), account

    # ── Profile ───────────────────────────────────────────────────────────

    async def get_account(self, db: AsyncSession, account_id: int) -> Account:
        account = await db.get(Account, account_id)
        if account is None:
            raise NotFoundError(resource="account", resource_id=account_id)
        return account

    async def get_profile(self, db: AsyncSession, account_id: int) -> ProfileResponse:
        account = await self.get_account(db, account_id)
        followers, following = await social_service.counts(db, account_id)
        return ProfileResponse(
            id=account.id,
            username=account.username,
            xp=account.xp,
            role=account.role,
            aura_color=account.aura_color,
            avatar_url=account.avatar_url,
            bio=account.bio,
            created_at=account.created_at,
            followers=followers,
            following=following,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        account_id: int,
        username: Optional[str] = None,
        bio: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> AccountResponse:
        account = await self.get_account(db, account_id)

        if username is not None and username != account.username:
            clash = await db.scalar(
                select(Account.id).where(Account.username == username, Account.id != account_id)
            )
            if clash is not None:
                raise DuplicateCredentialError(field="username")
            account.username = username
        if bio is not None:
            account.bio = bio
        if avatar_url is not None:
            account.avatar_url = avatar_url

        await db.flush()
        return AccountResponse.model_validate(account)

    # ── Progression ───────────────────────────────────────────────────────

    async def add_xp(self, db: AsyncSession, account_id: int, amount: int) -> AccountResponse:
        """Add `amount` XP. XP only ever grows, so negative amounts are rejected."""
        if amount < 0:
            raise ValidationError(message="XP amount cannot be negative", field="amount")

        account = await self.get_account(db, account_id)
        await db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(xp=Account.xp + amount)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(account)
        return AccountResponse.model_validate(account)

    async def equip_aura(self, db: AsyncSession, account_id: int, color: str) -> AccountResponse:
        """
        Equip an aura color.

        Allowed colors are the default aura and the effect value of any
        `aura` item the account owns.
        """
        account = await self.get_account(db, account_id)
        color = color.lower()

        if color != settings.default_aura_color.lower():
            owned = await db.scalar(
                select(InventoryEntry.id)
                .join(ShopItem, ShopItem.id == InventoryEntry.item_id)
                .where(
                    InventoryEntry.account_id == account_id,
                    ShopItem.category == CATEGORY_AURA,
                    func.lower(ShopItem.effect_value) == color,
                )
                .limit(1)
            )
            if owned is None:
                raise ValidationError(
                    message="You do not own an aura with this color",
                    field="color",
                    context={"color": color},
                )

        account.aura_color = color
        await db.flush()
        return AccountResponse.model_validate(account)

    # ── Read models ───────────────────────────────────────────────────────

    async def list_inventory(self, db: AsyncSession, account_id: int) -> InventoryResponse:
        await self.get_account(db, account_id)
        rows = await db.execute(
            select(InventoryEntry, ShopItem)
            .join(ShopItem, ShopItem.id == InventoryEntry.item_id)
            .where(InventoryEntry.account_id == account_id)
            .order_by(InventoryEntry.acquired_at.desc(), InventoryEntry.id.desc())
        )
        items: List[InventoryItemResponse] = []
        for entry, item in rows.all():
            items.append(
                InventoryItemResponse(
                    id=item.id,
                    name=item.name,
                    description=item.description,
                    price=item.price,
                    category=item.category,
                    effect_value=item.effect_value,
                    image_url=item.image_url,
                    inventory_id=entry.id,
                    acquired_at=entry.acquired_at,
                )
            )
        return InventoryResponse(items=items)

    async def list_contacts(self, db: AsyncSession, account_id: int) -> ContactListResponse:
        """Accounts `account_id` follows, by username."""
        await self.get_account(db, account_id)
        contacts = await db.scalars(
            select(Account)
            .join(Follow, Follow.following_id == Account.id)
            .where(Follow.follower_id == account_id)
            .order_by(Account.username)
        )
        return ContactListResponse(contacts=[PublicAccount.model_validate(a) for a in contacts])


# ── Singleton Instance ────────────────────────────────────────────────────
account_service = AccountService()
