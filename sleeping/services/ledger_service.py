"""
Sleeping Backend: Ledger Service (Balance, Purchases, Inventory)
=================================================================

What:  The only code path allowed to change an account's balance.
How:   Every operation runs in its own unit of work (see database.unit_of_work):
       a fresh session and transaction that commits on normal exit and rolls
       back every write on any exception.
Who:   POST /shop/buy, POST /users/{id}/grant, GET /users/me/transactions.

Purchase Flow:
    ┌──────────────┐   ┌──────────┐   ┌─────────────┐   ┌──────────────┐
    │ Lock account │──▶│ Load item│──▶│ Ownership   │──▶│ Conditional  │
    │ (FOR UPDATE) │   │          │   │ check       │   │ debit        │
    └──────────────┘   └──────────┘   └─────────────┘   └──────┬───────┘
                                                               ▼
             ┌──────────────┐   ┌──────────────┐   ┌──────────────────┐
             │ Ledger entry │◀──│ Side effects │◀──│ Inventory insert │
             └──────────────┘   └──────────────┘   └──────────────────┘

    Any failure along the way rolls back the whole unit: no debit without a
    grant, no grant without a debit.

Concurrency:
    The debit is a single `UPDATE ... WHERE balance >= price` statement, so two
    purchases racing on one account cannot both pass the balance check. The
    unique (account_id, item_id) constraint on inventory rejects a concurrent
    duplicate that slipped past the ownership check.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sleeping.database import unit_of_work
from sleeping.exceptions import (
    AlreadyOwnedError,
    DatabaseError,
    InsufficientBalanceError,
    NotFoundError,
    SleepingError,
    ValidationError,
)
from sleeping.models import (
    CATEGORY_AURA,
    CATEGORY_BOOST,
    Account,
    InventoryEntry,
    LedgerEntry,
    ShopItem,
)
from sleeping.schemas.account import AccountResponse
from sleeping.schemas.shop import (
    LedgerEntryResponse,
    LedgerResponse,
    PurchaseResult,
    ShopItemResponse,
)

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Atomic balance mutations.

    Unlike the request-scoped services, LedgerService owns its transaction
    boundaries and therefore takes a session factory rather than a session.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory

    async def purchase(self, account_id: int, item_id: int) -> PurchaseResult:
        """
        Buy one catalog item for `account_id`.

        Returns:
            PurchaseResult with the post-debit balance, the updated account
            projection and the purchased item.

        Raises:
            NotFoundError:            account or item does not exist
            AlreadyOwnedError:        the account already owns the item
            InsufficientBalanceError: balance < price
            DatabaseError:            unexpected storage failure
        """
        try:
            async with unit_of_work(self._session_factory) as session:
                account = await self._lock_account(session, account_id)

                item = await session.get(ShopItem, item_id)
                if item is None:
                    raise NotFoundError(resource="item", resource_id=item_id)

                owned = await session.scalar(
                    select(InventoryEntry.id).where(
                        InventoryEntry.account_id == account_id,
                        InventoryEntry.item_id == item_id,
                    )
                )
                if owned is not None:
                    raise AlreadyOwnedError(item_id=item_id)

                # ── Conditional debit ─────────────────────────────────────
                debit = await session.execute(
                    update(Account)
                    .where(Account.id == account_id, Account.balance >= item.price)
                    .values(balance=Account.balance - item.price)
                    .execution_options(synchronize_session=False)
                )
                if debit.rowcount == 0:
                    await session.refresh(account)
                    raise InsufficientBalanceError(balance=account.balance, price=item.price)

                # ── Grant ─────────────────────────────────────────────────
                session.add(InventoryEntry(account_id=account_id, item_id=item_id))
                try:
                    await session.flush()
                except IntegrityError:
                    raise AlreadyOwnedError(item_id=item_id)

                await session.refresh(account)
                self._apply_side_effects(account, item)

                session.add(
                    LedgerEntry(
                        account_id=account_id,
                        delta=-item.price,
                        label=f"purchase:{item.name}",
                        item_id=item.id,
                    )
                )
                await session.flush()

                result = PurchaseResult(
                    balance=account.balance,
                    item=ShopItemResponse.model_validate(item),
                    user=AccountResponse.model_validate(account),
                )
        except SleepingError:
            raise
        except SQLAlchemyError as e:
            logger.error("Purchase failed (account=%s, item=%s): %s", account_id, item_id, e)
            raise DatabaseError(
                context={"operation": "purchase", "account_id": account_id, "item_id": item_id}
            )

        logger.info(
            "Purchase committed: account=%s item=%s price=%d balance=%d",
            account_id, item_id, result.item.price, result.balance,
        )
        return result

    async def grant(self, account_id: int, amount: int, label: str = "grant") -> AccountResponse:
        """Credit `amount` crystals to an account and record it in the ledger."""
        if amount <= 0:
            raise ValidationError(message="Grant amount must be positive", field="amount")

        try:
            async with unit_of_work(self._session_factory) as session:
                account = await self._lock_account(session, account_id)
                await session.execute(
                    update(Account)
                    .where(Account.id == account_id)
                    .values(balance=Account.balance + amount)
                    .execution_options(synchronize_session=False)
                )
                session.add(LedgerEntry(account_id=account_id, delta=amount, label=label))
                await session.flush()
                await session.refresh(account)
                projection = AccountResponse.model_validate(account)
        except SleepingError:
            raise
        except SQLAlchemyError as e:
            logger.error("Grant failed (account=%s): %s", account_id, e)
            raise DatabaseError(context={"operation": "grant", "account_id": account_id})

        logger.info("Granted %d to account %s (%s)", amount, account_id, label)
        return projection

    async def list_entries(self, account_id: int, limit: int = 50) -> LedgerResponse:
        """Newest-first ledger entries plus the current balance."""
        try:
            async with unit_of_work(self._session_factory) as session:
                account = await session.get(Account, account_id)
                if account is None:
                    raise NotFoundError(resource="account", resource_id=account_id)
                rows = await session.scalars(
                    select(LedgerEntry)
                    .where(LedgerEntry.account_id == account_id)
                    .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
                    .limit(limit)
                )
                return LedgerResponse(
                    balance=account.balance,
                    entries=[LedgerEntryResponse.model_validate(row) for row in rows],
                )
        except SleepingError:
            raise
        except SQLAlchemyError as e:
            logger.error("Listing ledger entries failed (account=%s): %s", account_id, e)
            raise DatabaseError(context={"operation": "list_entries", "account_id": account_id})

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    async def _lock_account(session: AsyncSession, account_id: int) -> Account:
        # FOR UPDATE serializes purchases per account on PostgreSQL; SQLite ignores it
        account = await session.scalar(
            select(Account).where(Account.id == account_id).with_for_update()
        )
        if account is None:
            raise NotFoundError(resource="account", resource_id=account_id)
        return account

    @staticmethod
    def _apply_side_effects(account: Account, item: ShopItem) -> None:
        if item.category == CATEGORY_AURA and item.effect_value:
            account.aura_color = item.effect_value
        elif item.category == CATEGORY_BOOST and item.effect_value:
            try:
                bonus = int(item.effect_value)
            except ValueError:
                logger.warning("Boost item %s has a non-numeric effect value %r", item.id, item.effect_value)
                return
            # XP never decreases
            if bonus > 0:
                account.xp += bonus
