"""
Sleeping Backend: Shop, Inventory and Ledger Models
====================================================

What:  ORM models for the currency shop.
       - ShopItem:       immutable catalog entry (price, category, effect)
       - InventoryEntry: ownership edge account → item, at most one per pair
       - LedgerEntry:    append-only record of every balance change

Item categories:
    aura:    effect_value is a color; purchasing equips it on the account
    boost:   effect_value is an integer XP amount granted on purchase
    generic: no side effect beyond ownership
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from sleeping.database import Base
from sleeping.models.account import utcnow

CATEGORY_AURA = "aura"
CATEGORY_BOOST = "boost"
CATEGORY_GENERIC = "generic"
CATEGORIES = (CATEGORY_AURA, CATEGORY_BOOST, CATEGORY_GENERIC)


class ShopItem(Base):
    """Catalog entry. Read-only for the purchase flow."""

    __tablename__ = "shop_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CATEGORY_GENERIC,
        server_default=text("'generic'"),
    )
    effect_value: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        default=None,
        comment="Aura color for 'aura' items, XP amount for 'boost' items",
    )
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_shop_items_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<ShopItem(id={self.id}, name='{self.name}', price={self.price}, category='{self.category}')>"


class InventoryEntry(Base):
    """
    Ownership edge between an account and a shop item.

    The unique constraint is the last line of defence against duplicate
    ownership when two purchases of the same item race each other.
    """

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("shop_items.id", ondelete="RESTRICT"), nullable=False
    )
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("account_id", "item_id", name="uq_inventory_account_item"),
    )


class LedgerEntry(Base):
    """Append-only balance change record. Never updated or deleted."""

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    # Negative for debits (purchases), positive for grants
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    item_id: Mapped[int | None] = mapped_column(
        ForeignKey("shop_items.id", ondelete="SET NULL"), nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_ledger_entries_account_created", "account_id", "created_at"),
    )
