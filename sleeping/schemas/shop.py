"""
Sleeping Backend: Shop & Ledger Schemas
========================================

What:  DTOs for the catalog, purchases, inventory and the currency ledger.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from sleeping.schemas.account import AccountResponse


class ShopItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: int
    category: str
    effect_value: Optional[str] = None
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class PurchaseRequest(BaseModel):
    item_id: int = Field(gt=0, description="Catalog item to buy")


class PurchaseResult(BaseModel):
    """
    Outcome of a successful purchase.

    `balance` is the account's balance after the debit; `user` is the full
    updated projection (aura and XP side effects included).
    """
    success: bool = True
    balance: int
    item: ShopItemResponse
    user: AccountResponse


class InventoryItemResponse(ShopItemResponse):
    inventory_id: int
    acquired_at: Optional[datetime] = None


class InventoryResponse(BaseModel):
    items: List[InventoryItemResponse]


class LedgerEntryResponse(BaseModel):
    id: int
    delta: int
    label: str
    item_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LedgerResponse(BaseModel):
    balance: int
    entries: List[LedgerEntryResponse]
