"""
Sleeping Backend: Shop Routes
==============================

What:  GET /shop (catalog) and POST /shop/buy (purchase).
How:   The purchase runs entirely inside LedgerService's own unit of work;
       this route only resolves the caller and maps errors through the
       global handlers (insufficient_balance / already_owned → 400,
       not_found → 404).
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.database import get_db_session
from sleeping.dependencies import get_current_account_id, get_ledger_service
from sleeping.models import ShopItem
from sleeping.schemas.common import ErrorResponse
from sleeping.schemas.shop import PurchaseRequest, PurchaseResult, ShopItemResponse
from sleeping.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shop", tags=["Shop"])


@router.get("", response_model=List[ShopItemResponse], summary="List the catalog")
async def list_items(db: AsyncSession = Depends(get_db_session)) -> List[ShopItemResponse]:
    items = await db.scalars(select(ShopItem).order_by(ShopItem.price.asc(), ShopItem.id.asc()))
    return [ShopItemResponse.model_validate(item) for item in items]


@router.post(
    "/buy",
    response_model=PurchaseResult,
    responses={
        400: {"description": "insufficient_balance or already_owned", "model": ErrorResponse},
        404: {"description": "Account or item not found", "model": ErrorResponse},
    },
    summary="Buy a catalog item",
)
async def buy(
    body: PurchaseRequest,
    account_id: int = Depends(get_current_account_id),
    ledger: LedgerService = Depends(get_ledger_service),
) -> PurchaseResult:
    return await ledger.purchase(account_id, body.item_id)
