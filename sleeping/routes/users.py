"""
Sleeping Backend: Account & Social Routes
==========================================

What:  Profiles, progression, inventory, ledger history and the social graph.

Route Inventory:
    GET    /users/{id}/profile        public profile with follower counts
    PATCH  /users/me                  update own username / bio / avatar
    POST   /users/me/xp               add XP
    POST   /users/me/equip-aura       equip an owned aura color
    GET    /users/me/transactions     own ledger entries, newest first
    GET    /users/{id}/inventory      owned shop items
    GET    /users/{id}/contacts       accounts followed by {id}
    POST   /users/{id}/grant          staff/admin currency grant
    POST   /users/{id}/follow         follow (idempotent)
    DELETE /users/{id}/follow         unfollow
    POST   /users/{id}/block          block (drops follow edges both ways)
    DELETE /users/{id}/block          unblock

`/users/me/...` routes are declared before `/users/{id}/...` so "me" is
never parsed as an id.
"""

import logging

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.database import get_db_session
from sleeping.dependencies import get_current_account_id, get_ledger_service, require_staff
from sleeping.models import Account
from sleeping.schemas.account import (
    AccountResponse,
    ContactListResponse,
    EquipAuraRequest,
    GrantRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    XPRequest,
)
from sleeping.schemas.common import ErrorResponse, SuccessResponse
from sleeping.schemas.shop import InventoryResponse, LedgerResponse
from sleeping.services.account_service import account_service
from sleeping.services.ledger_service import LedgerService
from sleeping.services.social_service import social_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

_NOT_FOUND = {404: {"description": "Account not found", "model": ErrorResponse}}


# ── Own account ───────────────────────────────────────────────────────────

@router.patch("/me", response_model=AccountResponse, summary="Update own profile")
async def update_me(
    body: ProfileUpdateRequest,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> AccountResponse:
    return await account_service.update_profile(
        db, account_id, username=body.username, bio=body.bio, avatar_url=body.avatar_url
    )


@router.post("/me/xp", response_model=AccountResponse, summary="Add experience points")
async def add_xp(
    body: XPRequest,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> AccountResponse:
    return await account_service.add_xp(db, account_id, body.amount)


@router.post(
    "/me/equip-aura",
    response_model=AccountResponse,
    responses={400: {"description": "Aura not owned", "model": ErrorResponse}},
    summary="Equip an owned aura color",
)
async def equip_aura(
    body: EquipAuraRequest,
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> AccountResponse:
    return await account_service.equip_aura(db, account_id, body.color)


@router.get("/me/transactions", response_model=LedgerResponse, summary="Own ledger history")
async def my_transactions(
    limit: int = Query(default=50, ge=1, le=200),
    account_id: int = Depends(get_current_account_id),
    ledger: LedgerService = Depends(get_ledger_service),
) -> LedgerResponse:
    return await ledger.list_entries(account_id, limit=limit)


# ── Any account ───────────────────────────────────────────────────────────

@router.get("/{user_id}/profile", response_model=ProfileResponse, responses=_NOT_FOUND)
async def get_profile(
    user_id: int = Path(ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await account_service.get_profile(db, user_id)


@router.get("/{user_id}/inventory", response_model=InventoryResponse, responses=_NOT_FOUND)
async def get_inventory(
    user_id: int = Path(ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> InventoryResponse:
    return await account_service.list_inventory(db, user_id)


@router.get("/{user_id}/contacts", response_model=ContactListResponse, responses=_NOT_FOUND)
async def get_contacts(
    user_id: int = Path(ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> ContactListResponse:
    return await account_service.list_contacts(db, user_id)


@router.post(
    "/{user_id}/grant",
    response_model=AccountResponse,
    responses={403: {"description": "Staff or admin only", "model": ErrorResponse}, **_NOT_FOUND},
    summary="Credit crystals to an account",
)
async def grant(
    body: GrantRequest,
    user_id: int = Path(ge=1),
    staff: Account = Depends(require_staff),
    ledger: LedgerService = Depends(get_ledger_service),
) -> AccountResponse:
    logger.info("Staff account %s granting %d to %s", staff.id, body.amount, user_id)
    return await ledger.grant(user_id, body.amount, label=body.label)


# ── Social graph ──────────────────────────────────────────────────────────

@router.post("/{user_id}/follow", response_model=SuccessResponse, responses=_NOT_FOUND)
async def follow(
    user_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await social_service.follow(db, follower_id=account_id, following_id=user_id)
    return SuccessResponse()


@router.delete("/{user_id}/follow", response_model=SuccessResponse)
async def unfollow(
    user_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await social_service.unfollow(db, follower_id=account_id, following_id=user_id)
    return SuccessResponse()


@router.post("/{user_id}/block", response_model=SuccessResponse, responses=_NOT_FOUND)
async def block(
    user_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await social_service.block(db, blocker_id=account_id, blocked_id=user_id)
    return SuccessResponse()


@router.delete("/{user_id}/block", response_model=SuccessResponse)
async def unblock(
    user_id: int = Path(ge=1),
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    await social_service.unblock(db, blocker_id=account_id, blocked_id=user_id)
    return SuccessResponse()
