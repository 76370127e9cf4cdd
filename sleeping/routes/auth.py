"""
Sleeping Backend: Authentication Routes
========================================

What:  POST /auth/register and POST /auth/login.
How:   Bodies are validated by RegisterRequest / LoginRequest before the
       account service runs; login returns a Bearer token for the other routes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sleeping.database import get_db_session
from sleeping.schemas.account import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from sleeping.schemas.common import ErrorResponse
from sleeping.services.account_service import account_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={
        409: {"description": "Username or email already taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    account = await account_service.register(
        db, username=body.username, email=body.email, password=body.password
    )
    return RegisterResponse(user=AccountResponse.model_validate(account))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Exchange credentials for a session token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    token, account = await account_service.login(db, email=body.email, password=body.password)
    logger.info("Account %s logged in", account.id)
    return LoginResponse(token=token, user=AccountResponse.model_validate(account))
