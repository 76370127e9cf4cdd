"""
Sleeping Backend: Shared FastAPI Dependencies
==============================================

What:  Authentication and service providers injected into route handlers.
How:   Plain functions used with Depends(); tests swap any of them through
       app.dependency_overrides.

Authentication:
    Mutating endpoints take the acting account from the Bearer token
    (Authorization: Bearer <jwt>), never from the request body.
"""

from typing import Optional

from fastapi import Depends, Header, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sleeping.database import get_db_session, get_session_factory
from sleeping.exceptions import AuthenticationError, PermissionDeniedError
from sleeping.models import ROLE_ADMIN, ROLE_STAFF, Account
from sleeping.security import decode_access_token
from sleeping.services.chat_relay import ChatRelay
from sleeping.services.ledger_service import LedgerService

_BEARER_PREFIX = "bearer "


def get_current_account_id(authorization: Optional[str] = Header(default=None)) -> int:
    """Resolve the account id from `Authorization: Bearer <token>`; 401 otherwise."""
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        raise AuthenticationError(message="Missing bearer token")
    token = authorization[len(_BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError(message="Missing bearer token")
    return decode_access_token(token)


async def require_staff(
    account_id: int = Depends(get_current_account_id),
    db: AsyncSession = Depends(get_db_session),
) -> Account:
    """The acting account, provided its role is staff or admin; 403 otherwise."""
    account = await db.get(Account, account_id)
    if account is None:
        # Token for an account that no longer exists
        raise AuthenticationError(message="Invalid token")
    if account.role not in (ROLE_STAFF, ROLE_ADMIN):
        raise PermissionDeniedError(context={"account_id": account_id, "role": account.role})
    return account


def get_ledger_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> LedgerService:
    return LedgerService(session_factory)


def get_chat_relay(
    websocket: WebSocket,
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> ChatRelay:
    """The process-wide relay created by create_app(), bound to the current session factory."""
    relay = websocket.app.state.chat_relay
    relay.session_factory = session_factory
    return relay
