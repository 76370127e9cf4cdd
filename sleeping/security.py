"""
Sleeping Backend: Credential Hashing & Session Tokens
======================================================

What:  Thin wrappers around bcrypt (password hashes) and PyJWT (session tokens).
How:   Hashing is CPU-bound, so the async helpers push it onto a worker thread
       with asyncio.to_thread() and the event loop keeps serving other requests.
Who:   AccountService (register/login) and the auth dependency in dependencies.py.

Token format:
    HS256 JWT, claims {"sub": "<account id>", "iat": ..., "exp": now + 7 days}.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from sleeping.config import settings
from sleeping.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Return a bcrypt hash (utf-8 string) of `password`."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check `password` against a stored bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


def create_access_token(account_id: int, expires_in: Optional[timedelta] = None) -> str:
    """
    Sign a session token bound to `account_id`.

    Args:
        account_id: Account the token authenticates.
        expires_in: Override the configured lifetime (tests use short ones).
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_in if expires_in is not None else timedelta(days=settings.jwt_expire_days)
    payload = {
        "sub": str(account_id),
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """
    Verify a session token and return the account id it is bound to.

    Raises:
        AuthenticationError: expired, tampered with, or missing the subject claim.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError(message="Session expired, please log in again")
    except InvalidTokenError:
        raise AuthenticationError(message="Invalid token")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError(message="Invalid token")
