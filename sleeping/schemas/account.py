"""
Sleeping Backend: Account Request/Response Schemas
===================================================

What:  Typed DTOs for registration, login, profile and progression endpoints.
How:   Request bodies are validated at the boundary, before any service runs;
       responses never expose `password_hash` or `email` of other users.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.]{3,30}$")
_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def normalize_email(value: str) -> str:
    """Lower-case and trim an email address; the stored form of every email."""
    return value.strip().lower()


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(description="Public handle, 3-30 letters, digits, '_' or '.'")
    email: str = Field(description="Login email; stored lower-cased")
    password: str = Field(min_length=6, max_length=72)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not _USERNAME_RE.match(v):
            raise ValueError("Username must be 3-30 characters: letters, digits, '_' or '.'")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = normalize_email(v)
        if not _EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v)


class ProfileUpdateRequest(BaseModel):
    """Partial update: omitted fields are left unchanged."""
    username: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not _USERNAME_RE.match(v):
            raise ValueError("Username must be 3-30 characters: letters, digits, '_' or '.'")
        return v


class XPRequest(BaseModel):
    amount: int = Field(ge=0, le=100_000, description="XP to add; XP never decreases")


class EquipAuraRequest(BaseModel):
    color: str = Field(description="Hex color of an owned aura, e.g. #ff00aa")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        v = v.strip()
        if not _COLOR_RE.match(v):
            raise ValueError("Aura color must be a hex color like #a1b2c3")
        return v.lower()


class GrantRequest(BaseModel):
    amount: int = Field(gt=0, le=1_000_000)
    label: str = Field(default="grant", min_length=1, max_length=150)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AccountResponse(BaseModel):
    """Projection of an account safe to return to its owner."""
    id: int
    username: str
    email: str
    balance: int
    xp: int
    role: str
    aura_color: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PublicAccount(BaseModel):
    """Projection shown to other users (contacts, authors)."""
    id: int
    username: str
    avatar_url: Optional[str] = None
    aura_color: str

    model_config = {"from_attributes": True}


class ProfileResponse(BaseModel):
    id: int
    username: str
    xp: int
    role: str
    aura_color: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None
    followers: int = Field(description="How many accounts follow this one")
    following: int = Field(description="How many accounts this one follows")


class RegisterResponse(BaseModel):
    message: str = "Account created"
    user: AccountResponse


class LoginResponse(BaseModel):
    token: str = Field(description="Bearer token, valid for jwt_expire_days")
    user: AccountResponse


class ContactListResponse(BaseModel):
    contacts: List[PublicAccount]
