"""
Sleeping Backend: Account Model
================================

What:  ORM model for the `accounts` table (identity, credentials, balance, XP).
Who:   AccountService (profile CRUD), LedgerService (balance and inventory writes).

Invariants enforced by the schema:
    - username and email are unique
    - balance >= 0 (in-app crystals never go negative)
    - xp >= 0, and the services only ever add to it
    - role is one of user / staff / admin

Accounts are never hard-deleted.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from sleeping.database import Base

ROLE_USER = "user"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_STAFF, ROLE_ADMIN)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    """A registered user of the app."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    # Stored lower-cased and trimmed; login compares against the same normal form
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Currency & Progression ────────────────────────────────────────────
    balance: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="In-app crystals; only purchases and grants write this column",
    )
    xp: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Experience points, monotonically non-decreasing",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ROLE_USER,
        server_default=text("'user'"),
    )

    # ── Cosmetics & Profile ───────────────────────────────────────────────
    # What: Currently equipped aura, denormalized from the owned aura items
    aura_color: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="#ffffff",
        server_default=text("'#ffffff'"),
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
        CheckConstraint("xp >= 0", name="ck_accounts_xp_non_negative"),
        CheckConstraint("role IN ('user', 'staff', 'admin')", name="ck_accounts_role"),
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, username='{self.username}', balance={self.balance})>"
