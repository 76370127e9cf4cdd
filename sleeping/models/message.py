"""
Sleeping Backend: Chat Message Model
=====================================

What:  Persisted chat history, one row per message sent through the relay.
How:   Sender presentation fields (aura, avatar, role) are copied onto the row
       at send time so history renders the way it looked when it was sent.

Query Pattern:
    Room history tail: WHERE room = :room ORDER BY created_at DESC, id DESC LIMIT :n
    → idx_messages_room_created
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from sleeping.database import Base
from sleeping.models.account import utcnow


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room: Mapped[str] = mapped_column(String(120), nullable=False)
    user: Mapped[str] = mapped_column(String(50), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    aura_color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user", server_default=sql_text("'user'")
    )
    # Plain integers, not foreign keys: guests ("Visitante") chat without an account
    sender_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    receiver_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_messages_room_created", "room", "created_at"),
    )

    def to_payload(self) -> dict:
        """Wire representation used by `previous_messages` and `receive_message`."""
        return {
            "id": self.id,
            "room": self.room,
            "user": self.user,
            "text": self.text,
            "aura_color": self.aura_color,
            "avatar_url": self.avatar_url,
            "role": self.role,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
