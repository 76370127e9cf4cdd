"""
Sleeping Backend: Realtime Chat Relay
======================================

What:  Room-based message relay for the WebSocket endpoint.
How:   Each client event is handled to completion on the event loop:
       persist first, then broadcast to every connection subscribed to the
       room. There is no acknowledgement and no delivery retry; a send that
       fails on one connection is logged and skipped.
Who:   routes/chat.py feeds it decoded frames; tests drive it with fakes.

Event Flow:
    connect(?userId=7)  → subscribe to "user_7" (personal notifications)
    connect(?token=jwt) → bind the verified account; its messages carry that
                          account's name, aura, avatar and role
    join_room           → presence update → room_users to room
                          → previous_messages to the joining connection
    send_message        → persist → receive_message to room
                          → notification + new_message to "user_<receiver>"
    disconnect          → presence update → room_users to the room left

A connection is anything hashable with `async send_json(dict)`, which is
what Starlette's WebSocket provides.
"""

import logging
from typing import Any, Hashable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from sleeping.config import settings
from sleeping.database import unit_of_work
from sleeping.models import ROLE_USER, Account, Message
from sleeping.schemas.chat import JoinRoom, RoomUsers, SendMessage
from sleeping.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)

EVENT_JOIN_ROOM = "join_room"
EVENT_SEND_MESSAGE = "send_message"
EVENT_RECEIVE_MESSAGE = "receive_message"
EVENT_PREVIOUS_MESSAGES = "previous_messages"
EVENT_ROOM_USERS = "room_users"
EVENT_NOTIFICATION = "notification"
EVENT_NEW_MESSAGE = "new_message"
EVENT_ERROR = "error"

NOTIFICATION_TITLE = "Nova Mensagem"


def dm_room(a: int, b: int) -> str:
    """Room key for a direct conversation; the same for (a, b) and (b, a)."""
    low, high = sorted((int(a), int(b)))
    return f"dm_{low}_{high}"


def user_room(account_id: Any) -> str:
    return f"user_{account_id}"


class ChatRelay:
    """
    Args:
        registry:        Presence and subscription state (one per process)
        session_factory: Used for history reads and message writes
        history_limit:   How many messages previous_messages carries
    """

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        session_factory: Optional[async_sessionmaker] = None,
        history_limit: Optional[int] = None,
    ):
        self.registry = registry if registry is not None else RoomRegistry()
        self.session_factory = session_factory
        self.history_limit = history_limit or settings.chat_history_limit

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(
        self,
        conn: Hashable,
        user_id: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> None:
        """
        Register a connection.

        `user_id` only selects the personal notification room. `account_id`
        is the identity verified from a session token; messages from an
        authenticated connection are always attributed to that account.
        """
        self.registry.add_connection(conn)
        if account_id is not None:
            self.registry.bind_account(conn, account_id)
            self.registry.subscribe(conn, user_room(account_id))
        if user_id:
            self.registry.subscribe(conn, user_room(user_id))
        logger.debug("Realtime connection opened (user_id=%s)", user_id)

    async def disconnect(self, conn: Hashable) -> None:
        presence = self.registry.presence_of(conn)
        room = self.registry.leave(conn)
        if room is not None:
            await self.broadcast_room_users(room)
            logger.info("%s left room %s", presence[1] if presence else "?", room)

    async def dispatch(self, conn: Hashable, event: str, data: Any) -> None:
        """Route one decoded client frame to its handler."""
        if event == EVENT_JOIN_ROOM:
            await self.join_room(conn, data)
        elif event == EVENT_SEND_MESSAGE:
            await self.send_message(conn, data)
        else:
            await self._send(conn, EVENT_ERROR, {"message": f"Unknown event '{event}'"})

    # ── Client events ─────────────────────────────────────────────────────

    async def join_room(self, conn: Hashable, data: Any) -> None:
        try:
            join = JoinRoom.from_data(data)
        except PydanticValidationError:
            await self._send(conn, EVENT_ERROR, {"message": "Invalid join_room payload"})
            return

        left_room = self.registry.join(conn, join.room, join.user)
        logger.info("%s joined room %s", join.user, join.room)

        await self.broadcast_room_users(join.room)
        if left_room is not None:
            await self.broadcast_room_users(left_room)

        await self._send(conn, EVENT_PREVIOUS_MESSAGES, await self.history(join.room))

    async def send_message(self, conn: Hashable, data: Any) -> Optional[dict]:
        """
        Persist and broadcast one chat message.

        Returns:
            The broadcast payload, or None when the payload was invalid or
            could not be stored (the sender gets an `error` event).
        """
        try:
            msg = SendMessage.model_validate(data if isinstance(data, dict) else {})
        except PydanticValidationError as e:
            details = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            await self._send(conn, EVENT_ERROR, {"message": "Invalid message", "details": details})
            return None

        try:
            payload = await self._persist(msg, self.registry.account_of(conn))
        except SQLAlchemyError as e:
            logger.error("Failed to store message in room %s: %s", msg.room, e)
            await self._send(conn, EVENT_ERROR, {"message": "Message could not be sent"})
            return None

        await self.emit(msg.room, EVENT_RECEIVE_MESSAGE, payload)

        if msg.receiver_id:
            target = user_room(msg.receiver_id)
            await self.emit(
                target,
                EVENT_NOTIFICATION,
                {"title": NOTIFICATION_TITLE, "message": f"@{payload['user']} enviou uma transmissão!"},
            )
            await self.emit(target, EVENT_NEW_MESSAGE, payload)
        return payload

    # ── Reads ─────────────────────────────────────────────────────────────

    async def history(self, room: str) -> List[dict]:
        """The newest `history_limit` messages of `room`, oldest first. Empty on storage failure."""
        try:
            async with unit_of_work(self.session_factory) as session:
                rows = await session.scalars(
                    select(Message)
                    .where(Message.room == room)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .limit(self.history_limit)
                )
                return [m.to_payload() for m in reversed(rows.all())]
        except SQLAlchemyError as e:
            logger.error("Failed to load history for room %s: %s", room, e)
            return []

    def room_users(self, room: str) -> RoomUsers:
        users = self.registry.members(room)
        return RoomUsers(count=len(users), users=users)

    # ── Fan-out ───────────────────────────────────────────────────────────

    async def broadcast_room_users(self, room: str) -> None:
        await self.emit(room, EVENT_ROOM_USERS, self.room_users(room).model_dump())

    async def emit(self, room: str, event: str, data: Any) -> int:
        """Send to every connection subscribed to `room`; returns how many sends succeeded."""
        delivered = 0
        for conn in self.registry.connections(room):
            if await self._send(conn, event, data):
                delivered += 1
        return delivered

    async def _send(self, conn: Hashable, event: str, data: Any) -> bool:
        try:
            await conn.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.warning("Dropping %s for a dead connection: %s", event, e)
            return False

    async def _persist(self, msg: SendMessage, account_id: Optional[int] = None) -> dict:
        # Profile fields come only from a verified account; anonymous senders
        # keep their chosen name with the default look and role
        async with unit_of_work(self.session_factory) as session:
            sender = await session.get(Account, account_id) if account_id is not None else None
            message = Message(
                room=msg.room,
                user=sender.username if sender else msg.user,
                text=msg.text,
                aura_color=sender.aura_color if sender else settings.default_aura_color,
                avatar_url=sender.avatar_url if sender else settings.default_avatar_url,
                role=sender.role if sender else ROLE_USER,
                sender_id=sender.id if sender else None,
                receiver_id=msg.receiver_id,
            )
            session.add(message)
            await session.flush()
            await session.refresh(message)
            return message.to_payload()
