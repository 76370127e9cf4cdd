"""
Sleeping Backend: Realtime Event Schemas
=========================================

What:  Typed payloads for the WebSocket relay.

Wire format (JSON text frames, both directions):
    {"event": "<name>", "data": <payload>}

Client → server events: join_room, send_message
Server → client events: previous_messages, receive_message, room_users,
                        notification, new_message, error
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

GUEST_NAME = "Visitante"


class Envelope(BaseModel):
    event: str
    data: Any = None


class JoinRoom(BaseModel):
    """`join_room` accepts either a bare room name or {"room": ..., "user": ...}."""
    room: str = Field(min_length=1, max_length=120)
    user: str = Field(default=GUEST_NAME, min_length=1, max_length=50)

    @field_validator("room", "user", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v)

    @classmethod
    def from_data(cls, data: Union[str, int, dict, None]) -> "JoinRoom":
        if isinstance(data, (str, int)):
            return cls(room=str(data))
        if isinstance(data, dict):
            room = data.get("room")
            return cls(
                room=room if room is not None else "",
                user=data.get("user") or GUEST_NAME,
            )
        return cls(room="")


class SendMessage(BaseModel):
    room: str = Field(min_length=1, max_length=120)
    user: str = Field(min_length=1, max_length=50)
    text: str = Field(min_length=1, max_length=4000)
    receiver_id: Optional[int] = None

    @field_validator("room", "user", "text", mode="before")
    @classmethod
    def coerce_to_str(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v)


class RoomUsers(BaseModel):
    count: int
    users: list[str]
