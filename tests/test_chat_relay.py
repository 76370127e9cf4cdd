"""
Sleeping Backend: Chat Relay Tests
===================================

What:  The realtime relay driven with fake connections and a real database.
How:   FakeConnection records every {"event", "data"} frame sent to it.

What we test:
    ✅ join_room → room_users to the room, previous_messages to the joiner
    ✅ send_message → persisted, then receive_message to everyone in the room (sender included)
    ✅ Receiver notifications go to "user_<id>"
    ✅ DM room keys do not depend on argument order
    ✅ Disconnect updates presence for the others
    ✅ A dead connection does not stop delivery to the rest
    ✅ Invalid payloads get an error frame and are not stored
"""

import pytest
from sqlalchemy import func, select

from conftest import FakeConnection
from sleeping.models import Message
from sleeping.services.chat_relay import ChatRelay, dm_room, user_room
from sleeping.services.room_registry import RoomRegistry


@pytest.fixture
def relay(session_factory):
    return ChatRelay(registry=RoomRegistry(), session_factory=session_factory, history_limit=50)


async def stored_messages(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count(Message.id)))


class TestRooms:

    def test_dm_room_is_order_independent(self):
        assert dm_room(7, 3) == dm_room(3, 7) == "dm_3_7"
        assert user_room(7) == "user_7"

    @pytest.mark.asyncio
    async def test_lobby_join_and_message(self, relay):
        """Join an empty lobby, send one message, everyone (sender too) receives it."""
        alice, bob = FakeConnection("alice"), FakeConnection("bob")
        await relay.connect(alice)
        await relay.connect(bob)

        await relay.join_room(alice, {"room": "lobby", "user": "alice"})
        assert alice.events("previous_messages") == [[]]
        assert alice.events("room_users")[-1] == {"count": 1, "users": ["alice"]}

        await relay.join_room(bob, {"room": "lobby", "user": "bob"})
        assert alice.events("room_users")[-1] == {"count": 2, "users": ["alice", "bob"]}

        payload = await relay.send_message(alice, {"room": "lobby", "user": "alice", "text": "oi"})

        assert payload["text"] == "oi"
        assert payload["created_at"] is not None
        assert alice.events("receive_message") == [payload]
        assert bob.events("receive_message") == [payload]

    @pytest.mark.asyncio
    async def test_join_with_bare_room_name(self, relay):
        conn = FakeConnection()

        await relay.join_room(conn, "lobby")

        assert relay.room_users("lobby").users == ["Visitante"]

    @pytest.mark.asyncio
    async def test_join_without_room_gets_error(self, relay):
        conn = FakeConnection()

        await relay.join_room(conn, {"user": "alice"})

        assert len(conn.events("error")) == 1
        assert relay.room_users("").count == 0

    @pytest.mark.asyncio
    async def test_history_is_sent_oldest_first(self, session_factory):
        relay = ChatRelay(registry=RoomRegistry(), session_factory=session_factory, history_limit=2)
        sender = FakeConnection("sender")
        for text in ("um", "dois", "tres"):
            await relay.send_message(sender, {"room": "lobby", "user": "alice", "text": text})

        late = FakeConnection("late")
        await relay.join_room(late, {"room": "lobby", "user": "bob"})

        history = late.events("previous_messages")[0]
        assert [m["text"] for m in history] == ["dois", "tres"]

    @pytest.mark.asyncio
    async def test_disconnect_updates_presence(self, relay):
        alice, bob = FakeConnection("alice"), FakeConnection("bob")
        await relay.join_room(alice, {"room": "lobby", "user": "alice"})
        await relay.join_room(bob, {"room": "lobby", "user": "bob"})

        await relay.disconnect(bob)

        assert alice.events("room_users")[-1] == {"count": 1, "users": ["alice"]}
        assert relay.registry.connections("lobby") == [alice]

    @pytest.mark.asyncio
    async def test_switching_rooms_updates_both(self, relay):
        alice, bob = FakeConnection("alice"), FakeConnection("bob")
        await relay.join_room(alice, {"room": "lobby", "user": "alice"})
        await relay.join_room(bob, {"room": "lobby", "user": "bob"})

        await relay.join_room(bob, {"room": "dm_1_2", "user": "bob"})

        assert alice.events("room_users")[-1] == {"count": 1, "users": ["alice"]}
        assert {"count": 1, "users": ["bob"]} in bob.events("room_users")
        assert relay.registry.members("dm_1_2") == ["bob"]


class TestMessages:

    @pytest.mark.asyncio
    async def test_authenticated_message_carries_account_profile(self, relay, session_factory, make_account):
        sender_id = await make_account("luna", aura_color="#ffd700", role="staff")
        conn = FakeConnection()
        await relay.connect(conn, account_id=sender_id)

        payload = await relay.send_message(conn, {"room": "lobby", "user": "someone-else", "text": "boa noite"})

        assert payload["user"] == "luna"
        assert payload["aura_color"] == "#ffd700"
        assert payload["role"] == "staff"
        assert payload["sender_id"] == sender_id
        assert await stored_messages(session_factory) == 1

    @pytest.mark.asyncio
    async def test_receiver_is_notified(self, relay):
        sender, receiver = FakeConnection("sender"), FakeConnection("receiver")
        await relay.connect(sender, "3")
        await relay.connect(receiver, "7")
        room = dm_room(3, 7)
        await relay.join_room(sender, {"room": room, "user": "alice"})

        payload = await relay.send_message(
            sender,
            {"room": room, "user": "alice", "text": "oi", "receiver_id": 7},
        )

        assert receiver.events("notification") == [
            {"title": "Nova Mensagem", "message": "@alice enviou uma transmissão!"}
        ]
        assert receiver.events("new_message") == [payload]
        assert sender.events("notification") == []

    @pytest.mark.asyncio
    async def test_dead_connection_does_not_block_others(self, relay, session_factory):
        dead, alive = FakeConnection("dead", broken=True), FakeConnection("alive")
        await relay.join_room(dead, {"room": "lobby", "user": "ghost"})
        await relay.join_room(alive, {"room": "lobby", "user": "alice"})

        delivered = await relay.emit("lobby", "receive_message", {"text": "x"})
        payload = await relay.send_message(alive, {"room": "lobby", "user": "alice", "text": "oi"})

        assert delivered == 1
        assert payload is not None
        assert alive.events("receive_message")[-1] == payload
        assert await stored_messages(session_factory) == 1

    @pytest.mark.asyncio
    async def test_invalid_message_gets_error_and_is_not_stored(self, relay, session_factory):
        conn = FakeConnection()

        payload = await relay.send_message(conn, {"room": "lobby", "user": "alice", "text": ""})

        assert payload is None
        assert conn.events("error")[0]["message"] == "Invalid message"
        assert await stored_messages(session_factory) == 0

    @pytest.mark.asyncio
    async def test_unknown_event_gets_error(self, relay):
        conn = FakeConnection()

        await relay.dispatch(conn, "typing", {})

        assert conn.events("error") == [{"message": "Unknown event 'typing'"}]

    @pytest.mark.asyncio
    async def test_anonymous_sender_cannot_borrow_a_staff_profile(self, relay, make_account):
        await make_account("mod", aura_color="#ff0000", role="staff")
        conn = FakeConnection()

        payload = await relay.send_message(conn, {"room": "lobby", "user": "mod", "text": "oi"})

        assert payload["user"] == "mod"
        assert payload["role"] == "user"
        assert payload["aura_color"] == "#ffffff"
        assert payload["sender_id"] is None

    @pytest.mark.asyncio
    async def test_numeric_user_name_is_accepted_on_join(self, relay):
        conn = FakeConnection()

        await relay.join_room(conn, {"room": "lobby", "user": 5})

        assert conn.events("error") == []
        assert relay.room_users("lobby").users == ["5"]
