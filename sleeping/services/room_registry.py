"""
Sleeping Backend: Room Registry (Realtime Presence)
====================================================

What:  In-memory bookkeeping for the realtime relay.
       - subscriptions: room → connections that receive the room's broadcasts
       - members:       room → ordered, duplicate-free display names
       - presence:      connection → (room, name) of its last join_room
       - accounts:      connection → account id verified from its token
How:   Plain dicts, no locking: every mutation happens on the event loop
       thread between awaits.
Who:   Owned by one ChatRelay instance and handed to it at construction.

Scope:
    State is per process. Running several server processes fragments
    presence and broadcast scope; scaling out needs an external pub/sub
    fan-out in place of this object.
"""

from typing import Dict, Hashable, List, Optional, Set, Tuple


class RoomRegistry:

    def __init__(self):
        self._connected: Set[Hashable] = set()
        self._subscriptions: Dict[str, Set[Hashable]] = {}
        self._members: Dict[str, List[str]] = {}
        self._presence: Dict[Hashable, Tuple[str, str]] = {}
        self._accounts: Dict[Hashable, int] = {}

    # ── Connections ───────────────────────────────────────────────────────

    def add_connection(self, conn: Hashable) -> None:
        self._connected.add(conn)

    def connection_count(self) -> int:
        return len(self._connected)

    def bind_account(self, conn: Hashable, account_id: int) -> None:
        """Attach the account a connection authenticated as."""
        self._accounts[conn] = account_id

    def account_of(self, conn: Hashable) -> Optional[int]:
        return self._accounts.get(conn)

    # ── Subscriptions ─────────────────────────────────────────────────────

    def subscribe(self, conn: Hashable, room: str) -> None:
        self._subscriptions.setdefault(room, set()).add(conn)

    def connections(self, room: str) -> List[Hashable]:
        return list(self._subscriptions.get(room, ()))

    def rooms_of(self, conn: Hashable) -> List[str]:
        return [room for room, conns in self._subscriptions.items() if conn in conns]

    # ── Presence ──────────────────────────────────────────────────────────

    def join(self, conn: Hashable, room: str, name: str) -> Optional[str]:
        """
        Record that `conn` is present in `room` as `name`.

        A connection is present in one room at a time. Returns the room it
        was previously present in (whose member list changed) or None.
        """
        self.subscribe(conn, room)
        previous = self._presence.get(conn)
        self._presence[conn] = (room, name)

        left_room = None
        if previous is not None and previous != (room, name):
            self._drop_member_if_absent(*previous)
            if previous[0] != room:
                left_room = previous[0]

        members = self._members.setdefault(room, [])
        if name not in members:
            members.append(name)
        return left_room

    def leave(self, conn: Hashable) -> Optional[str]:
        """
        Forget every subscription and the presence of `conn`.

        Returns the room whose member list may have changed, or None when the
        connection never joined one.
        """
        self._connected.discard(conn)
        self._accounts.pop(conn, None)
        for room in self.rooms_of(conn):
            conns = self._subscriptions[room]
            conns.discard(conn)
            if not conns:
                del self._subscriptions[room]

        previous = self._presence.pop(conn, None)
        if previous is None:
            return None
        self._drop_member_if_absent(*previous)
        return previous[0]

    def members(self, room: str) -> List[str]:
        return list(self._members.get(room, ()))

    def presence_of(self, conn: Hashable) -> Optional[Tuple[str, str]]:
        return self._presence.get(conn)

    def _drop_member_if_absent(self, room: str, name: str) -> None:
        # Same name from another tab keeps the member listed
        if (room, name) in self._presence.values():
            return
        members = self._members.get(room)
        if members is None:
            return
        if name in members:
            members.remove(name)
        if not members:
            del self._members[room]
