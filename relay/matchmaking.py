"""
relay/matchmaking.py - Waiting queue and room directory.

Both structures are plain in-memory containers with no locking of their own.
The SessionCoordinator owns them and serializes every compound operation
(dequeue partner + create room, find rooms + destroy) under one lock.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ROOM_PREFIX = "room"


# ============================================================================
# Sessions
# ============================================================================


@dataclass(frozen=True)
class Session:
    """One matched pair.

    The initiator is always the peer that had been waiting longer. Clients
    that only see session_id can recover the role from it: the first id
    after the prefix is the initiator.
    """

    initiator_id: str
    responder_id: str

    def __post_init__(self):
        if self.initiator_id == self.responder_id:
            raise ValueError(f"Cannot pair connection {self.initiator_id} with itself")

    @property
    def session_id(self) -> str:
        return f"{ROOM_PREFIX}_{self.initiator_id}_{self.responder_id}"

    @property
    def participants(self) -> frozenset[str]:
        return frozenset((self.initiator_id, self.responder_id))

    def partner_of(self, connection_id: str) -> str | None:
        """The other participant, or None if connection_id isn't in this room."""
        if connection_id == self.initiator_id:
            return self.responder_id
        if connection_id == self.responder_id:
            return self.initiator_id
        return None

    def to_dict(self) -> dict[str, str]:
        return {
            "room": self.session_id,
            "initiator_id": self.initiator_id,
            "responder_id": self.responder_id,
        }


# ============================================================================
# Waiting Queue
# ============================================================================


class WaitingQueue:
    """FIFO set of connection ids looking for a partner."""

    def __init__(self):
        # Insertion-ordered; values unused
        self._entries: OrderedDict[str, None] = OrderedDict()

    def enqueue(self, connection_id: str) -> bool:
        """Append to the back. Returns False if it was already waiting."""
        if connection_id in self._entries:
            return False
        self._entries[connection_id] = None
        return True

    def dequeue_oldest(self) -> str | None:
        """Pop the longest-waiting id, or None when nobody is waiting."""
        if not self._entries:
            return None
        connection_id, _ = self._entries.popitem(last=False)
        return connection_id

    def remove(self, connection_id: str) -> bool:
        """Drop an id from the line. Returns False if it wasn't waiting."""
        if connection_id not in self._entries:
            return False
        del self._entries[connection_id]
        return True

    def position(self, connection_id: str) -> int:
        """1-indexed place in line, 0 if not waiting."""
        for i, cid in enumerate(self._entries, start=1):
            if cid == connection_id:
                return i
        return 0

    def snapshot(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ============================================================================
# Room Directory
# ============================================================================


class RoomDirectory:
    """session_id -> Session, with a reverse index for teardown."""

    def __init__(self):
        self._rooms: dict[str, Session] = {}
        self._by_member: dict[str, set[str]] = {}

    def create(self, waiting_id: str, arriving_id: str) -> Session:
        """Store a new room. waiting_id becomes the initiator."""
        session = Session(initiator_id=waiting_id, responder_id=arriving_id)
        self._rooms[session.session_id] = session
        for member in session.participants:
            self._by_member.setdefault(member, set()).add(session.session_id)
        logger.debug(f"Room created: {session.session_id}")
        return session

    def lookup(self, session_id: str) -> Session | None:
        return self._rooms.get(session_id)

    def find_rooms_containing(self, connection_id: str) -> set[str]:
        return set(self._by_member.get(connection_id, ()))

    def destroy(self, session_id: str) -> Session | None:
        """Remove a room. Returns it, or None if it was already gone."""
        session = self._rooms.pop(session_id, None)
        if session is None:
            return None
        for member in session.participants:
            rooms = self._by_member.get(member)
            if rooms is not None:
                rooms.discard(session_id)
                if not rooms:
                    del self._by_member[member]
        logger.debug(f"Room destroyed: {session_id}")
        return session

    def sessions(self) -> list[Session]:
        return list(self._rooms.values())

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
