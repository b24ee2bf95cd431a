"""
relay/coordinator.py - Matchmaking, relay and teardown for all connections.

The SessionCoordinator owns the registry, waiting queue and room directory.
Every public operation runs end-to-end under one lock, so two concurrent
joins can never dequeue the same partner and a disconnect can never race a
match being made. Nothing inside the lock waits on the network: delivery
only hands events to each connection's buffered transport.

Per-connection lifecycle:

    idle -> waiting -> paired
      ^                  |
      +------------------+   (partner left)

    any state -> closed      (disconnect)
"""

import logging
import threading
from enum import Enum
from typing import Any

from . import events
from .matchmaking import RoomDirectory, Session, WaitingQueue
from .registry import ConnectionRegistry, Transport
from .signals import SignalRelay

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    PAIRED = "paired"
    CLOSED = "closed"


class SessionCoordinator:
    """Processes client events against the shared matchmaking state."""

    def __init__(self, registry: ConnectionRegistry | None = None):
        self.registry = registry or ConnectionRegistry()
        self.queue = WaitingQueue()
        self.rooms = RoomDirectory()
        self.relay = SignalRelay(self.rooms, self.registry)
        self._states: dict[str, ConnectionState] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, connection_id: str, transport: Transport) -> None:
        with self._lock:
            self.registry.register(connection_id, transport)
            self._states[connection_id] = ConnectionState.IDLE
        logger.info(f"New connection: {connection_id}")

    def disconnect(self, connection_id: str) -> None:
        """Tear down everything a connection was part of. Safe to repeat."""
        with self._lock:
            self.queue.remove(connection_id)
            self._leave_rooms(connection_id)
            self.registry.unregister(connection_id)
            self._states.pop(connection_id, None)
        logger.info(f"User disconnected: {connection_id}")

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    def join(self, connection_id: str) -> Session | None:
        """Find a partner for a connection, or put it in line.

        Returns the new Session if a match was made, None if the connection
        is now waiting (or unknown).
        """
        with self._lock:
            if connection_id not in self._states:
                logger.debug(f"Join from unknown connection {connection_id} ignored")
                return None

            logger.info(f"User looking for chat: {connection_id}")
            self.queue.remove(connection_id)
            if self._states[connection_id] is ConnectionState.PAIRED:
                self._leave_rooms(connection_id)

            partner = self._next_live_partner(connection_id)
            if partner is None:
                self.queue.enqueue(connection_id)
                self._states[connection_id] = ConnectionState.WAITING
                position = self.queue.position(connection_id)
                self.registry.deliver(connection_id, events.waiting(position))
                logger.info(f"Added to waiting list: {connection_id} (position {position})")
                return None

            session = self.rooms.create(partner, connection_id)
            self._states[partner] = ConnectionState.PAIRED
            self._states[connection_id] = ConnectionState.PAIRED
            info = session.to_dict()
            self.registry.deliver(partner, events.chat_started(info, initiator=True))
            self.registry.deliver(connection_id, events.chat_started(info, initiator=False))
            logger.info(f"Chat started in room: {session.session_id}")
            return session

    def signal(self, connection_id: str, session_id: str, payload: Any) -> bool:
        with self._lock:
            return self.relay.relay(session_id, connection_id, payload)

    def dispatch(self, connection_id: str, message: Any) -> None:
        """Route one decoded inbound message. Malformed messages are ignored."""
        msg_type = events.message_type(message)

        if msg_type == events.START_CHAT:
            self.join(connection_id)

        elif msg_type == events.SIGNAL:
            parsed = events.SignalMessage.parse(message)
            if parsed is None:
                logger.debug(f"Malformed signal from {connection_id} ignored")
                return
            self.signal(connection_id, parsed.room, parsed.signal)

        else:
            logger.debug(f"Unknown message type {msg_type!r} from {connection_id} ignored")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def state_of(self, connection_id: str) -> ConnectionState:
        with self._lock:
            return self._states.get(connection_id, ConnectionState.CLOSED)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return self._counts()

    def check_invariants(self) -> list[str]:
        """Describe every breach of the matchmaking invariants (empty if none)."""
        with self._lock:
            return self._invariant_problems()

    def snapshot(self) -> dict[str, Any]:
        """Counters and invariant breaches taken at the same instant."""
        with self._lock:
            return {
                **self._counts(),
                "invariant_violations": self._invariant_problems(),
            }

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _counts(self) -> dict[str, int]:
        return {
            "connections": len(self.registry),
            "waiting": len(self.queue),
            "rooms": len(self.rooms),
        }

    def _invariant_problems(self) -> list[str]:
        problems = []
        seen: dict[str, str] = {}
        for cid in self.queue.snapshot():
            seen[cid] = "waiting queue"
        for session in self.rooms.sessions():
            if len(session.participants) != 2:
                problems.append(f"{session.session_id} does not have two distinct participants")
            for cid in session.participants:
                if cid in seen:
                    problems.append(f"{cid} is in {session.session_id} and {seen[cid]}")
                seen[cid] = session.session_id
        for cid, where in seen.items():
            if cid not in self._states:
                problems.append(f"{cid} in {where} but not connected")
        return problems

    def _next_live_partner(self, connection_id: str) -> str | None:
        """Dequeue until a live partner turns up. Dead entries are discarded."""
        while True:
            partner = self.queue.dequeue_oldest()
            if partner is None:
                return None
            if partner != connection_id and self.registry.is_live(partner):
                return partner
            logger.warning(f"Discarding dead waiting entry {partner}")
            if partner in self._states:
                self._states[partner] = ConnectionState.IDLE

    def _leave_rooms(self, connection_id: str) -> None:
        for session_id in self.rooms.find_rooms_containing(connection_id):
            session = self.rooms.destroy(session_id)
            if session is None:
                continue
            partner = session.partner_of(connection_id)
            if partner is not None:
                self.registry.deliver(partner, events.peer_disconnected())
                if partner in self._states:
                    self._states[partner] = ConnectionState.IDLE
            logger.info(f"Room closed: {session_id}")
