"""
relay/signals.py - Blind forwarding of negotiation payloads.
"""

import logging
from typing import Any

from . import events
from .matchmaking import RoomDirectory
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class SignalRelay:
    """Forwards a payload to the other participant of a room.

    Payloads are passed through untouched. A missing room or a sender
    outside the room just drops the payload: the room may have been torn
    down while the payload was in flight.
    """

    def __init__(self, rooms: RoomDirectory, registry: ConnectionRegistry):
        self._rooms = rooms
        self._registry = registry

    def relay(self, session_id: str, sender_id: str, payload: Any) -> bool:
        session = self._rooms.lookup(session_id)
        if session is None:
            logger.debug(f"Room not found: {session_id} (signal from {sender_id} dropped)")
            return False

        partner = session.partner_of(sender_id)
        if partner is None:
            logger.warning(f"Signal from {sender_id} for room {session_id} it isn't part of")
            return False

        logger.debug(f"Signal {sender_id} -> {partner} in {session_id}")
        return self._registry.deliver(partner, events.relayed_signal(payload, sender_id))
