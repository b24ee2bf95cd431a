"""
relay/events.py - Wire event names and inbound message models.

All frames are JSON objects with a "type" field. Inbound messages are
validated with pydantic; anything that doesn't fit is ignored by the
coordinator rather than treated as a protocol error.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Client -> server
START_CHAT = "start_chat"
SIGNAL = "signal"

# Server -> client
CONNECTED = "connected"
WAITING = "waiting"
CHAT_STARTED = "chat_started"
PEER_DISCONNECTED = "peer_disconnected"
PING = "ping"

# Older/alternate spellings accepted on input
_TYPE_ALIASES = {
    "join_request": START_CHAT,
    "negotiation_payload": SIGNAL,
}


class SignalMessage(BaseModel):
    """Inbound negotiation payload. `signal` is opaque and never inspected."""

    model_config = ConfigDict(extra="ignore")

    room: str = Field(min_length=1)
    signal: Any = None

    @classmethod
    def parse(cls, message: dict[str, Any]) -> "SignalMessage | None":
        data = dict(message)
        # Accept session_id/payload as field names too
        if "room" not in data and "session_id" in data:
            data["room"] = data["session_id"]
        if "signal" not in data and "payload" in data:
            data["signal"] = data["payload"]
        if "signal" not in data:
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None


def message_type(message: Any) -> str | None:
    """Canonical type of an inbound message, or None if it has none."""
    if not isinstance(message, dict):
        return None
    raw = message.get("type")
    if not isinstance(raw, str):
        return None
    return _TYPE_ALIASES.get(raw, raw)


# ============================================================================
# Outbound builders
# ============================================================================


def connected(connection_id: str) -> dict[str, Any]:
    return {"type": CONNECTED, "connection_id": connection_id}


def waiting(position: int) -> dict[str, Any]:
    return {"type": WAITING, "position": position}


def chat_started(session_dict: dict[str, str], initiator: bool) -> dict[str, Any]:
    return {"type": CHAT_STARTED, **session_dict, "initiator": initiator}


def relayed_signal(payload: Any, sender_id: str) -> dict[str, Any]:
    return {"type": SIGNAL, "signal": payload, "from": sender_id}


def peer_disconnected() -> dict[str, Any]:
    return {"type": PEER_DISCONNECTED}


def ping() -> dict[str, Any]:
    return {"type": PING}
