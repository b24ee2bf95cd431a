"""
pairwire/client.py - Async client for the relay's WebSocket protocol.

Usage:
    async with PeerClient("ws://localhost:3000/ws") as peer:
        await peer.join()
        started = await peer.wait_for("chat_started")
        if started["initiator"]:
            await peer.send_signal(started["room"], {"sdp": "..."})
"""

import asyncio
import json
import logging
from typing import Any

from relay import events
from relay.matchmaking import ROOM_PREFIX

logger = logging.getLogger(__name__)


class RelayClosedError(Exception):
    """The relay connection closed before the expected event arrived."""


def initiator_from_room(room: str) -> str | None:
    """Initiator id embedded in a room id ("room_<initiator>_<responder>")."""
    parts = room.split("_")
    if len(parts) != 3 or parts[0] != ROOM_PREFIX or not parts[1]:
        return None
    return parts[1]


class PeerClient:
    """One connection to the relay server."""

    def __init__(self, url: str, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self.connection_id: str | None = None
        self.room: str | None = None
        self._ws = None

    async def __aenter__(self) -> "PeerClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def connect(self) -> None:
        import websockets

        self._ws = await websockets.connect(self.url, open_timeout=self.open_timeout)
        hello = await self.wait_for(events.CONNECTED, timeout=self.open_timeout)
        self.connection_id = hello["connection_id"]
        logger.info(f"Connected to {self.url} as {self.connection_id}")

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def join(self) -> None:
        """Ask the relay for a partner."""
        await self._send({"type": events.START_CHAT})

    async def send_signal(self, room: str, payload: Any) -> None:
        await self._send({"type": events.SIGNAL, "room": room, "signal": payload})

    async def recv(self) -> dict[str, Any]:
        """Next event from the relay. Keepalive pings are skipped."""
        if self._ws is None:
            raise RelayClosedError("Not connected")
        while True:
            try:
                raw = await self._ws.recv()
            except Exception as e:
                raise RelayClosedError(str(e)) from e
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                continue
            msg_type = msg.get("type")
            if msg_type == events.PING:
                continue
            if msg_type == events.CHAT_STARTED:
                self.room = msg.get("room")
            elif msg_type == events.PEER_DISCONNECTED:
                self.room = None
            return msg

    async def wait_for(self, msg_type: str, timeout: float | None = None) -> dict[str, Any]:
        """Read events until one of msg_type arrives; others are discarded."""

        async def _wait():
            while True:
                msg = await self.recv()
                if msg.get("type") == msg_type:
                    return msg
                logger.debug(f"Skipping {msg.get('type')} while waiting for {msg_type}")

        return await asyncio.wait_for(_wait(), timeout=timeout)

    def is_initiator(self, started: dict[str, Any]) -> bool:
        """Whether this client opens the negotiation in a chat_started room."""
        if "initiator_id" in started:
            return started["initiator_id"] == self.connection_id
        return initiator_from_room(started.get("room", "")) == self.connection_id

    async def _send(self, message: dict[str, Any]) -> None:
        if self._ws is None:
            raise RelayClosedError("Not connected")
        await self._ws.send(json.dumps(message))
