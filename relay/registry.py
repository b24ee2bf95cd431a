"""
relay/registry.py - Live connection tracking for the relay server.

The registry maps connection ids to transports. Everything that wants to
reach a client goes through deliver(), which never raises: a connection
can vanish between lookup and delivery and that is not an error.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the registry needs from a client connection."""

    @property
    def is_open(self) -> bool: ...

    def send(self, event: dict[str, Any]) -> bool: ...

    def close(self) -> None: ...


class WebSocketTransport:
    """Buffered, non-blocking sender for one WebSocket.

    send() only enqueues; a single writer task drains the outbox in order.
    A slow or dead peer fills its own outbox and nothing else.
    """

    def __init__(
        self,
        send: Callable[[dict[str, Any]], Awaitable[None]],
        outbox_limit: int = 0,
        name: str = "",
    ):
        self._send = send
        self._outbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=outbox_limit)
        self._open = True
        self.name = name
        self._writer = asyncio.get_running_loop().create_task(self._pump())

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, event: dict[str, Any]) -> bool:
        if not self._open:
            return False
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Outbox full for {self.name}, dropping {event.get('type')} event")
            return False
        return True

    def close(self) -> None:
        """Stop accepting events. Already queued events are still flushed."""
        if not self._open:
            return
        self._open = False
        try:
            self._outbox.put_nowait(None)
        except asyncio.QueueFull:
            self._writer.cancel()

    async def drain(self) -> None:
        """Wait until the writer has flushed everything and exited."""
        try:
            await self._writer
        except asyncio.CancelledError:
            pass

    async def _pump(self) -> None:
        while True:
            event = await self._outbox.get()
            if event is None:
                return
            try:
                await self._send(event)
            except Exception as e:
                logger.debug(f"Send to {self.name} failed, closing transport: {e}")
                self._open = False
                return


class ConnectionRegistry:
    """Connection id -> transport."""

    def __init__(self):
        self._transports: dict[str, Transport] = {}

    def register(self, connection_id: str, transport: Transport) -> None:
        old = self._transports.get(connection_id)
        if old is not None and old is not transport:
            old.close()
        self._transports[connection_id] = transport
        logger.debug(f"Registered connection {connection_id} ({len(self._transports)} live)")

    def unregister(self, connection_id: str) -> None:
        transport = self._transports.pop(connection_id, None)
        if transport is not None:
            transport.close()
            logger.debug(f"Unregistered connection {connection_id} ({len(self._transports)} live)")

    def is_live(self, connection_id: str) -> bool:
        transport = self._transports.get(connection_id)
        return transport is not None and transport.is_open

    def deliver(self, connection_id: str, event: dict[str, Any]) -> bool:
        """Send an event to a connection. Unknown or closed targets are a no-op."""
        transport = self._transports.get(connection_id)
        if transport is None or not transport.is_open:
            logger.debug(f"Dropping {event.get('type')} for gone connection {connection_id}")
            return False
        return transport.send(event)

    def ids(self) -> list[str]:
        return list(self._transports)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._transports

    def __len__(self) -> int:
        return len(self._transports)
