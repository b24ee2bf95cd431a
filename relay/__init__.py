"""
relay - Matchmaking and signaling relay server for pairwire

Pairs anonymous clients into rooms and forwards their negotiation
messages. The relay never looks inside those messages; it only tracks
who is waiting, who is paired with whom, and who is still connected.
"""

from .coordinator import ConnectionState, SessionCoordinator
from .matchmaking import RoomDirectory, Session, WaitingQueue
from .registry import ConnectionRegistry, WebSocketTransport
from .signals import SignalRelay

__all__ = [
    "ConnectionRegistry",
    "ConnectionState",
    "RoomDirectory",
    "Session",
    "SessionCoordinator",
    "SignalRelay",
    "WaitingQueue",
    "WebSocketTransport",
]
