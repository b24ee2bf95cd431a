"""
relay/server.py - FastAPI signaling server for pairwire.

Endpoints:
    WS     /ws          Client connection: matchmaking + signal relay
    GET    /health      Server health check

Messages on /ws are JSON objects with a "type" field:

    client -> server
        {"type": "start_chat"}
        {"type": "signal", "room": str, "signal": <opaque>}

    server -> client
        {"type": "connected", "connection_id": str}
        {"type": "waiting", "position": int}
        {"type": "chat_started", "room": str, "initiator_id": str,
         "responder_id": str, "initiator": bool}
        {"type": "signal", "signal": <opaque>, "from": str}
        {"type": "peer_disconnected"}
        {"type": "ping"}
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from starlette.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState

from pairwire.config import ServerConfig

from . import events
from .coordinator import SessionCoordinator
from .registry import WebSocketTransport

logger = logging.getLogger(__name__)

# How long to wait for a closing connection's outbox to flush
DRAIN_TIMEOUT = 1.0


# Global coordinator, set during lifespan
_coordinator: SessionCoordinator | None = None
_config = ServerConfig()


def get_coordinator() -> SessionCoordinator:
    assert _coordinator is not None, "Coordinator not initialized"
    return _coordinator


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _coordinator, _config
    _config = getattr(app.state, "config", None) or ServerConfig()
    _coordinator = SessionCoordinator()
    _log_startup_config(_config)

    yield

    _coordinator = None


def _log_startup_config(config: ServerConfig):
    """Log server configuration on startup so operators can verify settings."""
    logger.info("=" * 50)
    logger.info("Relay startup config:")
    logger.info(f"  Listen: {config.host}:{config.port}")
    logger.info(f"  CORS origins: {', '.join(config.cors_origins) or '(none)'}")
    logger.info(f"  Idle ping after: {config.idle_timeout}s")
    if config.outbox_limit:
        logger.info(f"  Outbox limit: {config.outbox_limit} events per connection")
    else:
        logger.info("  Outbox limit: unbounded")
    logger.info("=" * 50)


def create_app(config: ServerConfig | None = None) -> FastAPI:
    """Build the app. CORS origins are fixed at construction time."""
    config = config or ServerConfig()
    application = FastAPI(title="pairwire relay", lifespan=lifespan)
    application.state.config = config
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.add_api_route("/health", health, methods=["GET"], response_model=HealthResponse)
    application.add_api_websocket_route("/ws", websocket_endpoint)
    return application


# ======================================================================
# Response Models
# ======================================================================


class HealthResponse(BaseModel):
    status: str
    connections: int
    waiting: int
    rooms: int
    invariant_violations: list[str] = []


# ======================================================================
# Endpoints
# ======================================================================


def health() -> dict[str, Any]:
    """Server health check with matchmaking counters."""
    snapshot = get_coordinator().snapshot()
    problems = snapshot["invariant_violations"]
    for problem in problems:
        logger.error(f"Invariant violation: {problem}")
    return {"status": "ok" if not problems else "degraded", **snapshot}


async def websocket_endpoint(websocket: WebSocket):
    """One client connection for its whole lifetime.

    Inbound frames are decoded and dispatched; binary frames and anything
    that isn't a JSON object are ignored. The connection is only torn down
    when the socket closes.
    """
    coordinator = get_coordinator()
    await websocket.accept()

    connection_id = uuid.uuid4().hex
    transport = WebSocketTransport(
        websocket.send_json,
        outbox_limit=_config.outbox_limit,
        name=connection_id,
    )
    coordinator.connect(connection_id, transport)
    transport.send(events.connected(connection_id))
    failed = False

    try:
        while True:
            try:
                frame = await asyncio.wait_for(websocket.receive(), timeout=_config.idle_timeout)
            except asyncio.TimeoutError:
                transport.send(events.ping())
                if not transport.is_open:
                    break
                continue

            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))

            raw = frame.get("text")
            if raw is None:
                logger.debug(f"Binary frame from {connection_id} ignored")
                continue

            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug(f"Non-JSON frame from {connection_id} ignored")
                continue

            coordinator.dispatch(connection_id, message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for {connection_id}: {e}", exc_info=True)
        failed = True
    finally:
        coordinator.disconnect(connection_id)
        try:
            await asyncio.wait_for(transport.drain(), timeout=DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.debug(f"Outbox for {connection_id} did not drain before close")
        if failed and websocket.application_state == WebSocketState.CONNECTED:
            await websocket.close(code=1011)


app = create_app()
