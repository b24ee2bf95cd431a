#!/usr/bin/env python3
"""
pairwire/cli.py - Command line interface for pairwire

Usage:
    pairwire serve [--host HOST] [--port PORT] [--cors-origin ORIGIN ...]
    pairwire probe [--server URL] [--timeout SECONDS]
    pairwire status [--server URL]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pairwire.config import ServerConfig, load_config

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _server_config(args) -> ServerConfig:
    """Config file settings with command line overrides applied."""
    cfg = load_config(args.config).server
    if args.host is not None:
        cfg.host = args.host
    if args.port is not None:
        cfg.port = args.port
    if args.cors_origin:
        cfg.cors_origins = tuple(args.cors_origin)
    if args.idle_timeout is not None:
        cfg.idle_timeout = args.idle_timeout
    if args.outbox_limit is not None:
        cfg.outbox_limit = max(0, args.outbox_limit)
    if args.log_level is not None:
        cfg.log_level = args.log_level.upper()
    return cfg


def cmd_serve(args):
    """Start the relay server."""
    try:
        import uvicorn
    except ImportError:
        logger.error("Serving requires extra dependencies: pip install pairwire[server]")
        return 1

    from relay.server import create_app

    cfg = _server_config(args)
    logging.getLogger().setLevel(cfg.log_level)
    app = create_app(cfg)

    logger.info(f"Starting relay server on {cfg.host}:{cfg.port}")
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())
    return 0


def cmd_probe(args):
    """Connect, join matchmaking and report the room we land in."""
    from pairwire.client import PeerClient, RelayClosedError

    url = args.server or load_config(args.config).client.server

    async def _probe() -> int:
        async with PeerClient(url) as peer:
            logger.info(f"Connected as {peer.connection_id}, looking for a partner...")
            await peer.join()
            started = await peer.wait_for("chat_started", timeout=args.timeout)
            role = "initiator" if peer.is_initiator(started) else "responder"
            logger.info(f"Chat started in {started['room']} as {role}")

            if args.hold:
                logger.info("Holding the room open (Ctrl-C to leave)...")
                await peer.wait_for("peer_disconnected")
                logger.info("Peer disconnected")
        return 0

    try:
        return asyncio.run(_probe())
    except KeyboardInterrupt:
        logger.info("\nCancelled.")
        return 130
    except asyncio.TimeoutError:
        logger.error(f"No partner within {args.timeout}s")
        return 1
    except RelayClosedError as e:
        logger.error(f"Relay closed the connection: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cannot reach relay server at {url}: {e}")
        return 1


def cmd_status(args):
    """Print the relay's /health counters."""
    import urllib.error
    import urllib.request

    url = args.server or load_config(args.config).client.server
    base = url.replace("ws://", "http://").replace("wss://", "https://")
    if base.endswith("/ws"):
        base = base[: -len("/ws")]

    try:
        with urllib.request.urlopen(f"{base.rstrip('/')}/health", timeout=5) as resp:
            data = json.loads(resp.read())
    except (urllib.error.URLError, OSError) as e:
        logger.error(f"Cannot reach relay server at {base}: {e}")
        return 1

    print(f"\n   Status:      {data['status']}")
    print(f"   Connections: {data['connections']}")
    print(f"   Waiting:     {data['waiting']}")
    print(f"   Rooms:       {data['rooms']}")
    for problem in data.get("invariant_violations", []):
        print(f"   ! {problem}")
    print()
    return 0 if data["status"] == "ok" else 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="pairwire",
        description="Anonymous one-to-one matchmaking and signaling relay",
    )
    parser.add_argument("--config", type=Path, default=None, help="Config file (default: ~/.pairwire/config.toml)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the relay server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", "-p", type=int, default=None, help="Server port (default: 3000)")
    serve_parser.add_argument("--cors-origin", action="append", default=None, help="Allowed browser origin (repeatable)")
    serve_parser.add_argument("--idle-timeout", type=float, default=None, help="Seconds of silence before a ping (default: 30)")
    serve_parser.add_argument("--outbox-limit", type=int, default=None, help="Max queued events per connection (default: unbounded)")
    serve_parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    serve_parser.set_defaults(func=cmd_serve)

    # probe command
    probe_parser = subparsers.add_parser("probe", help="Join matchmaking and report the room")
    probe_parser.add_argument("--server", default=None, help="Relay WebSocket URL (e.g. ws://localhost:3000/ws)")
    probe_parser.add_argument("--timeout", type=float, default=60.0, help="Seconds to wait for a partner (default: 60)")
    probe_parser.add_argument("--hold", action="store_true", help="Stay in the room until the peer leaves")
    probe_parser.set_defaults(func=cmd_probe)

    # status command
    status_parser = subparsers.add_parser("status", help="Show relay health counters")
    status_parser.add_argument("--server", default=None, help="Relay URL (ws:// or http://)")
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
