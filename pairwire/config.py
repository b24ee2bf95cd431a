"""
pairwire/config.py - Local configuration management

Reads config from a platform-appropriate config directory:
  - macOS/Linux: ~/.pairwire/config.toml
  - Windows: %APPDATA%\\pairwire\\config.toml

Example:
    [server]
    host = "0.0.0.0"
    port = 3000
    cors_origins = ["http://localhost:5173"]
    idle_timeout = 30
    outbox_limit = 256
    log_level = "INFO"

    [client]
    server = "ws://localhost:3000/ws"
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================


def _get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "pairwire"
    return Path.home() / ".pairwire"


CONFIG_DIR = _get_config_dir()
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_PORT = 3000
# The browser client's dev server
DEFAULT_CORS_ORIGINS = ("http://localhost:5173",)
DEFAULT_SERVER_URL = f"ws://localhost:{DEFAULT_PORT}/ws"


# ============================================================================
# Data Types
# ============================================================================

@dataclass
class ServerConfig:
    """Relay server settings."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    idle_timeout: float = 30.0  # seconds of client silence before a ping
    outbox_limit: int = 0  # queued events per connection, 0 = unbounded
    log_level: str = "INFO"


@dataclass
class ClientConfig:
    """Settings for `pairwire probe` and PeerClient."""

    server: str = DEFAULT_SERVER_URL


@dataclass
class PairwireConfig:
    """Top-level configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


# ============================================================================
# Parsing
# ============================================================================

def _parse_server_config(data: dict) -> ServerConfig:
    """Parse the [server] section. Bad values fall back to defaults."""
    defaults = ServerConfig()

    origins = data.get("cors_origins", defaults.cors_origins)
    if isinstance(origins, str):
        origins = (origins,)
    elif not isinstance(origins, (list, tuple)):
        logger.warning(f"Ignoring cors_origins={origins!r}: expected a list")
        origins = defaults.cors_origins

    def _number(key: str, kind: type, default):
        value = data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"Ignoring {key}={value!r}: expected a number")
            return default
        return kind(value)

    return ServerConfig(
        host=str(data.get("host", defaults.host)),
        port=_number("port", int, defaults.port),
        cors_origins=tuple(str(o) for o in origins),
        idle_timeout=_number("idle_timeout", float, defaults.idle_timeout),
        outbox_limit=max(0, _number("outbox_limit", int, defaults.outbox_limit)),
        log_level=str(data.get("log_level", defaults.log_level)).upper(),
    )


def load_config(path: Path | None = None) -> PairwireConfig:
    """
    Read config from TOML file.

    Args:
        path: Override config file path (default: ~/.pairwire/config.toml)

    Returns:
        PairwireConfig. Missing file or bad TOML returns defaults.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        return PairwireConfig()

    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return PairwireConfig()

    server = ServerConfig()
    if isinstance(raw.get("server"), dict):
        server = _parse_server_config(raw["server"])

    client = ClientConfig()
    client_data = raw.get("client")
    if isinstance(client_data, dict) and client_data.get("server"):
        client = ClientConfig(server=str(client_data["server"]))

    return PairwireConfig(server=server, client=client)
