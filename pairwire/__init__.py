"""
pairwire - Anonymous one-to-one peer matchmaking

Clients connect to the relay, get paired with a stranger, and exchange
the negotiation messages they need to open a direct connection.
"""

__version__ = "0.1.0"

from .config import (
    ClientConfig,
    PairwireConfig,
    ServerConfig,
    load_config,
)

__all__ = [
    "__version__",
    "ClientConfig",
    "PairwireConfig",
    "ServerConfig",
    "load_config",
]
