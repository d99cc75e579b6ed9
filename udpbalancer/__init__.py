"""udpbalancer: a round robin UDP relay with GELF chunk affinity.

Datagrams received on one socket are forwarded unmodified to a pool of
upstream addresses. Plain datagrams are spread in arrival order; chunks of
a chunked GELF message are pinned to one upstream by their message id so
the upstream can reassemble them.

Example:
    import udpbalancer

    udpbalancer.enable_console_logging(level="WARNING")
    config = udpbalancer.load_config("/etc/udp-balancer.conf")
    relay = udpbalancer.UDPRelay(
        udpbalancer.open_listener(config),
        udpbalancer.BackendSelector(config),
    )
    relay.run()
"""

import logging

__version__ = "0.1.0"

# Silent unless the application configures logging
logging.getLogger("udpbalancer").addHandler(logging.NullHandler())

from udpbalancer.address import Address, format_address, parse_address
from udpbalancer.classifier import GELF_CHUNK_MAGIC, MIN_DATAGRAM_SIZE, is_chunk_fragment, message_id
from udpbalancer.config import DEFAULT_CONFIG_PATH, RelayConfig, load_config, parse_config
from udpbalancer.errors import ConfigError, ReceiveError, SocketSetupError, UDPBalancerError
from udpbalancer.hashing import hash8
from udpbalancer.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
)
from udpbalancer.relay import RelayState, RelayStats, UDPRelay
from udpbalancer.selector import BackendSelector, Route, RoutingCounter, Selection, select_backend
from udpbalancer.sockets import open_listener

__all__ = [
    # Addresses
    "Address",
    "format_address",
    "parse_address",
    # Configuration
    "DEFAULT_CONFIG_PATH",
    "RelayConfig",
    "load_config",
    "parse_config",
    # Errors
    "ConfigError",
    "ReceiveError",
    "SocketSetupError",
    "UDPBalancerError",
    # Routing
    "BackendSelector",
    "GELF_CHUNK_MAGIC",
    "MIN_DATAGRAM_SIZE",
    "Route",
    "RoutingCounter",
    "Selection",
    "hash8",
    "is_chunk_fragment",
    "message_id",
    "select_backend",
    # Relay
    "RelayState",
    "RelayStats",
    "UDPRelay",
    "open_listener",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
]
