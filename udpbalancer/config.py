"""Relay configuration and its line-oriented text format.

A configuration file holds one directive per line; tokens are separated by
whitespace and blank lines are ignored::

    listen 0.0.0.0:12201
    upstream 10.0.0.1:12201
    upstream 10.0.0.2:12201
    handle-gelf
    recv-buffer 0x1000000

Directives:
    listen <ipv4>:<port>      Address to receive on (required).
    upstream <ipv4>:<port>    Backend to relay to (at least one, ordered).
    handle-gelf               Pin GELF chunks of one message to one backend.
    send-buffer <uint>        Override the socket send buffer size.
    recv-buffer <uint>        Override the socket receive buffer size.

Buffer sizes accept decimal, ``0x`` hexadecimal and leading-``0`` octal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from udpbalancer.address import Address, parse_address
from udpbalancer.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/udp-balancer.conf")

# setsockopt() takes a C int
MAX_BUFFER_SIZE = 2**31 - 1


@dataclass(frozen=True)
class RelayConfig:
    """Validated relay configuration.

    Attributes:
        listen: Address the relay binds and receives on.
        upstreams: Backends in round-robin order. Never empty.
        handle_gelf: Route GELF chunk fragments by message id.
        send_buffer: SO_SNDBUF override in bytes, or None for the OS default.
        recv_buffer: SO_RCVBUF override in bytes, or None for the OS default.
    """

    listen: Address | None
    upstreams: tuple[Address, ...]
    handle_gelf: bool = False
    send_buffer: int | None = None
    recv_buffer: int | None = None

    def __post_init__(self):
        if self.listen is None:
            raise ConfigError("No listen address defined")
        if not self.upstreams:
            raise ConfigError("No upstream addresses defined")
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "upstreams", tuple(self.upstreams))
        for name in ("send_buffer", "recv_buffer"):
            value = getattr(self, name)
            if value is not None and not 0 < value <= MAX_BUFFER_SIZE:
                raise ConfigError(f"{name} must be in 1-{MAX_BUFFER_SIZE}, got {value}")


def _parse_uint(token: str) -> int:
    """Parse an unsigned integer the way strtoul(..., 0) does."""
    # strtoul accepts an explicit plus sign
    if token.startswith("+"):
        token = token[1:]
    lowered = token.lower()
    if lowered.startswith("0x"):
        digits, base = token[2:], 16
    elif len(token) > 1 and token.startswith("0"):
        digits, base = token[1:], 8
    else:
        digits, base = token, 10
    if not digits or not digits.isascii() or not digits.isalnum():
        raise ValueError(f"invalid unsigned integer {token!r}")
    return int(digits, base)


def _parse_buffer(args: list[str], label: str, line: int, source: str | None) -> int:
    error = ConfigError(f"Invalid {label} buffer value", line=line, source=source)
    if len(args) != 1:
        raise error
    try:
        value = _parse_uint(args[0])
    except ValueError:
        raise error from None
    if not 0 < value <= MAX_BUFFER_SIZE:
        raise error
    return value


def _parse_directive_address(args: list[str], keyword: str, line: int, source: str | None) -> Address:
    error = ConfigError(f"Invalid {keyword} directive", line=line, source=source)
    if len(args) != 1:
        raise error
    try:
        return parse_address(args[0])
    except ValueError:
        raise error from None


def parse_config(text: str, source: str | None = None) -> RelayConfig:
    """Parse configuration text into a validated RelayConfig.

    Args:
        text: Configuration file contents.
        source: Name used to prefix error messages, typically the file path.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: On an unknown keyword, a malformed directive, or when
            the listen address or all upstreams are missing.
    """
    listen: Address | None = None
    upstreams: list[Address] = []
    handle_gelf = False
    send_buffer: int | None = None
    recv_buffer: int | None = None

    for line_number, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not tokens:
            continue

        keyword, args = tokens[0], tokens[1:]

        if keyword == "listen":
            listen = _parse_directive_address(args, keyword, line_number, source)
        elif keyword == "upstream":
            upstreams.append(_parse_directive_address(args, keyword, line_number, source))
        elif keyword == "handle-gelf":
            if args:
                raise ConfigError("handle-gelf takes no arguments", line=line_number, source=source)
            handle_gelf = True
        elif keyword == "send-buffer":
            send_buffer = _parse_buffer(args, "send", line_number, source)
        elif keyword == "recv-buffer":
            recv_buffer = _parse_buffer(args, "recv", line_number, source)
        else:
            raise ConfigError(f'Unknown keyword "{keyword}"', line=line_number, source=source)

    config = RelayConfig(
        listen=listen,
        upstreams=tuple(upstreams),
        handle_gelf=handle_gelf,
        send_buffer=send_buffer,
        recv_buffer=recv_buffer,
    )
    logger.debug(
        "Parsed configuration from %s: listen=%s, upstreams=%d, handle_gelf=%s",
        source or "<string>",
        config.listen,
        len(config.upstreams),
        config.handle_gelf,
    )
    return config


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> RelayConfig:
    """Read and parse a configuration file.

    Raises:
        ConfigError: If the file cannot be read or its contents are invalid.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f'Unable to open file "{path}": {exc}') from exc
    return parse_config(text, source=str(path))
