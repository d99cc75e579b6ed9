"""IPv4 endpoint addresses for the listener and the upstream backends."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass

MAX_PORT = 65535
UNKNOWN_ADDRESS = "<unknown>"


@dataclass(frozen=True)
class Address:
    """An IPv4 address and UDP port.

    Attributes:
        host: Dotted-quad IPv4 address.
        port: Port number, 0-65535.
    """

    host: str
    port: int

    def __post_init__(self):
        try:
            ipaddress.IPv4Address(self.host)
        except ValueError:
            raise ValueError(f"host must be an IPv4 address, got {self.host!r}") from None
        if not 0 <= self.port <= MAX_PORT:
            raise ValueError(f"port must be in 0-{MAX_PORT}, got {self.port}")

    @property
    def sockaddr(self) -> tuple[str, int]:
        """The ``(host, port)`` tuple accepted by the socket module."""
        return (self.host, self.port)

    def __str__(self) -> str:
        return format_address(self.sockaddr)


def parse_address(text: str) -> Address:
    """Parse ``<ipv4>:<port>`` notation.

    Raises:
        ValueError: If the text is not a valid IPv4 address followed by a
            decimal port no greater than 65535.
    """
    host, sep, port = text.partition(":")
    if not sep or not host or not port:
        raise ValueError(f"expected <ipv4>:<port>, got {text!r}")
    if not port.isascii() or not port.isdigit():
        raise ValueError(f"invalid port in {text!r}")
    return Address(host, int(port))


def format_address(sockaddr: tuple[str, int] | Address | None) -> str:
    """Render a socket address as ``host:port``.

    ``None`` renders as ``<unknown>``, used when a failed receive produced no
    sender.
    """
    if sockaddr is None:
        return UNKNOWN_ADDRESS
    if isinstance(sockaddr, Address):
        sockaddr = sockaddr.sockaddr
    host, port = sockaddr[0], sockaddr[1]
    return f"{host}:{port}"
