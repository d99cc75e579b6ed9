"""Exceptions raised by udpbalancer.

Startup problems (configuration, socket setup) and the single fatal runtime
condition (the listening socket failing to receive) are raised. Per-packet
problems are logged by the relay and never raised.
"""

from __future__ import annotations


class UDPBalancerError(Exception):
    """Base class for all udpbalancer errors."""


class ConfigError(UDPBalancerError):
    """Invalid or incomplete configuration.

    Attributes:
        line: 1-based line number of the offending directive, if known.
        source: Name of the configuration source (usually a file path).
    """

    def __init__(self, message: str, *, line: int | None = None, source: str | None = None):
        self.line = line
        self.source = source
        if line is not None:
            message = f"{message} at line {line}"
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class SocketSetupError(UDPBalancerError):
    """The listening socket could not be created or bound."""


class ReceiveError(UDPBalancerError):
    """Receiving from the listening socket failed; the relay loop stopped."""
