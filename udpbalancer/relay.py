"""The relay loop: receive, select a backend, forward.

Each datagram read from the listening socket is checked for the minimum
length, routed by the backend selector and sent unmodified to the chosen
backend from the same socket. Short datagrams and failed sends are logged
and dropped; the loop keeps running. A failing receive stops the loop.

Example:
    from udpbalancer import BackendSelector, UDPRelay, load_config, open_listener

    config = load_config("/etc/udp-balancer.conf")
    relay = UDPRelay(open_listener(config), BackendSelector(config))
    relay.run()  # returns only by raising ReceiveError
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from udpbalancer.address import Address, format_address
from udpbalancer.classifier import MIN_DATAGRAM_SIZE
from udpbalancer.errors import ReceiveError
from udpbalancer.selector import BackendSelector, Route

logger = logging.getLogger(__name__)

# Largest possible UDP payload plus headroom
BUFFER_SIZE = 65536


@runtime_checkable
class DatagramSocket(Protocol):
    """The subset of ``socket.socket`` the relay uses."""

    def recvfrom(self, bufsize: int) -> tuple[bytes, Any]:
        ...

    def sendto(self, data: bytes, address: tuple[str, int]) -> int:
        ...


class RelayState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class RelayStats:
    """Frozen snapshot of relay statistics.

    Attributes:
        datagrams_received: Datagrams read from the socket, including dropped ones.
        datagrams_forwarded: Datagrams sent in full to a backend.
        malformed_dropped: Datagrams shorter than the minimum size.
        send_failures: Sends that raised or sent fewer bytes than received.
        affinity_routed: Datagrams routed by GELF message id.
        round_robin_routed: Datagrams routed by the routing counter.
        forwarded_by_backend: Forwarded datagram count per ``host:port``.
    """

    datagrams_received: int = 0
    datagrams_forwarded: int = 0
    malformed_dropped: int = 0
    send_failures: int = 0
    affinity_routed: int = 0
    round_robin_routed: int = 0
    forwarded_by_backend: dict[str, int] = field(default_factory=dict)


class UDPRelay:
    """Relays datagrams from one socket to a pool of backends.

    Args:
        sock: Bound socket to receive on; forwarded datagrams are sent from
            it too, so backends see the relay's own address as the source.
        selector: Chooses the backend for each datagram.
        name: Label used in log messages, useful with several workers.
        buffer_size: Receive buffer size; larger datagrams are truncated by
            the operating system.
    """

    def __init__(
        self,
        sock: DatagramSocket,
        selector: BackendSelector,
        *,
        name: str = "relay",
        buffer_size: int = BUFFER_SIZE,
    ):
        if buffer_size < MIN_DATAGRAM_SIZE:
            raise ValueError(f"buffer_size must be >= {MIN_DATAGRAM_SIZE}, got {buffer_size}")

        self.name = name
        self._sock = sock
        self._selector = selector
        self._buffer_size = buffer_size
        self._state = RelayState.RUNNING

        self._received = 0
        self._forwarded = 0
        self._malformed = 0
        self._send_failures = 0
        self._routes: Counter[Route] = Counter()
        self._by_backend: Counter[str] = Counter()

        logger.debug(
            "[%s] UDPRelay initialized: backends=%s",
            name,
            ", ".join(str(backend) for backend in selector.backends),
        )

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def selector(self) -> BackendSelector:
        return self._selector

    @property
    def stats(self) -> RelayStats:
        """Return a frozen snapshot of current statistics."""
        return RelayStats(
            datagrams_received=self._received,
            datagrams_forwarded=self._forwarded,
            malformed_dropped=self._malformed,
            send_failures=self._send_failures,
            affinity_routed=self._routes[Route.AFFINITY],
            round_robin_routed=self._routes[Route.ROUND_ROBIN],
            forwarded_by_backend=dict(self._by_backend),
        )

    def handle_datagram(self, payload: bytes, sender: Any) -> Address | None:
        """Route and forward one received datagram.

        Args:
            payload: Datagram contents exactly as received.
            sender: Source address, used only in log messages.

        Returns:
            The backend the datagram was forwarded to, or None if it was
            dropped as malformed or the send failed.
        """
        self._received += 1

        # Length gate must precede classification, which reads bytes [0, 10)
        if len(payload) < MIN_DATAGRAM_SIZE:
            self._malformed += 1
            logger.warning("[%s] recvfrom(%s): bad packet (%d bytes)", self.name, format_address(sender), len(payload))
            return None

        backend, selection = self._selector.select(payload)
        self._routes[selection.route] += 1

        try:
            sent = self._sock.sendto(payload, backend.sockaddr)
        except OSError as exc:
            self._send_failures += 1
            logger.error("[%s] sendto(%s): %s (%d)", self.name, backend, exc.strerror or exc, exc.errno or 0)
            return None

        if sent != len(payload):
            self._send_failures += 1
            logger.error("[%s] sendto(%s): short send (%d of %d bytes)", self.name, backend, sent, len(payload))
            return None

        self._forwarded += 1
        self._by_backend[str(backend)] += 1
        logger.debug("[%s] %s -> %s (%s, %d bytes)", self.name, format_address(sender), backend, selection.route.value, sent)
        return backend

    def run(self) -> None:
        """Relay datagrams until receiving fails.

        Raises:
            ReceiveError: Always, once the socket reports a receive error.
                The relay is STOPPED afterwards.
            RuntimeError: If the relay has already stopped.
        """
        if self._state is RelayState.STOPPED:
            raise RuntimeError(f"[{self.name}] relay has stopped")

        logger.info("[%s] Relaying to %d backend(s)", self.name, len(self._selector.backends))

        while True:
            try:
                payload, sender = self._sock.recvfrom(self._buffer_size)
            except OSError as exc:
                self._state = RelayState.STOPPED
                logger.error(
                    "[%s] recvfrom(%s): %s (%d)",
                    self.name,
                    format_address(None),
                    exc.strerror or exc,
                    exc.errno or 0,
                )
                raise ReceiveError(f"[{self.name}] receive failed: {exc}") from exc

            self.handle_datagram(payload, sender)
