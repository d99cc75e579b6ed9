"""Backend selection: GELF chunk affinity and round robin.

Chunk fragments are routed by a checksum of their message id so that every
fragment of one message reaches the same backend, which reassembles it.
Everything else is spread over the backends in arrival order using a
routing counter that the relay owns and passes in.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from udpbalancer.address import Address
from udpbalancer.classifier import is_chunk_fragment, message_id
from udpbalancer.config import RelayConfig
from udpbalancer.hashing import hash8

COUNTER_MODULUS = 2**64


class Route(Enum):
    """How a datagram's backend was chosen."""

    AFFINITY = "affinity"
    ROUND_ROBIN = "round_robin"


class RoutingCounter:
    """Round-robin sequence number shared by every relay worker.

    Starts at zero and wraps at 2**64. Increments are serialised with a lock
    so that workers on separate threads never lose or repeat a value.
    """

    def __init__(self, start: int = 0):
        self._value = start % COUNTER_MODULUS
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        """The value the next round-robin datagram will use."""
        return self._value

    def next(self) -> int:
        """Return the current value and advance by one."""
        with self._lock:
            current = self._value
            self._value = (current + 1) % COUNTER_MODULUS
            return current


@dataclass(frozen=True)
class Selection:
    """Outcome of a routing decision.

    Attributes:
        index: Position of the chosen backend.
        route: Whether affinity or round robin picked it.
    """

    index: int
    route: Route


def select_backend(
    payload: bytes,
    backends: Sequence[Address],
    counter: RoutingCounter,
    *,
    handle_gelf: bool,
) -> Selection:
    """Pick the backend for one datagram.

    The payload must already have passed the relay's minimum length check.
    The counter advances only when round robin is used.

    Args:
        payload: Received datagram.
        backends: Backend pool; order defines the round-robin sequence.
        counter: Routing counter owned by the relay.
        handle_gelf: Whether chunk fragments get affinity routing.

    Raises:
        ValueError: If ``backends`` is empty.
    """
    if not backends:
        raise ValueError("backends must not be empty")

    if is_chunk_fragment(payload, handle_gelf):
        return Selection(hash8(message_id(payload)) % len(backends), Route.AFFINITY)

    return Selection(counter.next() % len(backends), Route.ROUND_ROBIN)


class BackendSelector:
    """Binds a configuration's backend pool and a routing counter together.

    Args:
        config: Relay configuration supplying upstreams and the GELF flag.
        counter: Counter to advance; pass one instance to every worker that
            should share a single round-robin sequence.
    """

    def __init__(self, config: RelayConfig, counter: RoutingCounter | None = None):
        self._backends = config.upstreams
        self._handle_gelf = config.handle_gelf
        self._counter = counter if counter is not None else RoutingCounter()

    @property
    def backends(self) -> tuple[Address, ...]:
        return self._backends

    @property
    def counter(self) -> RoutingCounter:
        return self._counter

    def select(self, payload: bytes) -> tuple[Address, Selection]:
        """Return the destination backend and the selection behind it."""
        selection = select_backend(
            payload,
            self._backends,
            self._counter,
            handle_gelf=self._handle_gelf,
        )
        return self._backends[selection.index], selection
