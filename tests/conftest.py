"""
Shared pytest fixtures for udp-balancer tests.
"""

import logging

import pytest

from udpbalancer.address import Address
from udpbalancer.config import RelayConfig


class FakeSocket:
    """In-memory stand-in for a bound UDP socket.

    ``recvfrom`` hands out queued ``(payload, sender)`` pairs and raises
    ``OSError`` once the queue is empty, which ends a relay loop. ``sendto``
    records every send; ``send_results`` can script short sends or errors.
    """

    def __init__(self, incoming=None, send_results=None):
        self.incoming = list(incoming or [])
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.send_results = list(send_results or [])
        self.recv_error = OSError(9, "Bad file descriptor")

    def recvfrom(self, bufsize):
        if not self.incoming:
            raise self.recv_error
        payload, sender = self.incoming.pop(0)
        return payload[:bufsize], sender

    def sendto(self, data, address):
        result = self.send_results.pop(0) if self.send_results else None
        if isinstance(result, BaseException):
            raise result
        self.sent.append((bytes(data), address))
        return len(data) if result is None else result


@pytest.fixture
def backends() -> tuple[Address, ...]:
    return (
        Address("10.0.0.1", 12201),
        Address("10.0.0.2", 12201),
        Address("10.0.0.3", 12201),
    )


@pytest.fixture
def config(backends) -> RelayConfig:
    return RelayConfig(listen=Address("127.0.0.1", 12201), upstreams=backends)


@pytest.fixture
def gelf_config(backends) -> RelayConfig:
    return RelayConfig(listen=Address("127.0.0.1", 12201), upstreams=backends, handle_gelf=True)


@pytest.fixture
def fake_socket_factory():
    return FakeSocket


@pytest.fixture(autouse=True)
def reset_udpbalancer_logging():
    """Reset the package logger before and after each test.

    Leaves only a NullHandler and an inherited level so log capture via
    caplog works and no handler leaks between tests.
    """
    logger = logging.getLogger("udpbalancer")

    def _reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()
