"""Listening socket setup.

Creates the IPv4 UDP socket the relay receives on and sends from, applies
buffer size overrides and binds it. Failing to apply a buffer size is only a
warning; failing to create or bind the socket is fatal.
"""

from __future__ import annotations

import logging
import socket

from udpbalancer.config import RelayConfig
from udpbalancer.errors import SocketSetupError

logger = logging.getLogger(__name__)


def _apply_buffer(sock: socket.socket, option: int, label: str, size: int | None) -> None:
    if size is None:
        return
    try:
        sock.setsockopt(socket.SOL_SOCKET, option, size)
    except OSError as exc:
        logger.warning("setsockopt(%s, %d): %s (%d)", label, size, exc.strerror, exc.errno or 0)
        return
    logger.debug("%s set to %d (kernel reports %d)", label, size, sock.getsockopt(socket.SOL_SOCKET, option))


def open_listener(config: RelayConfig, *, reuse_port: bool = False) -> socket.socket:
    """Create and bind the relay socket described by ``config``.

    Args:
        config: Validated relay configuration.
        reuse_port: Set SO_REUSEPORT so several workers can bind the same
            listen address and let the kernel spread datagrams among them.

    Returns:
        A bound, blocking UDP socket.

    Raises:
        SocketSetupError: If the socket cannot be created, SO_REUSEPORT is
            unavailable, or binding fails.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        raise SocketSetupError(f"socket(): {exc.strerror} ({exc.errno})") from exc

    try:
        _apply_buffer(sock, socket.SO_SNDBUF, "SO_SNDBUF", config.send_buffer)
        _apply_buffer(sock, socket.SO_RCVBUF, "SO_RCVBUF", config.recv_buffer)

        if reuse_port:
            if not hasattr(socket, "SO_REUSEPORT"):
                raise SocketSetupError("SO_REUSEPORT is not supported on this platform")
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError as exc:
                raise SocketSetupError(f"setsockopt(SO_REUSEPORT): {exc.strerror} ({exc.errno})") from exc

        try:
            sock.bind(config.listen.sockaddr)
        except OSError as exc:
            raise SocketSetupError(f"bind({config.listen}): {exc.strerror} ({exc.errno})") from exc
    except SocketSetupError:
        sock.close()
        raise

    logger.info("Listening on %s", config.listen)
    return sock
