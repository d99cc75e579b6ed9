"""Recognise GELF chunk fragments.

A chunked GELF datagram starts with the two magic bytes ``1e 0f`` followed
by an 8-byte message id, a sequence number and a sequence count. Only the
magic and the message id are ever read here.
"""

from __future__ import annotations

GELF_CHUNK_MAGIC = b"\x1e\x0f"
MESSAGE_ID_OFFSET = len(GELF_CHUNK_MAGIC)
MESSAGE_ID_SIZE = 8

# Shorter datagrams are dropped before classification. Covers magic,
# message id, sequence number and sequence count.
MIN_DATAGRAM_SIZE = 12


def is_chunk_fragment(payload: bytes, handle_gelf: bool) -> bool:
    """Return True if ``payload`` is a GELF chunk and affinity is enabled."""
    return handle_gelf and payload[:MESSAGE_ID_OFFSET] == GELF_CHUNK_MAGIC


def message_id(payload: bytes) -> bytes:
    """The 8-byte message id of a chunk fragment."""
    return payload[MESSAGE_ID_OFFSET : MESSAGE_ID_OFFSET + MESSAGE_ID_SIZE]
