"""CRC-8 checksum used for GELF chunk affinity.

Polynomial 0x81, initial value 0, no reflection, no final XOR. The feedback
bit is tested after each shift, which matches the C relay this package
replaces bit for bit, so a message id maps to the same backend in both.
"""

from __future__ import annotations

POLYNOMIAL = 0x81


def hash8(data: bytes) -> int:
    """Compute the 8-bit checksum of ``data``.

    Args:
        data: Bytes to checksum. May be empty.

    Returns:
        Value in ``range(256)``. ``hash8(b"") == 0``.
    """
    crc = 0
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = (crc << 1) & 0xFF
            if crc & 0x80:
                crc ^= POLYNOMIAL
    return crc
