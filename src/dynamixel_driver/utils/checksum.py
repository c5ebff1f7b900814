"""Checksum used by Dynamixel protocol 1.0 frames."""

from __future__ import annotations


def checksum(data: bytes) -> int:
    """Compute the 8-bit inverted sum of ``data``.

    ``data`` covers every byte after the ``0xFF 0xFF`` header up to the
    last parameter: id, length, instruction (or error) and parameters.
    """
    return ~sum(data) & 0xFF
