"""Frame encoder and streaming decoder for protocol 1.0.

Encoding is total: any well-formed packet turns into
``FF FF <id> <len> <instr|error> <params...> <checksum>``.

Decoding works on an accumulation buffer owned by the caller. Serial
reads arrive in arbitrary chunks, so :func:`decode_status` never assumes a
whole frame is present. It reports what it found and how many leading
bytes the caller should drop:

- ``FRAME``: a checksum-valid packet, ``consumed`` covers the whole frame.
- ``INCOMPLETE``: nothing to drop yet, append more bytes and call again.
- ``BAD_HEADER``: leading bytes are not a plausible frame start.
- ``MALFORMED``: a header with an impossible length byte.
- ``CHECKSUM_MISMATCH``: a complete frame whose checksum does not match.

Rejected frames consume a single byte so the next call can resynchronize
on a header that was hiding inside the rejected bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..errors import DynamixelDriverError, ErrorKind
from ..models.packet import (
    HEADER,
    MIN_LENGTH,
    Instruction,
    InstructionPacket,
    StatusPacket,
    is_valid_length,
)
from ..utils.checksum import checksum

# header(2) + id + length + instruction/error + checksum
MIN_FRAME_SIZE = 6


class DecodeStatus(Enum):
    FRAME = "frame"
    INCOMPLETE = "incomplete"
    BAD_HEADER = "bad_header"
    MALFORMED = "malformed"
    CHECKSUM_MISMATCH = "checksum_mismatch"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of one decode attempt over the front of a buffer."""

    status: DecodeStatus
    consumed: int = 0
    packet: StatusPacket | InstructionPacket | None = None

    @property
    def is_corrupt(self) -> bool:
        return self.status in (
            DecodeStatus.BAD_HEADER,
            DecodeStatus.MALFORMED,
            DecodeStatus.CHECKSUM_MISMATCH,
        )


NEED_MORE = DecodeResult(DecodeStatus.INCOMPLETE)


def _build(servo_id: int, code: int, params: bytes) -> bytes:
    body = bytes([servo_id, len(params) + 2, code]) + params
    return HEADER + body + bytes([checksum(body)])


def encode_instruction(packet: InstructionPacket) -> bytes:
    """Serialize an instruction packet into its wire bytes."""
    return _build(packet.servo_id, packet.instruction, packet.params)


def encode_status(packet: StatusPacket) -> bytes:
    """Serialize a status packet into its wire bytes.

    The host never sends these; simulated actuators do.
    """
    return _build(packet.servo_id, packet.error, packet.params)


def _scan(buffer: bytes | bytearray) -> DecodeResult | tuple[int, int, bytes]:
    start = buffer.find(HEADER)
    if start == -1:
        # A trailing 0xFF may be the first half of the next header.
        keep = 1 if buffer[-1:] == b"\xFF" else 0
        discard = len(buffer) - keep
        if discard == 0:
            return NEED_MORE
        return DecodeResult(DecodeStatus.BAD_HEADER, discard)
    if start > 0:
        return DecodeResult(DecodeStatus.BAD_HEADER, start)

    if len(buffer) < 4:
        return NEED_MORE
    servo_id, length = buffer[2], buffer[3]
    if servo_id == 0xFF:
        # FF FF FF: the real header starts one byte later
        return DecodeResult(DecodeStatus.BAD_HEADER, 1)
    if length < MIN_LENGTH:
        return DecodeResult(DecodeStatus.MALFORMED, 1)

    total = length + 4
    if len(buffer) < total:
        return NEED_MORE
    if checksum(buffer[2 : total - 1]) != buffer[total - 1]:
        return DecodeResult(DecodeStatus.CHECKSUM_MISMATCH, 1)
    return servo_id, total, bytes(buffer[4 : total - 1])


def decode_status(buffer: bytes | bytearray) -> DecodeResult:
    """Try to decode one status packet from the front of ``buffer``.

    The buffer is not modified; drop ``result.consumed`` bytes from it
    before the next call.
    """
    scanned = _scan(buffer)
    if isinstance(scanned, DecodeResult):
        return scanned
    servo_id, total, body = scanned
    packet = StatusPacket(servo_id=servo_id, error=body[0], params=body[1:])
    return DecodeResult(DecodeStatus.FRAME, total, packet)


def decode_instruction(buffer: bytes | bytearray) -> DecodeResult:
    """Try to decode one instruction packet from the front of ``buffer``.

    Used on the actuator side of a bus, e.g. by simulators. Unknown
    opcodes are reported as ``MALFORMED``.
    """
    scanned = _scan(buffer)
    if isinstance(scanned, DecodeResult):
        return scanned
    servo_id, total, body = scanned
    try:
        instruction = Instruction(body[0])
    except ValueError:
        return DecodeResult(DecodeStatus.MALFORMED, 1)
    packet = InstructionPacket(
        servo_id=servo_id, instruction=instruction, params=body[1:]
    )
    return DecodeResult(DecodeStatus.FRAME, total, packet)


def parse_status(data: bytes) -> StatusPacket:
    """Parse exactly one complete status frame.

    Raises:
        DynamixelDriverError: ``MALFORMED_FRAME`` if the header or length is
            wrong, ``CHECKSUM_MISMATCH`` if the checksum does not match.
    """
    if len(data) < MIN_FRAME_SIZE or data[:2] != HEADER:
        raise DynamixelDriverError(
            ErrorKind.MALFORMED_FRAME,
            f"Not a status frame: {bytes(data).hex(' ') or '(empty)'}",
        )
    params = bytes(data[5:-1])
    if not is_valid_length(data[3], len(params)):
        raise DynamixelDriverError(
            ErrorKind.MALFORMED_FRAME,
            f"Length byte {data[3]} does not match {len(params)} parameter(s)",
        )
    expected = checksum(data[2:-1])
    if expected != data[-1]:
        raise DynamixelDriverError(
            ErrorKind.CHECKSUM_MISMATCH,
            f"Checksum 0x{data[-1]:02X} does not match computed 0x{expected:02X}",
            servo_id=data[2],
        )
    return StatusPacket(servo_id=data[2], error=data[4], params=params)
