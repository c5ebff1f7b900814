"""Wire-level packet model for Dynamixel protocol 1.0.

Instruction (host -> actuator) and status (actuator -> host) frames share
one layout::

    +-----------+----+--------+----------------------+------------+----------+
    | Header    | ID | Length | Instruction / Error  | Parameters | Checksum |
    | 0xFF 0xFF | 1B | 1B     | 1 byte               | N bytes    | 1 byte   |
    +-----------+----+--------+----------------------+------------+----------+

- Length: N + 2
- Checksum: ~(ID + Length + Instruction/Error + sum(Parameters)) & 0xFF
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag

from ..utils.checksum import checksum

HEADER = b"\xFF\xFF"
MAX_SERVO_ID = 0xFD
BROADCAST_ID = 0xFE
MIN_LENGTH = 2


class Instruction(IntEnum):
    """Instruction opcodes understood by protocol 1.0 firmware."""

    PING = 0x01
    READ_DATA = 0x02
    WRITE_DATA = 0x03
    REG_WRITE = 0x04
    ACTION = 0x05
    RESET = 0x06
    SYNC_WRITE = 0x83


class StatusError(IntFlag):
    """Fault bits reported in the error byte of a status packet."""

    INPUT_VOLTAGE = 0x01
    ANGLE_LIMIT = 0x02
    OVERHEATING = 0x04
    RANGE = 0x08
    CHECKSUM = 0x10
    OVERLOAD = 0x20
    INSTRUCTION = 0x40

    def describe(self) -> list[str]:
        """Names of the fault bits set in this value, lowest bit first."""
        return [
            flag.name.lower() + "_error"
            for flag in StatusError
            if flag in self
        ]


def is_valid_length(declared: int, param_count: int) -> bool:
    """Return True if a declared length byte matches the parameter count."""
    return declared >= MIN_LENGTH and declared == param_count + 2


@dataclass(frozen=True)
class InstructionPacket:
    """A host-to-actuator command frame."""

    servo_id: int
    instruction: Instruction
    params: bytes = b""

    @property
    def length(self) -> int:
        return len(self.params) + 2

    @property
    def checksum(self) -> int:
        return checksum(
            bytes([self.servo_id, self.length, self.instruction]) + self.params
        )

    @property
    def is_broadcast(self) -> bool:
        return self.servo_id == BROADCAST_ID

    def __repr__(self) -> str:
        return (
            f"InstructionPacket(id={self.servo_id}, "
            f"instruction={Instruction(self.instruction).name}, "
            f"params={self.params.hex(' ') if self.params else '(empty)'})"
        )


@dataclass(frozen=True)
class StatusPacket:
    """An actuator-to-host reply frame."""

    servo_id: int
    error: int = 0
    params: bytes = b""

    @property
    def length(self) -> int:
        return len(self.params) + 2

    @property
    def checksum(self) -> int:
        return checksum(bytes([self.servo_id, self.length, self.error]) + self.params)

    @property
    def fault(self) -> StatusError:
        return StatusError(self.error & 0x7F)

    def __repr__(self) -> str:
        return (
            f"StatusPacket(id={self.servo_id}, error=0x{self.error:02X}, "
            f"params={self.params.hex(' ') if self.params else '(empty)'})"
        )
