"""Instruction packet builders.

Each builder validates its arguments and returns an
:class:`InstructionPacket`; nothing here touches the bus.
"""

from __future__ import annotations

from ..errors import DynamixelDriverError
from ..models.packet import (
    BROADCAST_ID,
    MAX_SERVO_ID,
    Instruction,
    InstructionPacket,
)
from ..models.registers import check_address, check_width, pack_value


def check_servo_id(servo_id: int, allow_broadcast: bool = False) -> None:
    """Reject identifiers that cannot be addressed.

    Args:
        servo_id: Target identifier, 0-253.
        allow_broadcast: Also accept 254 (no reply will be sent).
    """
    if allow_broadcast and servo_id == BROADCAST_ID:
        return
    if not 0 <= servo_id <= MAX_SERVO_ID:
        if servo_id == BROADCAST_ID:
            raise DynamixelDriverError.invalid_argument(
                "Broadcast id 254 cannot be used for an operation that expects a reply"
            )
        raise DynamixelDriverError.invalid_argument(
            f"Servo id must be 0-{MAX_SERVO_ID}, got {servo_id}"
        )


def build_ping(servo_id: int) -> InstructionPacket:
    check_servo_id(servo_id)
    return InstructionPacket(servo_id, Instruction.PING)


def build_read(servo_id: int, address: int, width: int) -> InstructionPacket:
    """Build a READ_DATA packet asking for ``width`` bytes at ``address``."""
    check_servo_id(servo_id)
    check_address(address)
    check_width(width)
    return InstructionPacket(servo_id, Instruction.READ_DATA, bytes([address, width]))


def build_write(
    servo_id: int, address: int, value: int, width: int
) -> InstructionPacket:
    """Build a WRITE_DATA packet setting ``address`` to ``value``."""
    check_servo_id(servo_id)
    check_address(address)
    data = pack_value(value, width)
    return InstructionPacket(
        servo_id, Instruction.WRITE_DATA, bytes([address]) + data
    )


def build_reg_write(
    servo_id: int, address: int, value: int, width: int
) -> InstructionPacket:
    """Build a REG_WRITE packet; the actuator holds the value until ACTION."""
    check_servo_id(servo_id)
    check_address(address)
    data = pack_value(value, width)
    return InstructionPacket(
        servo_id, Instruction.REG_WRITE, bytes([address]) + data
    )


def build_action(servo_id: int = BROADCAST_ID) -> InstructionPacket:
    """Build an ACTION packet applying previously registered writes."""
    check_servo_id(servo_id, allow_broadcast=True)
    return InstructionPacket(servo_id, Instruction.ACTION)


def build_reset(servo_id: int) -> InstructionPacket:
    """Build a RESET packet restoring factory control table values."""
    check_servo_id(servo_id)
    return InstructionPacket(servo_id, Instruction.RESET)
