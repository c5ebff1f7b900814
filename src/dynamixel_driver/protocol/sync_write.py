"""SYNC_WRITE packet construction.

One broadcast instruction updates the same register on several actuators::

    params = [address, width, id_1, value_1..., id_2, value_2..., ...]

Entries keep the caller's order. Each actuator applies its own slice
as soon as the frame arrives; no reply is sent.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import NamedTuple, Union

from ..errors import DynamixelDriverError
from ..models.packet import BROADCAST_ID, Instruction, InstructionPacket
from ..models.registers import check_address, check_width, pack_value
from .instructions import check_servo_id

MAX_LENGTH = 0xFF


class SyncCommand(NamedTuple):
    """A single (servo id, value) entry of a sync write."""

    servo_id: int
    value: int


SyncValues = Union[Mapping[int, int], Iterable[SyncCommand], Iterable[tuple[int, int]]]


def to_sync_commands(values: SyncValues) -> list[SyncCommand]:
    """Normalize a mapping or iterable of pairs into ordered commands."""
    if isinstance(values, Mapping):
        return [SyncCommand(servo_id, value) for servo_id, value in values.items()]
    return [SyncCommand(*entry) for entry in values]


def build_sync_write(address: int, width: int, values: SyncValues) -> InstructionPacket:
    """Build a SYNC_WRITE packet for several actuators.

    Args:
        address: Register address written on every actuator.
        width: Register width in bytes (1 or 2).
        values: Ordered ``{servo_id: value}`` mapping, or an iterable of
            ``(servo_id, value)`` pairs.

    Raises:
        DynamixelDriverError: ``INVALID_ARGUMENT`` for an empty set, a
            duplicate or unaddressable id, a value that does not fit the
            width, or a packet too long for the length byte.
    """
    check_address(address)
    check_width(width)
    entries = to_sync_commands(values)
    if not entries:
        raise DynamixelDriverError.invalid_argument(
            "Sync write needs at least one servo"
        )

    params = bytearray([address, width])
    seen: set[int] = set()
    for servo_id, value in entries:
        check_servo_id(servo_id)
        if servo_id in seen:
            raise DynamixelDriverError.invalid_argument(
                f"Servo id {servo_id} appears more than once in sync write"
            )
        seen.add(servo_id)
        params.append(servo_id)
        params += pack_value(value, width)

    if len(params) + 2 > MAX_LENGTH:
        raise DynamixelDriverError.invalid_argument(
            f"Sync write for {len(entries)} servos exceeds the {MAX_LENGTH}-byte frame length"
        )
    return InstructionPacket(BROADCAST_ID, Instruction.SYNC_WRITE, bytes(params))
