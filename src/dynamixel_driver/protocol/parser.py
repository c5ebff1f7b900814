"""Interpretation of status packets and raw register values."""

from __future__ import annotations

from ..errors import DynamixelDriverError, ErrorKind
from ..models.packet import StatusPacket
from ..models.registers import unpack_value

# AX series: 0-1023 spans 0-300 degrees
POSITION_RESOLUTION = 1023
POSITION_RANGE_DEGREES = 300.0


def raise_for_fault(status: StatusPacket) -> None:
    """Raise ``ACTUATOR_FAULT`` if the status packet carries error bits."""
    if status.error:
        raise DynamixelDriverError.actuator_fault(status.servo_id, status.error)


def parse_register_value(status: StatusPacket, width: int) -> int:
    """Decode the little-endian value returned by a READ_DATA request."""
    if len(status.params) != width:
        raise DynamixelDriverError(
            ErrorKind.MALFORMED_FRAME,
            f"Servo {status.servo_id} returned {len(status.params)} byte(s), "
            f"expected {width}",
            servo_id=status.servo_id,
        )
    return unpack_value(status.params, width)


def raw_to_degrees(raw: int) -> float:
    return raw * POSITION_RANGE_DEGREES / POSITION_RESOLUTION


def degrees_to_raw(degrees: float) -> int:
    """Convert an angle to a goal position, rejecting angles out of range."""
    if not 0.0 <= degrees <= POSITION_RANGE_DEGREES:
        raise DynamixelDriverError.invalid_argument(
            f"Position must be 0-{POSITION_RANGE_DEGREES:g} degrees, got {degrees}"
        )
    return round(degrees * POSITION_RESOLUTION / POSITION_RANGE_DEGREES)


def raw_to_volts(raw: int) -> float:
    """Present voltage is reported in tenths of a volt."""
    return raw / 10.0
