"""Register model and the protocol 1.0 control table.

Actuators expose a memory-mapped control table. Each register is one or
two bytes wide and multi-byte values are little-endian. The driver reads
and writes by (address, width); the table below names the AX/MX series
entries so callers do not have to carry raw addresses around.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import DynamixelDriverError

VALID_WIDTHS = (1, 2)


def check_width(width: int) -> None:
    if width not in VALID_WIDTHS:
        raise DynamixelDriverError.invalid_argument(
            f"Register width must be 1 or 2, got {width}"
        )


def check_address(address: int) -> None:
    if not 0 <= address <= 0xFF:
        raise DynamixelDriverError.invalid_argument(
            f"Register address must be 0-255, got {address}"
        )


def pack_value(value: int, width: int) -> bytes:
    """Serialize ``value`` little-endian into ``width`` bytes.

    Raises:
        DynamixelDriverError: If the width is unsupported or the value
            does not fit; values are never silently truncated.
    """
    check_width(width)
    if not isinstance(value, int):
        raise DynamixelDriverError.invalid_argument(
            f"Register value must be an integer, got {value!r}"
        )
    limit = 1 << (8 * width)
    if not 0 <= value < limit:
        raise DynamixelDriverError.invalid_argument(
            f"Value {value} does not fit in {width} byte(s) (0-{limit - 1})"
        )
    return value.to_bytes(width, "little")


def unpack_value(data: bytes, width: int) -> int:
    """Decode a little-endian register value of exactly ``width`` bytes."""
    check_width(width)
    if len(data) != width:
        raise DynamixelDriverError.invalid_argument(
            f"Expected {width} byte(s) of register data, got {len(data)}"
        )
    return int.from_bytes(data, "little")


@dataclass(frozen=True)
class Register:
    """One control table entry."""

    name: str
    address: int
    width: int
    writable: bool = True

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "width": self.width,
            "writable": self.writable,
        }


# EEPROM area
MODEL_NUMBER = Register("model_number", 0x00, 2, writable=False)
FIRMWARE_VERSION = Register("firmware_version", 0x02, 1, writable=False)
ID = Register("id", 0x03, 1)
BAUD_RATE = Register("baud_rate", 0x04, 1)
RETURN_DELAY_TIME = Register("return_delay_time", 0x05, 1)
CW_ANGLE_LIMIT = Register("cw_angle_limit", 0x06, 2)
CCW_ANGLE_LIMIT = Register("ccw_angle_limit", 0x08, 2)
TEMPERATURE_LIMIT = Register("temperature_limit", 0x0B, 1)
MIN_VOLTAGE_LIMIT = Register("min_voltage_limit", 0x0C, 1)
MAX_VOLTAGE_LIMIT = Register("max_voltage_limit", 0x0D, 1)
MAX_TORQUE = Register("max_torque", 0x0E, 2)
STATUS_RETURN_LEVEL = Register("status_return_level", 0x10, 1)
ALARM_LED = Register("alarm_led", 0x11, 1)
ALARM_SHUTDOWN = Register("alarm_shutdown", 0x12, 1)

# RAM area
TORQUE_ENABLE = Register("torque_enable", 0x18, 1)
LED = Register("led", 0x19, 1)
CW_COMPLIANCE_MARGIN = Register("cw_compliance_margin", 0x1A, 1)
CCW_COMPLIANCE_MARGIN = Register("ccw_compliance_margin", 0x1B, 1)
CW_COMPLIANCE_SLOPE = Register("cw_compliance_slope", 0x1C, 1)
CCW_COMPLIANCE_SLOPE = Register("ccw_compliance_slope", 0x1D, 1)
GOAL_POSITION = Register("goal_position", 0x1E, 2)
MOVING_SPEED = Register("moving_speed", 0x20, 2)
TORQUE_LIMIT = Register("torque_limit", 0x22, 2)
PRESENT_POSITION = Register("present_position", 0x24, 2, writable=False)
PRESENT_SPEED = Register("present_speed", 0x26, 2, writable=False)
PRESENT_LOAD = Register("present_load", 0x28, 2, writable=False)
PRESENT_VOLTAGE = Register("present_voltage", 0x2A, 1, writable=False)
PRESENT_TEMPERATURE = Register("present_temperature", 0x2B, 1, writable=False)
REGISTERED = Register("registered", 0x2C, 1, writable=False)
MOVING = Register("moving", 0x2E, 1, writable=False)
LOCK = Register("lock", 0x2F, 1)
PUNCH = Register("punch", 0x30, 2)

CONTROL_TABLE: dict[str, Register] = {
    reg.name: reg
    for reg in (
        MODEL_NUMBER, FIRMWARE_VERSION, ID, BAUD_RATE, RETURN_DELAY_TIME,
        CW_ANGLE_LIMIT, CCW_ANGLE_LIMIT, TEMPERATURE_LIMIT,
        MIN_VOLTAGE_LIMIT, MAX_VOLTAGE_LIMIT, MAX_TORQUE,
        STATUS_RETURN_LEVEL, ALARM_LED, ALARM_SHUTDOWN,
        TORQUE_ENABLE, LED, CW_COMPLIANCE_MARGIN, CCW_COMPLIANCE_MARGIN,
        CW_COMPLIANCE_SLOPE, CCW_COMPLIANCE_SLOPE, GOAL_POSITION,
        MOVING_SPEED, TORQUE_LIMIT, PRESENT_POSITION, PRESENT_SPEED,
        PRESENT_LOAD, PRESENT_VOLTAGE, PRESENT_TEMPERATURE, REGISTERED,
        MOVING, LOCK, PUNCH,
    )
}


def get_register(name: str) -> Register:
    """Look up a control table entry by name."""
    if name not in CONTROL_TABLE:
        raise DynamixelDriverError.invalid_argument(
            f"Unknown register '{name}'. Valid: {list(CONTROL_TABLE)}"
        )
    return CONTROL_TABLE[name]
