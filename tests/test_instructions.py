"""Tests for instruction packet builders and response parsing."""

import pytest

from dynamixel_driver.errors import DynamixelDriverError, ErrorKind
from dynamixel_driver.models.packet import BROADCAST_ID, Instruction, StatusPacket
from dynamixel_driver.protocol.instructions import (
    build_action,
    build_ping,
    build_read,
    build_reg_write,
    build_reset,
    build_write,
    check_servo_id,
)
from dynamixel_driver.protocol.parser import (
    degrees_to_raw,
    parse_register_value,
    raise_for_fault,
    raw_to_degrees,
    raw_to_volts,
)


class TestBuilders:
    def test_ping(self):
        """PING carries no parameters."""
        packet = build_ping(1)
        assert packet.instruction is Instruction.PING
        assert packet.params == b""

    def test_read(self):
        """READ_DATA parameters are [address, width]."""
        packet = build_read(1, 0x2B, 1)
        assert packet.instruction is Instruction.READ_DATA
        assert packet.params == bytes([0x2B, 1])

    def test_write_two_bytes(self):
        """WRITE_DATA parameters are the address then the value little-endian."""
        packet = build_write(1, 30, 512, 2)
        assert packet.instruction is Instruction.WRITE_DATA
        assert packet.params == bytes([30, 0x00, 0x02])

    def test_reg_write(self):
        """REG_WRITE uses the same layout as WRITE_DATA."""
        packet = build_reg_write(2, 30, 300, 2)
        assert packet.instruction is Instruction.REG_WRITE
        assert packet.params == bytes([30, 0x2C, 0x01])

    def test_action_defaults_to_broadcast(self):
        """ACTION goes to every servo unless told otherwise."""
        packet = build_action()
        assert packet.servo_id == BROADCAST_ID
        assert packet.is_broadcast

    def test_reset(self):
        assert build_reset(3).instruction is Instruction.RESET

    @pytest.mark.parametrize(
        "build",
        [
            lambda: build_ping(BROADCAST_ID),
            lambda: build_read(BROADCAST_ID, 0x24, 2),
            lambda: build_write(BROADCAST_ID, 0x18, 1, 1),
            lambda: build_reset(BROADCAST_ID),
        ],
    )
    def test_broadcast_rejected_where_reply_expected(self, build):
        """Builders for replied-to instructions refuse id 254."""
        with pytest.raises(DynamixelDriverError) as exc_info:
            build()
        assert exc_info.value.kind is ErrorKind.INVALID_ARGUMENT
        assert "Broadcast" in str(exc_info.value)

    def test_read_width_validated(self):
        """Only 1- and 2-byte reads exist."""
        with pytest.raises(DynamixelDriverError):
            build_read(1, 0x24, 3)

    def test_write_value_validated(self):
        """Values are never truncated to fit."""
        with pytest.raises(DynamixelDriverError):
            build_write(1, 0x18, 256, 1)

    @pytest.mark.parametrize("servo_id", [-1, 255, 1000])
    def test_invalid_ids(self, servo_id):
        """Ids outside 0-254 are never addressable."""
        with pytest.raises(DynamixelDriverError):
            check_servo_id(servo_id, allow_broadcast=True)

    def test_valid_id_range(self):
        check_servo_id(0)
        check_servo_id(253)
        check_servo_id(BROADCAST_ID, allow_broadcast=True)


class TestParser:
    def test_register_value(self):
        """READ reply parameters decode little-endian."""
        status = StatusPacket(1, 0, b"\x00\x02")
        assert parse_register_value(status, 2) == 512

    def test_register_value_wrong_length(self):
        """A reply of the wrong width is MALFORMED_FRAME."""
        with pytest.raises(DynamixelDriverError) as exc_info:
            parse_register_value(StatusPacket(1, 0, b"\x20"), 2)
        assert exc_info.value.kind is ErrorKind.MALFORMED_FRAME
        assert exc_info.value.servo_id == 1

    def test_raise_for_fault(self):
        """Every set fault bit is named in the error."""
        raise_for_fault(StatusPacket(1, 0))
        with pytest.raises(DynamixelDriverError) as exc_info:
            raise_for_fault(StatusPacket(1, 0x24))
        error = exc_info.value
        assert error.kind is ErrorKind.ACTUATOR_FAULT
        assert "overheating_error" in str(error)
        assert "overload_error" in str(error)

    def test_degrees(self):
        """0-300 degrees maps onto 0-1023."""
        assert degrees_to_raw(150) == 512
        assert degrees_to_raw(0) == 0
        assert degrees_to_raw(300) == 1023
        assert raw_to_degrees(1023) == pytest.approx(300.0)

    @pytest.mark.parametrize("degrees", [-0.5, 300.1])
    def test_degrees_out_of_range(self, degrees):
        """Angles outside the servo range are rejected, not clamped."""
        with pytest.raises(DynamixelDriverError):
            degrees_to_raw(degrees)

    def test_volts(self):
        assert raw_to_volts(120) == pytest.approx(12.0)
