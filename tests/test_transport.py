"""Tests for the serial transport."""

import asyncio

import pytest

from dynamixel_driver.transport.serial_connection import SerialConnection


def test_port_info_defaults():
    """Ports are opened 8N1."""
    conn = SerialConnection("/dev/ttyUSB3", 57600)
    info = conn.port_info
    assert info.port == "/dev/ttyUSB3"
    assert info.baudrate == 57600
    assert (info.bytesize, info.parity, info.stopbits) == (8, "N", 1)
    assert not conn.connected


def test_write_before_open():
    """Writing needs an open port."""
    with pytest.raises(ConnectionError, match="not open"):
        asyncio.run(SerialConnection("/dev/ttyUSB0").write(b"\xff"))


def test_read_before_open():
    """Reading needs an open port."""
    with pytest.raises(ConnectionError, match="not open"):
        asyncio.run(SerialConnection("/dev/ttyUSB0").read(8))


def test_open_missing_port():
    """A missing device surfaces as ConnectionError."""
    conn = SerialConnection("/dev/does-not-exist-dxl")
    with pytest.raises(ConnectionError, match="Could not open serial port"):
        asyncio.run(conn.open())
    assert not conn.connected


def test_close_when_not_open():
    asyncio.run(SerialConnection("/dev/ttyUSB0").close())


def test_reset_input_buffer_before_open():
    """Flushing a port that was never opened is a ConnectionError."""
    with pytest.raises(ConnectionError, match="not open"):
        SerialConnection("/dev/ttyUSB0").reset_input_buffer()
