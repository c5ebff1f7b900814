"""Serial connection to a Dynamixel protocol 1.0 bus.

The driver only needs an asynchronous byte stream, described by the
:class:`Transport` protocol. :class:`SerialConnection` provides one on
top of ``pyserial-asyncio``; tests substitute an in-memory bus.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import serial
import serial_asyncio

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 1_000_000
READ_LIMIT = 64 * 1024


class Transport(Protocol):
    """Asynchronous byte stream shared by every actuator on the bus."""

    async def write(self, data: bytes) -> None:
        ...

    async def read(self, max_bytes: int) -> bytes:
        """Return at least one byte, waiting until some arrive."""
        ...

    def reset_input_buffer(self) -> None:
        """Drop bytes received by the OS that nobody has read yet."""
        ...


@dataclass
class PortInfo:
    """Where and how the bus is attached."""

    port: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE


class SerialConnection:
    """Manages the serial port a Dynamixel bus is wired to.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        await conn.open()
        await conn.write(frame_bytes)
        chunk = await conn.read(64)
        await conn.close()
    """

    def __init__(self, port: str, baudrate: int = DEFAULT_BAUDRATE) -> None:
        self._port_info = PortInfo(port=port, baudrate=baudrate)
        self._reader = None
        self._writer = None

    @property
    def connected(self) -> bool:
        return self._writer is not None

    @property
    def port_info(self) -> PortInfo:
        return self._port_info

    async def open(self) -> PortInfo:
        """Open the serial port with 8N1 framing.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self.connected:
            return self._port_info

        info = self._port_info
        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=info.port,
                baudrate=info.baudrate,
                bytesize=info.bytesize,
                parity=info.parity,
                stopbits=info.stopbits,
                limit=READ_LIMIT,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial port {info.port!r} at {info.baudrate} baud. "
                f"Last error: {e}"
            ) from e

        logger.info("Opened %s at %d baud", info.port, info.baudrate)
        return info

    async def close(self) -> None:
        """Close the serial port."""
        if not self.connected:
            return

        writer = self._writer
        self._reader = None
        self._writer = None
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning("Error closing %s: %s", self._port_info.port, e)
        finally:
            logger.info("Closed %s", self._port_info.port)

    async def write(self, data: bytes) -> None:
        """Write bytes and wait until they are handed to the OS.

        Raises:
            ConnectionError: If the port is not open.
        """
        if self._writer is None:
            raise ConnectionError("Serial port is not open")
        self._writer.write(data)
        await self._writer.drain()

    async def read(self, max_bytes: int) -> bytes:
        """Read whatever is available, up to ``max_bytes``.

        Raises:
            ConnectionError: If the port is not open or was closed underneath us.
        """
        if self._reader is None:
            raise ConnectionError("Serial port is not open")
        data = await self._reader.read(max_bytes)
        if not data:
            raise ConnectionError(f"Serial port {self._port_info.port} closed")
        return data

    def reset_input_buffer(self) -> None:
        """Discard whatever the serial driver has buffered on the input side.

        Bytes already handed to the stream reader are not touched; the
        driver reads those off and drops them itself.

        Raises:
            ConnectionError: If the port is not open or the flush fails.
        """
        if self._writer is None:
            raise ConnectionError("Serial port is not open")
        try:
            self._writer.transport.serial.reset_input_buffer()
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not flush serial port {self._port_info.port!r}: {e}"
            ) from e
