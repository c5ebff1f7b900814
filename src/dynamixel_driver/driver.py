"""Asynchronous driver for Dynamixel protocol 1.0 actuators.

The bus is half-duplex with a single master, so the driver runs one
request/response exchange at a time. Each exchange holds a lock from the
moment the instruction is written until the matching status packet
arrives, the timeout expires, or the transport fails.

Usage::

    conn = SerialConnection("/dev/ttyUSB0")
    await conn.open()
    driver = DynamixelDriver(conn, timeout=0.1)
    await driver.ping(1)
    position = await driver.read_position(1)
    await driver.sync_write_position({1: 512, 2: 300})
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .config import DEFAULT_TIMEOUT
from .errors import DynamixelDriverError, ErrorKind
from .models import registers
from .models.packet import BROADCAST_ID, InstructionPacket, StatusPacket
from .models.registers import Register
from .protocol.framing import DecodeStatus, decode_status, encode_instruction
from .protocol.instructions import (
    build_action,
    build_ping,
    build_read,
    build_reg_write,
    build_reset,
    build_write,
    check_servo_id,
)
from .protocol.parser import (
    degrees_to_raw,
    parse_register_value,
    raise_for_fault,
    raw_to_degrees,
    raw_to_volts,
)
from .protocol.sync_write import (
    SyncCommand,
    SyncValues,
    build_sync_write,
    to_sync_commands,
)
from .transport.serial_connection import Transport

logger = logging.getLogger(__name__)

READ_CHUNK = 64


class DynamixelDriver:
    """Sends instructions over a shared transport and matches the replies.

    Args:
        transport: Byte stream connected to the bus.
        timeout: Seconds to wait for each status packet.
    """

    def __init__(self, transport: Transport, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise DynamixelDriverError.invalid_argument(
                f"Timeout must be positive, got {timeout}"
            )
        self._transport = transport
        self._timeout = timeout
        self._lock = asyncio.Lock()
        self._buffer = bytearray()

    @property
    def timeout(self) -> float:
        return self._timeout

    async def clear_io_buffers(self) -> None:
        """Drop every received byte that has not been decoded yet.

        Clears the accumulation buffer and the transport's input buffer,
        then reads and discards for one timeout window so replies still in
        flight cannot answer a later request.
        """
        async with self._lock:
            await self._flush()

    async def _flush(self) -> None:
        if self._buffer:
            logger.debug("Dropping %d buffered byte(s)", len(self._buffer))
        self._buffer.clear()
        try:
            self._transport.reset_input_buffer()
        except OSError as e:
            raise DynamixelDriverError.transport(e) from e

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        dropped = bytearray()
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            try:
                dropped += await asyncio.wait_for(
                    self._transport.read(READ_CHUNK), remaining
                )
            except asyncio.TimeoutError:
                break
            except OSError as e:
                raise DynamixelDriverError.transport(e) from e
        if dropped:
            logger.warning("Dropped late bytes: %s", bytes(dropped).hex(" "))

    # ─── EXCHANGE ────────────────────────────────────────────────────

    async def _send(self, packet: InstructionPacket) -> None:
        frame = encode_instruction(packet)
        logger.debug("TX %r: %s", packet, frame.hex(" "))
        try:
            await self._transport.write(frame)
        except OSError as e:
            raise DynamixelDriverError.transport(e) from e

    async def _fill_buffer(self) -> None:
        try:
            chunk = await self._transport.read(READ_CHUNK)
        except OSError as e:
            raise DynamixelDriverError.transport(e) from e
        self._buffer += chunk

    async def _await_status(
        self, servo_id: int, discarded: list[DecodeStatus]
    ) -> StatusPacket:
        while True:
            result = decode_status(self._buffer)
            if result.status is DecodeStatus.INCOMPLETE:
                await self._fill_buffer()
                continue

            corrupt = bytes(self._buffer[: result.consumed])
            del self._buffer[: result.consumed]
            if result.is_corrupt:
                logger.warning(
                    "Discarded %s while waiting for servo %d: %s",
                    result.status.value,
                    servo_id,
                    corrupt.hex(" "),
                )
                discarded.append(result.status)
                continue

            status = result.packet
            if status.servo_id != servo_id:
                logger.debug(
                    "Ignoring %r while waiting for servo %d", status, servo_id
                )
                continue
            return status

    def _no_reply(
        self, servo_id: int, discarded: list[DecodeStatus]
    ) -> DynamixelDriverError:
        if not discarded:
            return DynamixelDriverError.timeout(servo_id, self._timeout)
        if DecodeStatus.CHECKSUM_MISMATCH in discarded:
            kind = ErrorKind.CHECKSUM_MISMATCH
        else:
            kind = ErrorKind.MALFORMED_FRAME
        return DynamixelDriverError(
            kind,
            f"Only corrupt data from the bus while waiting for servo {servo_id} "
            f"({len(discarded)} frame(s) discarded within {self._timeout:.3f}s)",
            servo_id=servo_id,
        )

    async def _exchange(self, packet: InstructionPacket) -> StatusPacket | None:
        """Send ``packet`` and wait for its status packet.

        Broadcast packets return None as soon as they are written. A status
        packet carrying fault bits raises ``ACTUATOR_FAULT``.
        """
        async with self._lock:
            self._buffer.clear()
            try:
                await self._send(packet)
                if packet.is_broadcast:
                    return None
                discarded: list[DecodeStatus] = []
                try:
                    status = await asyncio.wait_for(
                        self._await_status(packet.servo_id, discarded),
                        self._timeout,
                    )
                except asyncio.TimeoutError:
                    error = self._no_reply(packet.servo_id, discarded)
                    # the reply may still be on its way
                    await self._flush()
                    raise error from None
            except DynamixelDriverError:
                self._buffer.clear()
                raise

        logger.debug("RX %r", status)
        raise_for_fault(status)
        return status

    # ─── CORE OPERATIONS ─────────────────────────────────────────────

    async def ping(self, servo_id: int) -> None:
        """Check that ``servo_id`` answers.

        Raises:
            DynamixelDriverError: ``TIMEOUT`` if nothing answers,
                ``ACTUATOR_FAULT`` if it answers with fault bits set.
        """
        await self._exchange(build_ping(servo_id))

    async def read(self, servo_id: int, address: int, width: int) -> int:
        """Read a 1- or 2-byte register value."""
        packet = build_read(servo_id, address, width)
        status = await self._exchange(packet)
        return parse_register_value(status, width)

    async def write(self, servo_id: int, address: int, value: int, width: int) -> None:
        """Write a 1- or 2-byte register value and wait for the acknowledgement."""
        await self._exchange(build_write(servo_id, address, value, width))

    async def sync_write(self, address: int, width: int, values: SyncValues) -> None:
        """Write one register on several actuators in a single broadcast frame.

        Returns as soon as the frame is written; broadcast frames are never
        acknowledged.
        """
        await self._exchange(build_sync_write(address, width, values))

    async def reset(self, servo_id: int) -> None:
        """Restore the factory control table on ``servo_id``."""
        await self._exchange(build_reset(servo_id))

    def stage(self) -> StagedWrite:
        """Start a staged (REG_WRITE then ACTION) update."""
        return StagedWrite(self)

    # ─── REGISTER ACCESS ─────────────────────────────────────────────

    async def read_register(self, servo_id: int, register: Register) -> int:
        return await self.read(servo_id, register.address, register.width)

    async def write_register(self, servo_id: int, register: Register, value: int) -> None:
        _check_writable(register)
        await self.write(servo_id, register.address, value, register.width)

    async def sync_write_register(self, register: Register, values: SyncValues) -> None:
        _check_writable(register)
        await self.sync_write(register.address, register.width, values)

    # ─── CONVENIENCE ─────────────────────────────────────────────────

    async def write_id(self, servo_id: int, new_id: int) -> None:
        check_servo_id(new_id)
        await self.write_register(servo_id, registers.ID, new_id)

    async def write_torque(self, servo_id: int, enabled: bool) -> None:
        await self.write_register(servo_id, registers.TORQUE_ENABLE, int(enabled))

    async def write_position(self, servo_id: int, position: int) -> None:
        await self.write_register(servo_id, registers.GOAL_POSITION, position)

    async def write_position_degrees(self, servo_id: int, degrees: float) -> None:
        await self.write_position(servo_id, degrees_to_raw(degrees))

    async def read_position(self, servo_id: int) -> int:
        return await self.read_register(servo_id, registers.PRESENT_POSITION)

    async def read_position_degrees(self, servo_id: int) -> float:
        return raw_to_degrees(await self.read_position(servo_id))

    async def write_moving_speed(self, servo_id: int, speed: int) -> None:
        await self.write_register(servo_id, registers.MOVING_SPEED, speed)

    async def write_compliance_margin(self, servo_id: int, margin: int) -> None:
        """Set both clockwise and counter-clockwise compliance margins."""
        await self.write_register(servo_id, registers.CW_COMPLIANCE_MARGIN, margin)
        await self.write_register(servo_id, registers.CCW_COMPLIANCE_MARGIN, margin)

    async def write_compliance_slope(self, servo_id: int, slope: int) -> None:
        """Set both clockwise and counter-clockwise compliance slopes."""
        await self.write_register(servo_id, registers.CW_COMPLIANCE_SLOPE, slope)
        await self.write_register(servo_id, registers.CCW_COMPLIANCE_SLOPE, slope)

    async def read_temperature(self, servo_id: int) -> int:
        """Internal temperature in degrees Celsius."""
        return await self.read_register(servo_id, registers.PRESENT_TEMPERATURE)

    async def read_voltage(self, servo_id: int) -> float:
        """Supply voltage in volts."""
        return raw_to_volts(await self.read_register(servo_id, registers.PRESENT_VOLTAGE))

    async def sync_write_position(self, values: SyncValues) -> None:
        await self.sync_write_register(registers.GOAL_POSITION, values)

    async def sync_write_position_degrees(self, values: SyncValues) -> None:
        await self.sync_write_position(_convert(values, degrees_to_raw))

    async def sync_write_torque(self, values: SyncValues) -> None:
        await self.sync_write_register(registers.TORQUE_ENABLE, _convert(values, int))

    async def sync_write_moving_speed(self, values: SyncValues) -> None:
        await self.sync_write_register(registers.MOVING_SPEED, values)

    async def sync_write_compliance_slope(self, values: SyncValues) -> None:
        commands = to_sync_commands(values)
        await self.sync_write_register(registers.CW_COMPLIANCE_SLOPE, commands)
        await self.sync_write_register(registers.CCW_COMPLIANCE_SLOPE, commands)


def _check_writable(register: Register) -> None:
    if not register.writable:
        raise DynamixelDriverError.invalid_argument(
            f"Register '{register.name}' is read-only"
        )


def _convert(values: SyncValues, fn: Callable) -> list[SyncCommand]:
    return [
        SyncCommand(servo_id, fn(value))
        for servo_id, value in to_sync_commands(values)
    ]


class StageState(Enum):
    ARMED = "armed"
    COMMITTED = "committed"


class StagedWrite:
    """A two-step register update across one or more actuators.

    Each :meth:`write` sends REG_WRITE, which the actuator acknowledges
    but holds back. :meth:`commit` broadcasts ACTION so every armed
    actuator applies its pending value at once. A stage commits once.
    """

    def __init__(self, driver: DynamixelDriver) -> None:
        self._driver = driver
        self._state = StageState.ARMED
        self._servo_ids: list[int] = []

    @property
    def state(self) -> StageState:
        return self._state

    @property
    def servo_ids(self) -> list[int]:
        return list(self._servo_ids)

    async def write(self, servo_id: int, address: int, value: int, width: int) -> None:
        if self._state is StageState.COMMITTED:
            raise DynamixelDriverError.invalid_argument(
                "Staged write was already committed"
            )
        await self._driver._exchange(build_reg_write(servo_id, address, value, width))
        if servo_id not in self._servo_ids:
            self._servo_ids.append(servo_id)

    async def write_register(self, servo_id: int, register: Register, value: int) -> None:
        _check_writable(register)
        await self.write(servo_id, register.address, value, register.width)

    async def commit(self) -> None:
        """Broadcast ACTION; returns once the frame is written."""
        if self._state is StageState.COMMITTED:
            raise DynamixelDriverError.invalid_argument(
                "Staged write was already committed"
            )
        if not self._servo_ids:
            raise DynamixelDriverError.invalid_argument("Nothing was staged")
        await self._driver._exchange(build_action(BROADCAST_ID))
        self._state = StageState.COMMITTED
        logger.debug("Committed staged write for servos %s", self._servo_ids)
