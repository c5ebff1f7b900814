"""MCP server entry point for a Dynamixel protocol 1.0 bus.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport. Bus settings default to the
``DYNAMIXEL_*`` environment variables and can be overridden per connect.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import BusConfig
from .driver import DynamixelDriver
from .errors import DynamixelDriverError
from .models.registers import CONTROL_TABLE, get_register
from .protocol.parser import raw_to_degrees
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "dynamixel-driver",
    instructions="MCP server for Dynamixel protocol 1.0 servo actuators",
)

# Global connection state
_connection: SerialConnection | None = None
_driver: DynamixelDriver | None = None
_config: BusConfig | None = None


def _get_driver() -> DynamixelDriver:
    """Get the active driver, raising if not connected."""
    if _driver is None or _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to a bus. Use the 'connect' tool first."
        )
    return _driver


def _parse_sync_values(values: dict[str, int]) -> dict[int, int]:
    """JSON object keys arrive as strings; servo ids are integers."""
    try:
        return {int(servo_id): value for servo_id, value in values.items()}
    except ValueError as e:
        raise DynamixelDriverError.invalid_argument(
            f"Servo ids must be integers: {e}"
        ) from e


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
async def connect(
    port: str | None = None,
    baudrate: int | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    """Open the serial port the servo bus is attached to.

    Args:
        port: Serial device path (default: DYNAMIXEL_PORT or /dev/ttyUSB0).
        baudrate: Bus baud rate (default: DYNAMIXEL_BAUDRATE or 1000000).
        timeout: Seconds to wait for each status packet (default 0.1).
    """
    global _connection, _driver, _config
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            **_config.to_dict(),
        }

    config = BusConfig.from_env()
    try:
        config = BusConfig(
            port=port or config.port,
            baudrate=baudrate or config.baudrate,
            timeout=timeout or config.timeout,
        )
    except ValueError as e:
        return {"error": str(e)}

    connection = SerialConnection(config.port, config.baudrate)
    await connection.open()

    _connection = connection
    _driver = DynamixelDriver(connection, timeout=config.timeout)
    _config = config
    return {"connected": True, **config.to_dict()}


@mcp.tool()
async def disconnect() -> dict[str, bool]:
    """Close the serial port."""
    global _connection, _driver
    if _connection is None:
        return {"disconnected": True}
    await _connection.close()
    _connection = None
    _driver = None
    return {"disconnected": True}


@mcp.tool()
async def ping(servo_id: int) -> dict[str, Any]:
    """Check whether a servo answers on the bus.

    Args:
        servo_id: Servo identifier (0-253).
    """
    driver = _get_driver()
    try:
        await driver.ping(servo_id)
    except DynamixelDriverError as e:
        return {"servo_id": servo_id, "found": False, **e.to_dict()}
    return {"servo_id": servo_id, "found": True}


# ─── REGISTER TOOLS ──────────────────────────────────────────────────

@mcp.tool()
async def read_register(servo_id: int, register: str) -> dict[str, Any]:
    """Read a named control table register.

    Args:
        servo_id: Servo identifier (0-253).
        register: Register name, e.g. 'present_position' or 'torque_enable'.
    """
    driver = _get_driver()
    try:
        reg = get_register(register)
        value = await driver.read_register(servo_id, reg)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "register": reg.name, "value": value}


@mcp.tool()
async def write_register(servo_id: int, register: str, value: int) -> dict[str, Any]:
    """Write a named control table register and wait for the acknowledgement.

    Args:
        servo_id: Servo identifier (0-253).
        register: Register name, e.g. 'goal_position'.
        value: Raw register value (must fit the register width).
    """
    driver = _get_driver()
    try:
        reg = get_register(register)
        await driver.write_register(servo_id, reg, value)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "register": reg.name, "value": value}


@mcp.tool()
async def sync_write(register: str, values: dict[str, int]) -> dict[str, Any]:
    """Write one register on several servos in a single broadcast frame.

    Args:
        register: Register name, e.g. 'goal_position'.
        values: Mapping of servo id to raw value, e.g. {"1": 512, "2": 300}.
    """
    driver = _get_driver()
    try:
        reg = get_register(register)
        parsed = _parse_sync_values(values)
        await driver.sync_write_register(reg, parsed)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"register": reg.name, "servo_ids": list(parsed)}


# ─── MOTION & HEALTH TOOLS ───────────────────────────────────────────

@mcp.tool()
async def read_position(servo_id: int) -> dict[str, Any]:
    """Read the present position as a raw value and in degrees.

    Args:
        servo_id: Servo identifier (0-253).
    """
    driver = _get_driver()
    try:
        raw = await driver.read_position(servo_id)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {
        "servo_id": servo_id,
        "raw": raw,
        "degrees": round(raw_to_degrees(raw), 2),
    }


@mcp.tool()
async def write_position(servo_id: int, degrees: float) -> dict[str, Any]:
    """Move a servo to an angle.

    Args:
        servo_id: Servo identifier (0-253).
        degrees: Goal angle, 0-300.
    """
    driver = _get_driver()
    try:
        await driver.write_position_degrees(servo_id, degrees)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "degrees": degrees}


@mcp.tool()
async def set_torque(servo_id: int, enabled: bool) -> dict[str, Any]:
    """Enable or disable holding torque.

    Args:
        servo_id: Servo identifier (0-253).
        enabled: True to enable, False to let the horn move freely.
    """
    driver = _get_driver()
    try:
        await driver.write_torque(servo_id, enabled)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "enabled": enabled}


@mcp.tool()
async def read_temperature(servo_id: int) -> dict[str, Any]:
    """Read internal temperature in degrees Celsius.

    Args:
        servo_id: Servo identifier (0-253).
    """
    driver = _get_driver()
    try:
        temperature = await driver.read_temperature(servo_id)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "temperature": temperature}


@mcp.tool()
async def read_voltage(servo_id: int) -> dict[str, Any]:
    """Read supply voltage in volts.

    Args:
        servo_id: Servo identifier (0-253).
    """
    driver = _get_driver()
    try:
        voltage = await driver.read_voltage(servo_id)
    except DynamixelDriverError as e:
        return e.to_dict()
    return {"servo_id": servo_id, "voltage": voltage}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("dynamixel://bus/status")
def resource_bus_status() -> str:
    """Connection state and bus settings."""
    if _connection is None or not _connection.connected:
        return json.dumps({"connected": False})
    return json.dumps({"connected": True, **_config.to_dict()})


@mcp.resource("dynamixel://catalog/registers")
def resource_register_catalog() -> str:
    """Protocol 1.0 control table: names, addresses and widths."""
    regs = [reg.to_dict() for reg in CONTROL_TABLE.values()]
    return json.dumps({"registers": regs, "count": len(regs)})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
