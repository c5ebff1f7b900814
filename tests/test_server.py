"""Tests for the MCP tool layer."""

from __future__ import annotations

import asyncio
import json
import sys
from unittest.mock import MagicMock, patch

import pytest

from dynamixel_driver.driver import DynamixelDriver
from dynamixel_driver.models.registers import CONTROL_TABLE

from simulated_bus import SimulatedBus, SimulatedServo


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
        sys.modules.pop("dynamixel_driver.server", None)
        import dynamixel_driver.server as server_mod

    return server_mod


def _call(server, tool, *args, servos=(), **kwargs):
    """Run an async tool against a simulated bus holding ``servos``."""

    async def scenario():
        driver = DynamixelDriver(SimulatedBus(*servos), timeout=0.05)
        with patch.object(server, "_get_driver", return_value=driver):
            return await getattr(server, tool)(*args, **kwargs)

    return asyncio.run(scenario())


@pytest.fixture
def server():
    return _get_server_module()


def test_read_register(server):
    """read_register returns the named register's value."""
    servo = SimulatedServo(1, memory={0x2B: 45})
    result = _call(server, "read_register", 1, "present_temperature", servos=[servo])
    assert result == {"servo_id": 1, "register": "present_temperature", "value": 45}


def test_write_register(server):
    """write_register updates the servo and echoes the value."""
    servo = SimulatedServo(1)
    result = _call(server, "write_register", 1, "goal_position", 700, servos=[servo])
    assert result["value"] == 700
    assert servo.get_u16(0x1E) == 700


def test_unknown_register_returns_error(server):
    """Driver errors come back as an error dict, not an exception."""
    result = _call(server, "read_register", 1, "flux", servos=[SimulatedServo(1)])
    assert result["kind"] == "invalid_argument"
    assert "Unknown register" in result["error"]


def test_read_only_register_returns_error(server):
    """Read-only registers are refused by the tool."""
    result = _call(server, "write_register", 1, "present_load", 5, servos=[SimulatedServo(1)])
    assert result["kind"] == "invalid_argument"


def test_sync_write_string_keys(server):
    """JSON object keys arrive as strings and are turned into ids."""
    first, second = SimulatedServo(1), SimulatedServo(2)
    result = _call(
        server, "sync_write", "goal_position", {"1": 512, "2": 300},
        servos=[first, second],
    )
    assert result == {"register": "goal_position", "servo_ids": [1, 2]}
    assert first.get_u16(0x1E) == 512
    assert second.get_u16(0x1E) == 300


def test_sync_write_bad_key(server):
    """A non-numeric servo id is an invalid argument."""
    result = _call(server, "sync_write", "goal_position", {"one": 512})
    assert result["kind"] == "invalid_argument"


def test_ping_found(server):
    """A servo that answers is reported as found."""
    result = _call(server, "ping", 1, servos=[SimulatedServo(1)])
    assert result == {"servo_id": 1, "found": True}


def test_ping_not_found(server):
    """A silent servo is not found, with the timeout as the reason."""
    result = _call(server, "ping", 9, servos=[SimulatedServo(1)])
    assert result["found"] is False
    assert result["kind"] == "timeout"


def test_fault_reported(server):
    """Fault bits are reported by name."""
    servo = SimulatedServo(1, error=0x20)
    result = _call(server, "read_temperature", 1, servos=[servo])
    assert result["kind"] == "actuator_fault"
    assert result["fault_names"] == ["overload_error"]


def test_read_position(server):
    """Positions are reported raw and in degrees."""
    servo = SimulatedServo(1)
    servo.set_u16(0x24, 1023)
    result = _call(server, "read_position", 1, servos=[servo])
    assert result == {"servo_id": 1, "raw": 1023, "degrees": 300.0}


def test_write_position_out_of_range(server):
    """Angles above 300 degrees are refused."""
    result = _call(server, "write_position", 1, 400.0, servos=[SimulatedServo(1)])
    assert result["kind"] == "invalid_argument"


def test_set_torque_and_voltage(server):
    servo = SimulatedServo(1, memory={0x2A: 95})
    assert _call(server, "set_torque", 1, True, servos=[servo])["enabled"] is True
    assert servo.memory[0x18] == 1
    assert _call(server, "read_voltage", 1, servos=[servo])["voltage"] == pytest.approx(9.5)


def test_not_connected(server):
    """Tools need a connect first."""
    server._driver = None
    server._connection = None
    with pytest.raises(RuntimeError, match="Not connected"):
        asyncio.run(server.ping(1))


def test_connect_rejects_bad_timeout(server, monkeypatch):
    """An invalid timeout never opens the port."""
    monkeypatch.delenv("DYNAMIXEL_TIMEOUT", raising=False)
    monkeypatch.delenv("DYNAMIXEL_BAUDRATE", raising=False)
    result = asyncio.run(server.connect(port="/dev/null", timeout=-1.0))
    assert "Timeout must be positive" in result["error"]
    assert server._connection is None


def test_disconnect_when_idle(server):
    assert asyncio.run(server.disconnect()) == {"disconnected": True}


def test_bus_status_disconnected(server):
    """The status resource reports a closed bus."""
    assert json.loads(server.resource_bus_status()) == {"connected": False}


def test_register_catalog(server):
    """The catalog resource lists the whole control table."""
    catalog = json.loads(server.resource_register_catalog())
    assert catalog["count"] == len(CONTROL_TABLE)
    names = [reg["name"] for reg in catalog["registers"]]
    assert "goal_position" in names
