"""Asynchronous driver for Dynamixel protocol 1.0 servo actuators."""

from .config import BusConfig
from .driver import DynamixelDriver, StagedWrite, StageState
from .errors import DynamixelDriverError, ErrorKind
from .models.packet import (
    BROADCAST_ID,
    MAX_SERVO_ID,
    Instruction,
    InstructionPacket,
    StatusError,
    StatusPacket,
)
from .models.registers import CONTROL_TABLE, Register, get_register
from .protocol.framing import (
    DecodeResult,
    DecodeStatus,
    decode_status,
    encode_instruction,
    encode_status,
    parse_status,
)
from .protocol.sync_write import SyncCommand, build_sync_write
from .transport.serial_connection import SerialConnection, Transport

__version__ = "0.3.1"
