"""Data models for packets and the actuator control table."""

from .packet import (
    BROADCAST_ID,
    MAX_SERVO_ID,
    Instruction,
    InstructionPacket,
    StatusError,
    StatusPacket,
)
