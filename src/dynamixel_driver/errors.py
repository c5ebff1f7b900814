"""Error taxonomy for the driver.

Every failure surfaces as a single :class:`DynamixelDriverError` whose
``kind`` is one member of the closed :class:`ErrorKind` set, so callers
branch on ``err.kind`` instead of catching a tree of exception classes.
"""

from __future__ import annotations

from enum import Enum

from .models.packet import StatusError


class ErrorKind(Enum):
    """Every outcome a driver operation can fail with."""

    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    MALFORMED_FRAME = "malformed_frame"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    ACTUATOR_FAULT = "actuator_fault"
    INVALID_ARGUMENT = "invalid_argument"


class DynamixelDriverError(Exception):
    """A failed driver operation.

    Attributes:
        kind: Which of the :class:`ErrorKind` outcomes occurred.
        servo_id: The addressed actuator, when one was involved.
        fault: Fault bits for ``ACTUATOR_FAULT``, otherwise None.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        servo_id: int | None = None,
        fault: StatusError | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.servo_id = servo_id
        self.fault = fault

    @classmethod
    def invalid_argument(cls, message: str) -> DynamixelDriverError:
        return cls(ErrorKind.INVALID_ARGUMENT, message)

    @classmethod
    def timeout(cls, servo_id: int, seconds: float) -> DynamixelDriverError:
        return cls(
            ErrorKind.TIMEOUT,
            f"No status packet from servo {servo_id} within {seconds:.3f}s",
            servo_id=servo_id,
        )

    @classmethod
    def actuator_fault(cls, servo_id: int, error: int) -> DynamixelDriverError:
        fault = StatusError(error & 0x7F)
        names = " ".join(fault.describe()) or f"0x{error:02X}"
        return cls(
            ErrorKind.ACTUATOR_FAULT,
            f"Servo {servo_id} reported fault: {names}",
            servo_id=servo_id,
            fault=fault,
        )

    @classmethod
    def transport(cls, exc: OSError) -> DynamixelDriverError:
        return cls(ErrorKind.TRANSPORT, f"Serial I/O failed: {exc}")

    def to_dict(self) -> dict:
        result = {"error": str(self), "kind": self.kind.value}
        if self.servo_id is not None:
            result["servo_id"] = self.servo_id
        if self.fault is not None:
            result["fault"] = int(self.fault)
            result["fault_names"] = self.fault.describe()
        return result

    def __repr__(self) -> str:
        return f"DynamixelDriverError({self.kind.name}, {str(self)!r})"
