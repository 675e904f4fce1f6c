from dataclasses import dataclass
from enum import Enum


class BusError(RuntimeError):
    """Raised by a bus connection when the backend rejects or fails an operation."""


class BusStatus(Enum):
    """Outcome of a bus operation as seen by the terminal."""
    SUCCESS = 0
    NOT_CONNECTED = 1
    BACKEND_ERROR = 2


@dataclass
class BusResult:
    status: BusStatus
    data: bytes = b""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == BusStatus.SUCCESS

    @classmethod
    def success(cls, data: bytes = b"", message: str = ""):
        return cls(BusStatus.SUCCESS, data, message)

    @classmethod
    def failure(cls, status: BusStatus, message: str):
        return cls(status, b"", message)
