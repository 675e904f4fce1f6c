from abc import ABC, abstractmethod

from simterm.terminal.state import BusType


class BusConnection(ABC):
    """
    An abstract base class that defines the contract for all bus connections.
    The terminal only talks to this interface, never to a concrete bus.
    """

    bus_type: BusType = BusType.BASE

    @abstractmethod
    def open(self):
        """Opens the backend stream. Raises BusError on failure."""
        pass

    @abstractmethod
    def close(self):
        """Closes the backend stream and releases resources."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Returns True if the backend stream is open."""
        pass

    @abstractmethod
    def set_target(self, node_name: str):
        """Selects the simulated node that subsequent operations address."""
        pass

    @abstractmethod
    def write(self, data: bytes):
        """Writes data to the target node."""
        pass

    @abstractmethod
    def read(self, length: int) -> bytes:
        """Reads up to length bytes from the target node."""
        pass

    @abstractmethod
    def transact(self, data: bytes, read_length: int) -> bytes:
        """Writes data, then reads read_length bytes back in one operation."""
        pass
