import logging
import threading
from abc import abstractmethod

import serial

from simterm.communicator import frames
from simterm.communicator.abstractInterface import BusConnection
from simterm.communicator.errors import BusError
from simterm.terminal.state import BusType


def to_pyserial_url(uri: str) -> str:
    """Rewrites NOS-style tcp:// connection strings to pyserial's socket:// scheme."""
    if uri.lower().startswith("tcp://"):
        return "socket://" + uri[len("tcp://"):]
    return uri


def open_port(uri: str, timeout: float = 1.0):
    """Opens the backend stream for a connection string."""
    try:
        return serial.serial_for_url(to_pyserial_url(uri), timeout=timeout)
    except (serial.SerialException, ValueError, OSError) as e:
        raise BusError(f"Unable to open simulator connection {uri}: {e}") from e


def _encode_name(name: str, what: str) -> bytes:
    encoded = name.encode("utf-8")
    if not encoded:
        raise BusError(f"{what} must not be empty")
    if len(encoded) > frames.MAX_FIELD_LENGTH:
        raise BusError(f"{what} '{name}' is longer than {frames.MAX_FIELD_LENGTH} bytes")
    return encoded


def _encode_int(value: int) -> bytes:
    """Shortest signed big-endian form; any integer the node name parses to fits."""
    return value.to_bytes(value.bit_length() // 8 + 1, "big", signed=True)


class FramedBusConnection(BusConnection):
    """
    A bus connection that carries each operation to the simulator backend as
    one request frame and waits for one reply frame. Subclasses only decide
    how this terminal identifies itself on the bus.
    """

    def __init__(self, connection_string: str, bus_name: str, port_factory=open_port, timeout: float = 1.0,
                 logger: logging.Logger | None = None):
        self.connection_string = connection_string
        self.bus_name = bus_name
        self.target = None
        self.timeout = timeout
        self._bus = _encode_name(bus_name, "Bus name")
        self._port_factory = port_factory
        self._port = None
        self._lock = threading.Lock()
        self.log = logger or logging.getLogger(__name__)

    @abstractmethod
    def _source(self) -> bytes:
        """How this terminal identifies itself in the source field of a request."""
        pass

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def open(self):
        with self._lock:
            if self._port is not None:
                return
            self._port = self._port_factory(self.connection_string, self.timeout)
            self.log.info(f"Opened {self.bus_type.name} connection on bus '{self.bus_name}' via {self.connection_string}")

    def close(self):
        with self._lock:
            if self._port is None:
                return
            try:
                self._port.close()
            except (serial.SerialException, OSError) as e:
                self.log.warning(f"Error closing simulator connection: {e}")
            self._port = None
            self.log.info(f"Closed {self.bus_type.name} connection on bus '{self.bus_name}'")

    def set_target(self, node_name: str):
        _encode_name(node_name, "Target node name")
        self.target = node_name

    def _exchange(self, op: int, read_length: int = 0, data: bytes = b"") -> bytes:
        if self.target is None:
            raise BusError("No target node set")
        request = frames.encode_request(
            op, self.bus_type.value, self._source(), self.target.encode("utf-8"),
            self._bus, read_length, data,
        )
        with self._lock:
            if self._port is None:
                raise BusError("Simulator connection is closed")
            try:
                self._port.write(request)
                return frames.read_reply(self._port)
            except (serial.SerialException, OSError) as e:
                raise BusError(f"Simulator connection failed: {e}") from e

    def write(self, data: bytes):
        self._exchange(frames.OP_WRITE, 0, data)

    def read(self, length: int) -> bytes:
        return self._exchange(frames.OP_READ, length)[:length]

    def transact(self, data: bytes, read_length: int) -> bytes:
        return self._exchange(frames.OP_TRANSACT, read_length, data)[:read_length]


class BaseConnection(FramedBusConnection):
    bus_type = BusType.BASE

    def __init__(self, node_name: str, connection_string: str, bus_name: str, **kwargs):
        super().__init__(connection_string, bus_name, **kwargs)
        self.node_name = node_name
        self._name = _encode_name(node_name, "Terminal node name")

    def _source(self) -> bytes:
        return self._name


class UartConnection(BaseConnection):
    bus_type = BusType.UART


class I2CConnection(FramedBusConnection):
    bus_type = BusType.I2C

    def __init__(self, master_address: int, connection_string: str, bus_name: str, **kwargs):
        super().__init__(connection_string, bus_name, **kwargs)
        self.master_address = master_address

    def _source(self) -> bytes:
        return _encode_int(self.master_address)


class CANConnection(FramedBusConnection):
    bus_type = BusType.CAN

    def __init__(self, master_identifier: int, connection_string: str, bus_name: str, **kwargs):
        super().__init__(connection_string, bus_name, **kwargs)
        self.master_identifier = master_identifier

    def _source(self) -> bytes:
        return _encode_int(self.master_identifier)


class SPIConnection(FramedBusConnection):
    bus_type = BusType.SPI

    def _source(self) -> bytes:
        return b""


def connection_class_for(bus_type: BusType) -> type[FramedBusConnection]:
    """BASE and COMMAND are not differentiated; both use BaseConnection."""
    return {
        BusType.I2C: I2CConnection,
        BusType.CAN: CANConnection,
        BusType.SPI: SPIConnection,
        BusType.UART: UartConnection,
    }.get(bus_type, BaseConnection)
