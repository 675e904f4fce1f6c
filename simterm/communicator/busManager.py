import logging

import serial

from simterm.communicator.abstractInterface import BusConnection
from simterm.communicator.bus_connections import connection_class_for, open_port
from simterm.communicator.errors import BusError, BusResult, BusStatus
from simterm.terminal.codec import parse_leading_int
from simterm.terminal.state import BusType, SessionState

MAX_TRANSFER_LENGTH = 255
DEFAULT_MASTER_ID = 127

NOT_CONNECTED_MESSAGE = "Connection has not been instantiated. Connect to a bus with SET SIMBUS."


class BusConnectionManager:
    """
    Owns the single live bus connection. Any change to the bus type, bus name,
    terminal node or backend connection string goes through reset(), which
    closes the old connection before the new one is built.
    """
    def __init__(self, port_factory=open_port, timeout: float = 1.0, logger: logging.Logger | None = None):
        self.connection: BusConnection | None = None
        self.reset_count = 0
        self._port_factory = port_factory
        self._timeout = timeout
        self.log = logger or logging.getLogger(__name__)

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def close(self):
        if self.connection is not None:
            old, self.connection = self.connection, None
            old.close()

    def _master_id(self, state: SessionState, what: str) -> tuple[int, str]:
        value = parse_leading_int(state.terminal_node_name)
        if value is not None:
            return value, ""
        diagnostic = (f"\"{state.terminal_node_name}\" is not a valid {what} for the terminal. "
                      f"Defaulting to {DEFAULT_MASTER_ID}.")
        self.log.warning(diagnostic)
        state.terminal_node_name = str(DEFAULT_MASTER_ID)
        return DEFAULT_MASTER_ID, diagnostic

    def _build(self, state: SessionState) -> tuple[BusConnection, str]:
        cls = connection_class_for(state.bus_type)
        kwargs = {"port_factory": self._port_factory, "timeout": self._timeout, "logger": self.log}
        args = (state.connection_string, state.bus_name)

        if state.bus_type == BusType.I2C:
            address, diagnostic = self._master_id(state, "I2C address")
            return cls(address, *args, **kwargs), diagnostic
        if state.bus_type == BusType.CAN:
            identifier, diagnostic = self._master_id(state, "CAN identifier")
            return cls(identifier, *args, **kwargs), diagnostic
        if state.bus_type == BusType.SPI:
            return cls(*args, **kwargs), ""
        return cls(state.terminal_node_name, *args, **kwargs), ""

    def reset(self, state: SessionState) -> BusResult:
        """
        Tears down the current connection and builds the variant selected by
        state.bus_type, then points it at state.target_node_name.

        Not atomic: if opening fails the slot stays empty, and if set_target
        fails the new connection is kept without a target. Both are reported
        as a non-SUCCESS result.
        """
        self.reset_count += 1
        self.close()

        diagnostic = ""
        try:
            connection, diagnostic = self._build(state)
            connection.open()
        except BusError as e:
            self.log.error(f"Failed to build {state.bus_type.name} connection: {e}")
            return BusResult.failure(BusStatus.BACKEND_ERROR, _join(diagnostic, str(e)))

        self.connection = connection
        self.log.info(f"Bus connection reset: {state.bus_type.name} on '{state.bus_name}' via {state.connection_string}")

        result = self.set_target(state.target_node_name)
        if not result.ok:
            return BusResult.failure(result.status, _join(diagnostic, result.message))
        return BusResult.success(message=diagnostic)

    def set_target(self, node_name: str) -> BusResult:
        if self.connection is None:
            return BusResult.success()
        try:
            self.connection.set_target(node_name)
        except BusError as e:
            self.log.error(f"Failed to set target node '{node_name}': {e}")
            return BusResult.failure(BusStatus.BACKEND_ERROR, str(e))
        return BusResult.success()

    def _call(self, operation, *args) -> BusResult:
        if self.connection is None:
            return BusResult.failure(BusStatus.NOT_CONNECTED, NOT_CONNECTED_MESSAGE)
        try:
            data = operation(self.connection, *args)
        except (BusError, serial.SerialException, OSError) as e:
            self.log.error(f"Bus operation failed: {e}")
            return BusResult.failure(BusStatus.BACKEND_ERROR, str(e))
        return BusResult.success(data or b"")

    def write(self, data: bytes) -> BusResult:
        return self._call(lambda conn, payload: conn.write(payload), data)

    def read(self, length: int) -> BusResult:
        length = _clamp(length)
        result = self._call(lambda conn, n: conn.read(n), length)
        result.data = result.data[:length]
        return result

    def transact(self, data: bytes, read_length: int) -> BusResult:
        read_length = _clamp(read_length)
        result = self._call(lambda conn, payload, n: conn.transact(payload, n), data, read_length)
        result.data = result.data[:read_length]
        return result


def _clamp(length: int) -> int:
    return max(0, min(length, MAX_TRANSFER_LENGTH))


def _join(*messages: str) -> str:
    return "\n".join(m for m in messages if m)
