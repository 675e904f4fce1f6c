import pytest

from simterm.communicator import frames
from simterm.communicator.bus_connections import (
    BaseConnection,
    CANConnection,
    FramedBusConnection,
    I2CConnection,
    SPIConnection,
    UartConnection,
    connection_class_for,
    open_port,
    to_pyserial_url,
)
from simterm.communicator.busManager import NOT_CONNECTED_MESSAGE, BusConnectionManager
from simterm.communicator.errors import BusError, BusStatus
from simterm.terminal.state import BusType, SessionState


@pytest.mark.parametrize("bus_type, cls", [
    (BusType.BASE, BaseConnection),
    (BusType.COMMAND, BaseConnection),
    (BusType.I2C, I2CConnection),
    (BusType.CAN, CANConnection),
    (BusType.SPI, SPIConnection),
    (BusType.UART, UartConnection),
])
def test_connection_class_selected_by_bus_type(bus_type, cls):
    assert connection_class_for(bus_type) is cls


def test_tcp_uri_rewritten_for_pyserial():
    assert to_pyserial_url("tcp://127.0.0.1:12001") == "socket://127.0.0.1:12001"
    assert to_pyserial_url("loop://") == "loop://"


def test_io_without_connection_reports_not_connected(ports):
    manager = BusConnectionManager(port_factory=ports)
    for result in (manager.write(b"x"), manager.read(1), manager.transact(b"x", 1)):
        assert result.status == BusStatus.NOT_CONNECTED
        assert result.message == NOT_CONNECTED_MESSAGE


def test_reset_builds_i2c_with_numeric_address(ports):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState(bus_type=BusType.I2C, terminal_node_name="42", target_node_name="imu")
    result = manager.reset(state)
    assert result.ok
    assert isinstance(manager.connection, I2CConnection)
    assert manager.connection.master_address == 42
    assert manager.connection.target == "imu"


@pytest.mark.parametrize("bus_type, what", [(BusType.I2C, "I2C address"), (BusType.CAN, "CAN identifier")])
def test_reset_falls_back_to_127_for_bad_master_id(ports, bus_type, what):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState(bus_type=bus_type, terminal_node_name="terminal")
    result = manager.reset(state)
    assert result.ok
    assert state.terminal_node_name == "127"
    assert what in result.message
    assert "Defaulting to 127" in result.message


def test_master_id_uses_leading_digits(ports):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState(bus_type=BusType.I2C, terminal_node_name="42abc")
    result = manager.reset(state)
    assert result.message == ""
    assert manager.connection.master_address == 42
    assert state.terminal_node_name == "42abc"


def test_reset_closes_previous_connection(ports):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState()
    manager.reset(state)
    first = ports.port
    state.bus_type = BusType.SPI
    manager.reset(state)
    assert first.closed
    assert not ports.port.closed
    assert isinstance(manager.connection, SPIConnection)
    assert manager.reset_count == 2


def test_reset_failure_leaves_slot_empty(ports):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState(connection_string="tcp://10.9.9.9:1")
    ports.unreachable.add(state.connection_string)
    result = manager.reset(state)
    assert result.status == BusStatus.BACKEND_ERROR
    assert "refused" in result.message
    assert manager.connection is None


def test_reset_with_invalid_target_keeps_connection(ports):
    manager = BusConnectionManager(port_factory=ports)
    state = SessionState(target_node_name="x" * 300)
    result = manager.reset(state)
    assert not result.ok
    assert manager.connection is not None
    assert manager.connection.target is None


def test_large_i2c_address_still_builds_connection(ports):
    manager = BusConnectionManager(port_factory=ports)
    result = manager.reset(SessionState(bus_type=BusType.I2C, terminal_node_name="200"))
    assert result.ok
    assert isinstance(manager.connection, I2CConnection)
    assert manager.connection.master_address == 200
    assert manager.write(b"hi").ok
    assert ports.port.requests[-1].source == b"\x00\xc8"


def test_negative_can_identifier_builds_connection(ports):
    manager = BusConnectionManager(port_factory=ports)
    assert manager.reset(SessionState(bus_type=BusType.CAN, terminal_node_name="-1")).ok
    assert manager.connection.master_identifier == -1
    manager.write(b"x")
    assert ports.port.requests[-1].source == b"\xff"


def test_framed_connection_requires_source():
    with pytest.raises(TypeError):
        FramedBusConnection("loop://", "command")


def test_read_length_capped_at_255(ports):
    manager = BusConnectionManager(port_factory=ports)
    manager.reset(SessionState())
    result = manager.read(1000)
    assert result.ok
    assert ports.port.requests[-1].read_length == 255
    assert len(result.data) == 255


def test_backend_error_becomes_result(ports):
    manager = BusConnectionManager(port_factory=ports)
    manager.reset(SessionState())
    ports.port.responses.append((1, b"node time is not on bus command"))
    result = manager.write(b"hello")
    assert result.status == BusStatus.BACKEND_ERROR
    assert result.message == "node time is not on bus command"


def test_request_frame_carries_identity_and_payload(ports):
    manager = BusConnectionManager(port_factory=ports)
    manager.reset(SessionState(bus_type=BusType.CAN, terminal_node_name="291", target_node_name="rw",
                               bus_name="can_0"))
    manager.transact(b"\x01\x02", 4)
    request = ports.port.requests[-1]
    assert request.op == frames.OP_TRANSACT
    assert request.bus_type == BusType.CAN.value
    assert request.source == b"\x01\x23"
    assert request.target == b"rw"
    assert request.bus == b"can_0"
    assert request.read_length == 4
    assert request.data == b"\x01\x02"


def test_open_port_uses_pyserial_url_handlers():
    port = open_port("loop://", timeout=0.1)
    try:
        port.write(b"ping")
        assert port.read(4) == b"ping"
    finally:
        port.close()


def test_open_port_unknown_scheme_raises_bus_error():
    with pytest.raises(BusError, match="bogus://nowhere"):
        open_port("bogus://nowhere")


def test_loopback_backend_rejects_echoed_request():
    connection = BaseConnection("terminal", "loop://", "command", timeout=0.1)
    connection.open()
    connection.set_target("time")
    try:
        with pytest.raises(BusError, match="sync"):
            connection.write(b"hi")
    finally:
        connection.close()
    assert not connection.is_open
