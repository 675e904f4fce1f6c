import json
import logging

from simterm.common.utils import create_session, load_config_file
from simterm.communicator.bus_connections import UartConnection
from simterm.terminal.state import BusType, IOMode, PromptStyle


def test_load_config_missing_file(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        assert load_config_file(str(tmp_path / "missing.json")) is None
    assert "not found" in caplog.text


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_config_file(str(path)) is None


def test_create_session_defaults(ports):
    session = create_session({}, port_factory=ports)
    state = session.state
    assert state.bus_type == BusType.COMMAND
    assert state.terminal_node_name == "terminal"
    assert state.target_node_name == "time"
    assert state.bus_name == "command"
    assert state.connection_string == "tcp://127.0.0.1:12001"
    assert state.prompt_style == PromptStyle.LONG
    assert session.manager.connection is None


def test_create_session_from_config(tmp_path, ports):
    path = tmp_path / "terminal.json"
    path.write_text(json.dumps({
        "nos_connection_string": "tcp://sim:12001",
        "other_nos_connections": [
            {"name": "default", "connection_string": "tcp://ignored:1"},
            {"name": "", "connection_string": "tcp://ignored:2"},
            {"name": "bench", "connection_string": "tcp://bench:12001"},
        ],
        "bus_type": "uart",
        "terminal_node_name": "gps_term",
        "other_node_name": "gps",
        "bus_name": "usart_1",
        "input_mode": "HEX",
        "prompt": "SHORT",
        "startup_commands": ["SET HEX OUT", "SET SIMNODE novatel"],
    }), encoding="utf-8")
    config = load_config_file(str(path))

    session = create_session(config, port_factory=ports)
    session.start(config["startup_commands"])

    assert session.registry.items() == [("bench", "tcp://bench:12001"), ("default", "tcp://sim:12001")]
    assert session.state.input_mode == IOMode.HEX
    assert session.state.output_mode == IOMode.HEX
    assert session.state.target_node_name == "novatel"
    assert isinstance(session.manager.connection, UartConnection)
    assert session.manager.connection.target == "novatel"
    assert ports.port.uri == "tcp://sim:12001"
    assert session.prompt() == "gps_term-default->novatel@(UART)usart_1[I=H:O=H] $ "


def test_invalid_bus_type_falls_back_to_command(ports, caplog):
    with caplog.at_level(logging.ERROR):
        session = create_session({"bus_type": "usb"}, port_factory=ports)
    assert session.state.bus_type == BusType.COMMAND
    assert "Invalid bus type setting usb" in caplog.text
