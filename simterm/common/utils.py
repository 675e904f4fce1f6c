import json
import logging

from simterm.communicator.bus_connections import open_port
from simterm.communicator.busManager import BusConnectionManager
from simterm.terminal.session import TerminalSession
from simterm.terminal.state import (
    DEFAULT_CONNECTION_LABEL,
    DEFAULT_CONNECTION_STRING,
    BusType,
    ConnectionRegistry,
    IOMode,
    PromptStyle,
    SessionState,
)


def load_config_file(filepath: str) -> dict | None:
    """
    Loads a specified JSON config file.

    Args:
        filepath (str): The path to the JSON file.

    Returns:
        A dictionary with the configuration, or None if an error occurs.
    """
    try:
        with open(filepath, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        logging.error(f"Configuration file not found: {filepath}")
        return None
    except json.JSONDecodeError as e:
        logging.error(f"Error parsing JSON from {filepath}: {e}")
        return None


def build_registry(config: dict) -> ConnectionRegistry:
    registry = ConnectionRegistry(config.get("nos_connection_string", DEFAULT_CONNECTION_STRING))
    for entry in config.get("other_nos_connections", []):
        name = entry.get("name", "")
        if name and name != DEFAULT_CONNECTION_LABEL:
            registry.add(name, entry.get("connection_string", ""))
    return registry


def build_state(config: dict, registry: ConnectionRegistry) -> SessionState:
    bus_type_name = config.get("bus_type", "COMMAND")
    bus_type = BusType.parse(bus_type_name)
    if bus_type is None:
        logging.error(f"Invalid bus type setting {bus_type_name}.  Setting bus type to COMMAND.")
        bus_type = BusType.COMMAND

    prompt = PromptStyle.parse(config.get("prompt", "LONG")) or PromptStyle.LONG

    return SessionState(
        bus_type=bus_type,
        terminal_node_name=config.get("terminal_node_name", "terminal"),
        target_node_name=config.get("other_node_name", "time"),
        bus_name=config.get("bus_name", "command"),
        input_mode=IOMode.HEX if config.get("input_mode", "") == "HEX" else IOMode.ASCII,
        output_mode=IOMode.HEX if config.get("output_mode", "") == "HEX" else IOMode.ASCII,
        prompt_style=prompt,
        suppress_output=bool(config.get("suppress_output", False)),
        active_connection_label=DEFAULT_CONNECTION_LABEL,
        connection_string=registry.get(DEFAULT_CONNECTION_LABEL),
    )


def create_session(config: dict, port_factory=open_port, logger: logging.Logger | None = None) -> TerminalSession:
    """
    Factory function that builds a terminal session from the parsed
    configuration. The bus connection is not opened until session.start().
    """
    logger = logger or logging.getLogger("simterm")
    registry = build_registry(config)
    state = build_state(config, registry)
    timeout = config.get("backend", {}).get("timeout", 1.0)
    manager = BusConnectionManager(port_factory=port_factory, timeout=timeout, logger=logger)
    logger.info(f"Created {state.bus_type.name} terminal session for node '{state.terminal_node_name}'")
    return TerminalSession(state, registry, manager, logger=logger)
