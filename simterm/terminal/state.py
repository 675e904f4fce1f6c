from dataclasses import dataclass
from enum import Enum

DEFAULT_CONNECTION_LABEL = "default"
DEFAULT_CONNECTION_STRING = "tcp://127.0.0.1:12001"


class BusType(Enum):
    BASE = 0
    I2C = 1
    CAN = 2
    SPI = 3
    UART = 4
    COMMAND = 5

    @classmethod
    def parse(cls, text: str):
        """Case-insensitive lookup by name. Returns None for unknown names."""
        try:
            return cls[text.strip().upper()]
        except KeyError:
            return None


class IOMode(Enum):
    ASCII = "ASCII"
    HEX = "HEX"

    @classmethod
    def parse(cls, text: str):
        try:
            return cls[text.strip().upper()]
        except KeyError:
            return None


class PromptStyle(Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"

    @classmethod
    def parse(cls, text: str):
        try:
            return cls[text.strip().upper()]
        except KeyError:
            return None


@dataclass
class SessionState:
    """Everything the prompt shows and the bus connection is built from."""
    bus_type: BusType = BusType.COMMAND
    terminal_node_name: str = "terminal"
    target_node_name: str = "time"
    bus_name: str = "command"
    input_mode: IOMode = IOMode.ASCII
    output_mode: IOMode = IOMode.ASCII
    prompt_style: PromptStyle = PromptStyle.LONG
    suppress_output: bool = False
    active_connection_label: str = DEFAULT_CONNECTION_LABEL
    connection_string: str = DEFAULT_CONNECTION_STRING


class ConnectionRegistry:
    """Named backend connection strings. The "default" label always exists."""

    def __init__(self, default_uri: str = DEFAULT_CONNECTION_STRING):
        self._connections = {DEFAULT_CONNECTION_LABEL: default_uri}

    def add(self, label: str, uri: str):
        self._connections[label] = uri

    def get(self, label: str) -> str | None:
        return self._connections.get(label)

    def __contains__(self, label: str) -> bool:
        return label in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def items(self) -> list[tuple[str, str]]:
        """Entries sorted by label, so listings are stable."""
        return sorted(self._connections.items())
