import logging
import re
from dataclasses import dataclass, field

from simterm.communicator.busManager import BusConnectionManager
from simterm.terminal.codec import hex_decode, parse_leading_int, render_output
from simterm.terminal.state import BusType, ConnectionRegistry, IOMode, PromptStyle, SessionState

QUIT = "QUIT"

HELP_TEXT = """This is help for the simulator terminal program.
  The prompt shows <terminal node>-<connection name>, the <simulator node being commanded>, the (bus type) and simulator bus, and the [input:output] modes.
  Commands:
    HELP - Displays this help
    QUIT - Exits the program
    SET SIMNODE <sim node> - Sets the simulator node being commanded to '<sim node>'
    SET SIMBUS <sim bus> - Sets the simulator bus for the simulator node being commanded to '<sim bus>'
    SET SIMBUSTYPE <bus type> - Sets the simulator bus type for the simulator node being commanded to '<bus type>'
        (BASE, I2C, CAN, SPI, UART, COMMAND are valid)
    SET TERMNODE <term node> - Sets the name of this terminal's node to '<term node>'
    SET <ASCII|HEX> [IN|OUT] - Sets the terminal mode to ASCII mode or HEX mode; optionally IN or OUT only
    SET PROMPT <LONG|SHORT|NONE> - Sets the prompt to long or short format, or turns it off
    SUPPRESS OUTPUT <ON|OFF> - Turns command output on or off
    LIST NOS CONNECTIONS - Lists all of the known NOS Engine connection strings along with a name for selecting them
    SET NOS CONNECTION <name> - Sets the NOS Engine connection to the one associated with <name> (initially "default")
    ADD NOS CONNECTION <name> <uri> - Adds NOS Engine URI connection string <uri> to the list of known connection strings and associates it with <name>
    WRITE <data> - Writes <data> to the current node. Interprets <data> as ascii or hex depending on input setting.
    READ <length> - Reads the given number of bytes from the current node.
    TRANSACT <read length> <data> - Performs a transaction. Sends the given data, and expects a return value of the given length.
             Interprets everything after the first space after <read length> as data to be written."""


@dataclass
class Command:
    """One input line split into original-case tokens and uppercased keywords."""
    line: str
    tokens: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, line: str):
        line = line.strip()
        tokens = line.split()
        return cls(line, tokens, [t.upper() for t in tokens])

    def matches(self, *keywords: str, count: int | None = None) -> bool:
        """True if the leading keywords match and, when given, the token count is exact."""
        if count is not None and len(self.tokens) != count:
            return False
        return tuple(self.keywords[:len(keywords)]) == keywords

    def rest_after(self, n: int) -> str:
        """The raw text that follows the first n tokens, original case."""
        rest = self.line
        for token in self.tokens[:n]:
            rest = rest[rest.index(token) + len(token):]
        return rest


class CommandInterpreter:
    """
    Turns one line of input into a state change and/or a bus operation and
    returns the text to show the user. Nothing raised by the bus escapes
    process().
    """
    def __init__(self, state: SessionState, registry: ConnectionRegistry, manager: BusConnectionManager,
                 logger: logging.Logger | None = None):
        self.state = state
        self.registry = registry
        self.manager = manager
        self.log = logger or logging.getLogger(__name__)

    def reset_connection(self) -> str:
        return self.manager.reset(self.state).message

    def process(self, line: str) -> str:
        cmd = Command.parse(line)
        if not cmd.tokens:
            return ""
        self.log.debug(f"Processing command: '{cmd.line}'")

        if cmd.matches("HELP", count=1):
            return HELP_TEXT
        elif cmd.matches("QUIT", count=1):
            return QUIT
        elif cmd.matches("SET", "SIMNODE", count=3):
            return self._set_sim_node(cmd.tokens[2])
        elif cmd.matches("SET", "SIMBUS", count=3):
            return self._set_sim_bus(cmd.tokens[2])
        elif cmd.matches("SET", "SIMBUSTYPE", count=3):
            return self._set_sim_bus_type(cmd.tokens[2])
        elif cmd.matches("SET", "TERMNODE", count=3):
            self.state.terminal_node_name = cmd.tokens[2]
            return self.reset_connection()
        elif cmd.matches("SET", "ASCII") or cmd.matches("SET", "HEX"):
            return self._set_mode(cmd)
        elif cmd.matches("SET", "PROMPT", count=3):
            return self._set_prompt(cmd.tokens[2])
        elif cmd.matches("SUPPRESS", "OUTPUT", count=3):
            return self._set_suppress_output(cmd.keywords[2])
        elif cmd.matches("LIST", "NOS", "CONNECTIONS", count=3):
            return "\n".join(f"    name={label}, connection string={uri}" for label, uri in self.registry.items())
        elif cmd.matches("SET", "NOS", "CONNECTION", count=4):
            return self._set_nos_connection(cmd.tokens[3])
        elif cmd.matches("ADD", "NOS", "CONNECTION", count=5):
            self.registry.add(cmd.tokens[3], cmd.tokens[4])
            self.log.info(f"Added connection '{cmd.tokens[3]}' = {cmd.tokens[4]}")
            return ""
        elif cmd.matches("WRITE") and len(cmd.tokens) >= 2:
            return self._write(cmd.rest_after(1).strip())
        elif cmd.matches("READ", count=2):
            return self._read(cmd.tokens[1])
        elif cmd.matches("TRANSACT") and len(cmd.tokens) >= 3:
            return self._transact(cmd.rest_after(1).lstrip())

        return f"Unrecognized command \"{cmd.line}\". Type \"HELP\" for help."

    # --- Settings ---

    def _set_sim_node(self, name: str) -> str:
        result = self.manager.set_target(name)
        if result.ok:
            self.state.target_node_name = name
        return result.message

    def _set_sim_bus(self, name: str) -> str:
        if name == self.state.bus_name:
            return f"Already on bus {name}"
        self.state.bus_name = name
        return self.reset_connection()

    def _set_sim_bus_type(self, text: str) -> str:
        bus_type = BusType.parse(text)
        if bus_type is None:
            return f"Invalid bus type setting {text}.  Not changing bus type."
        self.state.bus_type = bus_type
        return self.reset_connection()

    def _set_mode(self, cmd: Command) -> str:
        mode = IOMode[cmd.keywords[1]]
        if len(cmd.tokens) == 2:
            self.state.input_mode = mode
            self.state.output_mode = mode
        elif len(cmd.tokens) == 3 and cmd.keywords[2] == "IN":
            self.state.input_mode = mode
        elif len(cmd.tokens) == 3 and cmd.keywords[2] == "OUT":
            self.state.output_mode = mode
        else:
            return f"Unrecognized command \"{cmd.line}\". Type \"HELP\" for help."
        return ""

    def _set_prompt(self, text: str) -> str:
        style = PromptStyle.parse(text)
        if style is None:
            return f"Invalid prompt style specified {text}"
        self.state.prompt_style = style
        return ""

    def _set_suppress_output(self, value: str) -> str:
        if value not in ("ON", "OFF"):
            return f"Invalid suppress output setting {value}"
        self.state.suppress_output = value == "ON"
        return ""

    def _set_nos_connection(self, label: str) -> str:
        uri = self.registry.get(label)
        if uri is None:
            return f"Invalid connection name \"{label}\""
        if uri == self.state.connection_string:
            return f"Already using connection string {uri}"

        previous = self.state.connection_string
        self.state.connection_string = uri
        result = self.manager.reset(self.state)
        if result.ok:
            self.state.active_connection_label = label
            return result.message

        # Fall back to the connection we had so the label and URI stay in step.
        self.log.warning(f"Switching to connection '{label}' failed, restoring {previous}")
        self.state.connection_string = previous
        restored = self.manager.reset(self.state)
        return "\n".join(m for m in (result.message, restored.message) if m)

    # --- Bus I/O ---

    def _payload(self, text: str) -> bytes:
        if self.state.input_mode == IOMode.HEX:
            return hex_decode(text)
        return text.encode("utf-8")

    def _write(self, text: str) -> str:
        result = self.manager.write(self._payload(text))
        return result.message

    def _read(self, length_text: str) -> str:
        length = parse_leading_int(length_text) or 0
        result = self.manager.read(length)
        if not result.ok:
            return result.message
        return render_output(result.data, self.state.output_mode)

    def _transact(self, rest: str) -> str:
        length_text, payload = re.split(r"\s", rest, maxsplit=1)
        length = parse_leading_int(length_text)
        if length is None:
            return f"\"{length_text}\" is not a valid number."
        result = self.manager.transact(self._payload(payload), length)
        if not result.ok:
            return result.message
        return render_output(result.data, self.state.output_mode)
