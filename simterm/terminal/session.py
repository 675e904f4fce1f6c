import logging
from threading import Lock

from simterm.communicator.busManager import BusConnectionManager
from simterm.terminal.interpreter import CommandInterpreter
from simterm.terminal.prompt import format_prompt
from simterm.terminal.state import ConnectionRegistry, SessionState


class TerminalSession:
    """
    One terminal: its settings, known connections, the live bus connection and
    the interpreter that drives them. process() and prompt() are serialized so
    more than one transport can share a session.
    """
    def __init__(self, state: SessionState, registry: ConnectionRegistry, manager: BusConnectionManager,
                 logger: logging.Logger | None = None):
        self.state = state
        self.registry = registry
        self.manager = manager
        self.log = logger or logging.getLogger(__name__)
        self.interpreter = CommandInterpreter(state, registry, manager, logger=self.log)
        self._lock = Lock()

    def start(self, startup_commands: list[str] | None = None):
        """Builds the initial bus connection, then runs any startup commands."""
        with self._lock:
            message = self.interpreter.reset_connection()
            if message:
                self.log.warning(message)
            for line in startup_commands or []:
                self.log.info(f"Startup command: '{line}'")
                result = self.interpreter.process(line)
                if result:
                    self.log.info(result.rstrip("\n"))

    def process(self, line: str) -> str:
        with self._lock:
            return self.interpreter.process(line)

    def prompt(self) -> str:
        with self._lock:
            return format_prompt(self.state)

    @property
    def suppress_output(self) -> bool:
        return self.state.suppress_output

    def close(self):
        with self._lock:
            self.manager.close()
