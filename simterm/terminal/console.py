import logging
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from simterm.terminal.interpreter import QUIT
from simterm.terminal.session import TerminalSession

BANNER = "This is the simulator terminal program.  Type 'HELP' for help.\n"
GOODBYE = "SimTerminal is quitting!"


class CommandHistory(InMemoryHistory):
    """In-memory line history that skips blank lines."""

    def append_string(self, string: str) -> None:
        if string.strip():
            super().append_string(string)


class ConsoleTerminal:
    """
    Line-oriented terminal on stdin/stdout. Input comes from a prompt_toolkit
    PromptSession, so earlier commands can be recalled with the arrow keys.
    Passing input_func replaces the prompt session (tests use this); lines
    read through it still land in the history.
    """

    def __init__(self, session: TerminalSession, input_func=None, output=None,
                 logger: logging.Logger | None = None):
        self.session = session
        self.input_func = input_func
        self.output = output or sys.stdout
        self.history = CommandHistory()
        self.log = logger or logging.getLogger(__name__)

    def _emit(self, text: str):
        if not text or self.session.suppress_output:
            return
        self.output.write(text if text.endswith("\n") else text + "\n")
        self.output.flush()

    def _reader(self):
        if self.input_func is not None:
            def read_line(prompt: str) -> str:
                line = self.input_func(prompt)
                self.history.append_string(line)
                return line
            return read_line
        # PromptSession adds accepted lines to the history itself
        return PromptSession(history=self.history).prompt

    def run(self) -> int:
        read_line = self._reader()
        self.output.write(BANNER + "\n")
        try:
            while True:
                try:
                    line = read_line(self.session.prompt())
                except EOFError:
                    break
                result = self.session.process(line)
                if result == QUIT:
                    break
                self._emit(result)
        except KeyboardInterrupt:
            self.log.info("User interrupted the terminal.")
        self.output.write(GOODBYE + "\n")
        return 0
