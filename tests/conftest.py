"""Fake simulator backend shared by the terminal tests."""

import pytest

from simterm.communicator import frames
from simterm.communicator.busManager import BusConnectionManager
from simterm.communicator.errors import BusError
from simterm.terminal.session import TerminalSession
from simterm.terminal.state import ConnectionRegistry, SessionState


class FakePort:
    """Stands in for a pyserial port; answers every request frame immediately."""

    def __init__(self, uri: str, timeout: float):
        self.uri = uri
        self.timeout = timeout
        self.requests: list[frames.Request] = []
        self.responses: list = []
        self.closed = False
        self._rx = bytearray()

    def write(self, data: bytes):
        request = frames.decode_request(bytes(data))
        self.requests.append(request)
        if self.responses:
            status, payload = self.responses.pop(0)
        else:
            status, payload = 0, bytes(range(request.read_length))
        self._rx += frames.encode_reply(status, payload)

    def read(self, n: int) -> bytes:
        chunk = bytes(self._rx[:n])
        del self._rx[:n]
        return chunk

    def close(self):
        self.closed = True


class PortFactory:
    def __init__(self):
        self.ports: list[FakePort] = []
        self.unreachable: set[str] = set()

    def __call__(self, uri: str, timeout: float = 1.0) -> FakePort:
        if uri in self.unreachable:
            raise BusError(f"Unable to open simulator connection {uri}: refused")
        port = FakePort(uri, timeout)
        self.ports.append(port)
        return port

    @property
    def port(self) -> FakePort:
        return self.ports[-1]


@pytest.fixture
def ports():
    return PortFactory()


@pytest.fixture
def session(ports):
    state = SessionState()
    registry = ConnectionRegistry(state.connection_string)
    manager = BusConnectionManager(port_factory=ports)
    terminal = TerminalSession(state, registry, manager)
    terminal.start()
    return terminal
