import asyncio
import logging

from simterm.terminal.interpreter import QUIT
from simterm.terminal.session import TerminalSession

DEFAULT_MAX_LINE_LENGTH = 1024


class UdpTerminalProtocol(asyncio.DatagramProtocol):
    def __init__(self, server_logic):
        self.server_logic = server_logic

    def connection_made(self, transport):
        self.server_logic.transport = transport

    def datagram_received(self, data, addr):
        self.server_logic.handle_datagram(data, addr)

    def error_received(self, exc):
        self.server_logic.log.warning(f"UDP terminal socket error: {exc}")


class UdpTerminalServer:
    """
    Stateless request/response terminal: every datagram is one command line.
    The result and the next prompt go back to the sender as two datagrams.
    A QUIT command stops the server.
    """
    def __init__(self, session: TerminalSession, host: str = "0.0.0.0", port: int = 5555,
                 max_line_length: int = DEFAULT_MAX_LINE_LENGTH, logger: logging.Logger | None = None):
        self.session = session
        self.host = host
        self.port = port
        self.max_line_length = max_line_length
        self.log = logger or logging.getLogger(__name__)
        self.transport = None
        self.is_running = False
        self._done: asyncio.Future | None = None

    @property
    def address(self) -> tuple[str, int] | None:
        if self.transport is None:
            return None
        return self.transport.get_extra_info("sockname")[:2]

    async def start(self):
        loop = asyncio.get_running_loop()
        self._done = loop.create_future()
        await loop.create_datagram_endpoint(lambda: UdpTerminalProtocol(self),
                                            local_addr=(self.host, self.port))
        self.is_running = True
        self.log.info(f"UDP terminal listening on {self.address[0]}:{self.address[1]}")

    async def wait_closed(self):
        """Returns once a QUIT command has been received or stop() was called."""
        if self._done is not None:
            await self._done

    async def stop(self):
        self.is_running = False
        if self.transport is not None:
            self.transport.close()
            self.transport = None
        if self._done is not None and not self._done.done():
            self._done.set_result(True)
        self.log.info("UDP terminal stopped.")

    def _send(self, text: str, addr):
        if not text or self.session.suppress_output or self.transport is None:
            return
        self.transport.sendto(text.encode("utf-8"), addr)

    def handle_datagram(self, data: bytes, addr):
        if not self.is_running:
            return
        if len(data) > self.max_line_length:
            self.log.warning(f"Truncating {len(data)} byte command from {addr} to {self.max_line_length} bytes")
            data = data[:self.max_line_length]

        line = data.decode("utf-8", errors="replace")
        self.log.debug(f"Received from {addr}: '{line.strip()}'")
        result = self.session.process(line)
        self._send(result, addr)

        if result == QUIT:
            self.log.info(f"QUIT received from {addr}.")
            self.is_running = False
            if self._done is not None and not self._done.done():
                self._done.set_result(True)
            return
        self._send(self.session.prompt(), addr)
