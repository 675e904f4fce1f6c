import logging
import socket

PROMPT_SUFFIX = " $ "


class UdpTerminalClient:
    """Sends command lines to a UDP terminal and collects the replies."""

    def __init__(self, host: str, port: int, timeout: float = 0.5, buffer_size: int = 4096):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.buffer_size = buffer_size
        self.sock = None

    def connect(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.connect((self.host, self.port))
        self.sock.settimeout(self.timeout)
        logging.info(f"Sending commands to {self.host}:{self.port}")

    def close(self):
        if self.sock:
            self.sock.close()
            self.sock = None

    def send(self, line: str) -> list[str]:
        """Sends one command and returns every reply datagram that arrives before the timeout."""
        if self.sock is None:
            self.connect()
        self.sock.send(line.encode("utf-8"))
        replies = []
        while True:
            try:
                data = self.sock.recv(self.buffer_size)
            except socket.timeout:
                break
            except ConnectionRefusedError:
                logging.error(f"Nothing is listening on {self.host}:{self.port}")
                break
            replies.append(data.decode("utf-8", errors="replace"))
        return replies

    def run(self):
        """Interactive loop. The last reply of each exchange is the terminal's prompt."""
        prompt = "> "
        try:
            while True:
                try:
                    line = input(prompt)
                except EOFError:
                    break
                replies = self.send(line)
                if line.strip().upper() == "QUIT":
                    break
                # the server sends the next prompt last, unless prompts are off
                if replies:
                    prompt = replies.pop() if replies[-1].endswith(PROMPT_SUFFIX) else "> "
                for text in replies:
                    print(text, end="" if text.endswith("\n") else "\n")
        except KeyboardInterrupt:
            print()
        finally:
            self.close()
