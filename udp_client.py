import argparse
import logging

from simterm.common.utils import load_config_file
from simterm.udp.client import UdpTerminalClient

CONFIG = './config/terminal.json'


def main():
    """
    Main entry point for the UDP terminal client.
    """
    parser = argparse.ArgumentParser(description="Client for the UDP simulator bus terminal")
    parser.add_argument("--config", default=CONFIG, help="Path to the terminal JSON config")
    parser.add_argument("--host", default="127.0.0.1", help="Terminal host")
    parser.add_argument("--port", type=int, help="Terminal UDP port (default from config)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    port = args.port
    if port is None:
        config = load_config_file(args.config) or {}
        port = config.get("udp", {}).get("port", 5555)

    client = UdpTerminalClient(args.host, port)
    client.connect()
    client.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nProgram terminated by user.")
