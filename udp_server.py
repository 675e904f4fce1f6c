import argparse
import asyncio
import contextlib
import logging

from simterm.common.utils import load_config_file, create_session
from simterm.udp.serverLogic import DEFAULT_MAX_LINE_LENGTH, UdpTerminalServer

CONFIG = './config/terminal.json'


async def main(config_path: str = CONFIG):
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    session = None
    server = None

    try:
        logging.info("Loading configuration...")
        config = load_config_file(config_path)
        if not config:
            raise RuntimeError("Failed to load configuration.")

        session = create_session(config)
        session.start(config.get("startup_commands", []))

        udp_config = config.get("udp", {})
        server = UdpTerminalServer(
            session,
            host=udp_config.get("host", "0.0.0.0"),
            port=udp_config.get("port", 5555),
            max_line_length=udp_config.get("max_line_length", DEFAULT_MAX_LINE_LENGTH),
        )
        await server.start()
        await server.wait_closed()

    except (KeyboardInterrupt, asyncio.CancelledError):
        logging.info("Shutdown signal received.")
    except Exception as e:
        logging.critical(f"An unhandled exception occurred: {e}", exc_info=True)
    finally:
        logging.info("Starting graceful shutdown...")
        if server:
            await server.stop()
        if session:
            logging.info("Closing bus connection...")
            session.close()
        logging.info("Shutdown complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="UDP simulator bus terminal")
    parser.add_argument("--config", default=CONFIG, help="Path to the terminal JSON config")
    args = parser.parse_args()
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main(args.config))
