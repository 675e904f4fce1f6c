import argparse
import logging
import sys

from simterm.common.utils import load_config_file, create_session
from simterm.terminal.console import ConsoleTerminal

CONFIG = './config/terminal.json'


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Interactive simulator bus terminal")
    parser.add_argument("--config", default=CONFIG, help="Path to the terminal JSON config")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    config = load_config_file(args.config)
    if config is None:
        return 1

    session = create_session(config)
    try:
        session.start(config.get("startup_commands", []))
        return ConsoleTerminal(session).run()
    except Exception as e:
        logging.critical(f"An unhandled exception occurred: {e}", exc_info=True)
        return 1
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
