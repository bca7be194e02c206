import argparse
import sys
from typing import Optional, Sequence

import config
import core
from errors import ServiceError, StartupConfigError
from logger import logger

parser = argparse.ArgumentParser(prog="ipfw", description="Forward TCP connections to a single target while it stays reachable.")
parser.add_argument("listen_addr", nargs="?", default=None, help="Listen on this address, e.g. 0.0.0.0:8080 or [::]:8080")
parser.add_argument("target_addr", nargs="?", default=None, help="Redirect traffic to this address")
parser.add_argument("--v6-only", action="store_true", default=None, help="Only receive packets from IPv6 addresses")
parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parser.parse_args(argv)
    try:
        settings = config.load_settings(
            args.listen_addr,
            args.target_addr,
            args.v6_only,
            args.debug,
        )
    except StartupConfigError as e:
        logger.error(e)
        return 2
    logger.setup(settings.debug)
    try:
        core.init(settings)
    except ServiceError as e:
        logger.error(f"Fatal: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception:
        logger.traceback("Unexpected error")
        return 1
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
