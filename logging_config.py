"""
Logging configuration for cleaner scanner output.

Usage:
    import logging_config
    logging_config.setup()
"""

import logging
import sys


def setup(level=logging.INFO):
    """
    Configure logging for readable scan output.

    - Quiets per-request logs from web3, aiohttp and urllib3
    - Uses shorter timestamp format (HH:MM:SS instead of full datetime)
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%H:%M:%S"
    )
    console.setFormatter(formatter)
    root.addHandler(console)

    # Suppress noisy loggers
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # get_logger() gives module loggers their own stderr handler at INFO;
    # route them through the root handler instead so each line prints once
    for name in list(logging.root.manager.loggerDict):
        if name.split(".")[0] == "pool_arbitrage":
            module_logger = logging.getLogger(name)
            module_logger.handlers.clear()
            module_logger.setLevel(level)
    logging.getLogger("pool_arbitrage").setLevel(level)


def setup_minimal():
    """Only warnings and errors, e.g. chunk failures."""
    setup(level=logging.WARNING)


def setup_debug():
    """
    Verbose logging for debugging.
    Shows every skipped record and RPC provider requests.
    """
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
