"""
Opt-in logging setup for scripts and services built on multicallkit.

The library itself only calls `logging.getLogger("multicallkit...")` and
never configures handlers. An application that wants the chunk planning,
chunk failures and timeouts on its console (or in a file) calls
`setup_logging()` once at start-up.
"""

import sys
import logging
from typing import Iterable, List, Optional

PACKAGE_LOGGER = "multicallkit"
FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(debug: bool = False, to_file: Optional[str] = None,
                  quiet: Iterable[str] = ("urllib3", "web3")) -> logging.Logger:
    """
    Attach stdout (and optionally file) handlers to the multicallkit logger.

    Handlers go on the package logger, not the root one, so the host
    application's own logging setup is left untouched. Loggers named in
    `quiet` are raised to WARNING.
    """
    level = logging.DEBUG if debug else logging.INFO
    formatter = logging.Formatter(FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if to_file:
        handlers.append(logging.FileHandler(to_file, encoding="utf-8"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger
