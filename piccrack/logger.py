"""Logger construction for the command line tools."""

from __future__ import annotations

import logging
import sys

_FORMAT = "time=%(asctime)s level=%(levelname)s msg=%(message)s"


def new_logger(verbose: bool) -> logging.Logger:
    """Return a logger writing to standard output; info level only when verbose."""
    logger = logging.Logger("piccrack")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.ERROR)
    logger.propagate = False
    return logger