"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_NAME = "esop_analytics.stdout"

# Outbound HTTP libraries log every request at INFO; rate sources make many
_NOISY_LOGGERS = ("httpx", "httpcore", "opentelemetry")


def setup_logging(level: int | str = logging.INFO) -> None:
    """Send records to stdout in a single line format.

    Safe to call more than once: the stdout handler is only installed once.
    """

    root_logger = logging.getLogger()
    if not any(handler.get_name() == _HANDLER_NAME for handler in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_FORMAT", "setup_logging"]
