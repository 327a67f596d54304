"""Console logging for the ``ihub-oauth`` server.

``setup_logging()`` is called once from the CLI entry point. Library code only
ever does ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "multipart", "uvicorn.access")


class PlainFormatter(logging.Formatter):
    """Single-line text format for stderr."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send all records at *level* and above to stderr.

    Replaces any handlers already on the root logger, so calling it twice does
    not duplicate output.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(PlainFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
