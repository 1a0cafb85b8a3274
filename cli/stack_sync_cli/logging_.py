from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
# log every request and connection at INFO
CHATTY_LOGGERS = ("httpx", "httpcore")


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to the current `sys.stderr`, not the one seen at setup."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)
        self.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))

    @property
    def stream(self):
        return sys.stderr


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    if not any(isinstance(h, _StderrHandler) for h in root.handlers):
        root.addHandler(_StderrHandler())
    root.setLevel(level)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level)
