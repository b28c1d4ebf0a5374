"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; this only attaches the
stdout handler once so gunicorn captures everything.
"""
import logging
import sys

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    root = logging.getLogger("screenledger")
    root.setLevel(level.upper())

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)

    return root
