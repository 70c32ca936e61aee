# app/utils/logging.py
import logging
import sys

from app.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"

_handler = logging.StreamHandler(sys.stderr)
_handler.setFormatter(logging.Formatter(_FORMAT))

_root = logging.getLogger("app")
_root.setLevel(LOG_LEVEL)
if not _root.handlers:
    _root.addHandler(_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a logger that shares the app handler."""
    if not name.startswith("app"):
        name = f"app.{name}"
    return logging.getLogger(name)
