"""Process-wide logging setup."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = "INFO") -> None:
    """Attach one stream handler to the root logger, once."""
    root = logging.getLogger()
    if not any(getattr(handler, "_rightcode", False) for handler in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._rightcode = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level)
