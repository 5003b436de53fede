from __future__ import annotations

import logging
import sys


def ensure_console_logger(
    logger: logging.Logger,
    handler_name: str,
    *,
    level: int = logging.INFO,
    fmt: str = "%(levelname)s %(name)s: %(message)s",
) -> None:
    """Attach a named stdout handler to *logger*, or retune the existing one."""

    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, "name", None) == handler_name:
            handler.setLevel(level)
            return
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.name = handler_name
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
