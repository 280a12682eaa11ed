"""Process-wide logging configuration."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_configured = False


def configure_logging(level: str | int = logging.INFO) -> None:
    """Attach a single stream handler to the root logger.

    Safe to call more than once; uvicorn reloads and the test client both
    rebuild the app, and the handler must not be duplicated.
    """

    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root_logger.addHandler(handler)
    _configured = True
    root_logger.debug("Logging configured at %s", logging.getLevelName(level))


__all__ = ["configure_logging"]
