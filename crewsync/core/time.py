"""Clock helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Return the current time in whole unix seconds."""
    return int(time.time())


__all__ = ["unix_now", "utcnow"]
