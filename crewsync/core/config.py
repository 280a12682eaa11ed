"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=False)


def _require_env(name: str, *fallbacks: str) -> str:
    """Return a required environment variable or raise an error."""

    for candidate in (name, *fallbacks):
        value = os.getenv(candidate)
        if value:
            return value
    raise RuntimeError(f"Missing required environment variable: {name}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def normalize_private_key(raw: Optional[str]) -> str:
    """Undo the quoting and escaped newlines hosting dashboards add to PEM keys."""

    key = (raw or "").strip()
    if len(key) >= 2 and key.startswith('"') and key.endswith('"'):
        key = key[1:-1]
    return key.replace("\\n", "\n")


# Strava OAuth configuration -------------------------------------------------
_STRAVA_CLIENT_ID_RAW = _require_env("STRAVA_CLIENT_ID")
try:
    STRAVA_CLIENT_ID = int(_STRAVA_CLIENT_ID_RAW)
except ValueError as exc:  # pragma: no cover
    raise RuntimeError("STRAVA_CLIENT_ID must be an integer") from exc

STRAVA_CLIENT_SECRET = _require_env("STRAVA_CLIENT_SECRET")
STRAVA_REDIRECT_URI = _require_env("STRAVA_REDIRECT_URI", "REDIRECT_URI")
STRAVA_VERIFY_TOKEN = (os.getenv("STRAVA_VERIFY_TOKEN") or "").strip()


# Google Sheets --------------------------------------------------------------
GOOGLE_SERVICE_EMAIL = (os.getenv("GOOGLE_SERVICE_EMAIL") or "").strip()
GOOGLE_PRIVATE_KEY = normalize_private_key(os.getenv("GOOGLE_PRIVATE_KEY"))
GOOGLE_SHEET_ID = (os.getenv("GOOGLE_SHEET_ID") or "").strip()


# Runtime behaviour ----------------------------------------------------------
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("DATA_DIR", str(_PROJECT_ROOT / "data")))
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'app.db'}"

EVENT_QUEUE_MAXSIZE = _env_int("EVENT_QUEUE_MAXSIZE", 1000)
DRAIN_INTERVAL_SECONDS = _env_int("DRAIN_INTERVAL_SECONDS", 3)
START_WORKER = _env_bool("START_WORKER", True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = _env_int("PORT", 3000)


__all__ = [
    "DATABASE_URL",
    "DATA_DIR",
    "DRAIN_INTERVAL_SECONDS",
    "EVENT_QUEUE_MAXSIZE",
    "GOOGLE_PRIVATE_KEY",
    "GOOGLE_SERVICE_EMAIL",
    "GOOGLE_SHEET_ID",
    "LOG_LEVEL",
    "PORT",
    "START_WORKER",
    "STRAVA_CLIENT_ID",
    "STRAVA_CLIENT_SECRET",
    "STRAVA_REDIRECT_URI",
    "STRAVA_VERIFY_TOKEN",
    "normalize_private_key",
]
