"""Core configuration and infrastructure helpers."""

from .config import (
    DATABASE_URL,
    DRAIN_INTERVAL_SECONDS,
    EVENT_QUEUE_MAXSIZE,
    GOOGLE_PRIVATE_KEY,
    GOOGLE_SERVICE_EMAIL,
    GOOGLE_SHEET_ID,
    LOG_LEVEL,
    PORT,
    START_WORKER,
    STRAVA_CLIENT_ID,
    STRAVA_CLIENT_SECRET,
    STRAVA_REDIRECT_URI,
    STRAVA_VERIFY_TOKEN,
)
from .database import build_engine, engine, init_db
from .log import configure_logging
from .time import unix_now, utcnow

__all__ = [
    "DATABASE_URL",
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
    "build_engine",
    "configure_logging",
    "engine",
    "init_db",
    "unix_now",
    "utcnow",
]
