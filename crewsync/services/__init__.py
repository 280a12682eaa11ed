"""Service layer: Strava client, sheet row store and event reconciliation."""

from .activities import ActivitySync
from .athletes import AthleteStore
from .events import EventQueue
from .sheets import SheetsClient, SheetsConfigError, SheetsStoreError
from .strava import StravaApiError

__all__ = [
    "ActivitySync",
    "AthleteStore",
    "EventQueue",
    "SheetsClient",
    "SheetsConfigError",
    "SheetsStoreError",
    "StravaApiError",
]
