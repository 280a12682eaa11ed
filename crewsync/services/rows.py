"""Tab schemas and the mapping from Strava payloads to sheet rows."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

ATHLETES_TAB = "athletes"
ACTIVITIES_TAB = "activities"
EFFORTS_TAB = "segment_efforts"
INBOX_TAB = "inbox"

ATHLETES_HEADERS: Tuple[str, ...] = (
    "athlete_id",
    "athlete_name",
    "access_token",
    "refresh_token",
    "expires_at",
)

INBOX_HEADERS: Tuple[str, ...] = (
    "ts",
    "object_type",
    "aspect_type",
    "object_id",
    "owner_id",
    "raw_json",
)

ACTIVITIES_HEADERS: Tuple[str, ...] = (
    "activity_id", "athlete_id", "athlete_name", "name", "sport_type",
    "distance_m", "moving_time_s", "elapsed_time_s", "total_elev_gain_m",
    "start_date", "start_date_local", "timezone", "utc_offset_sec",
    "start_lat", "start_lng", "gear_id",
    "avg_speed_m_s", "max_speed_m_s",
    "has_heartrate", "avg_heartrate", "max_heartrate", "suffer_score",
    "kudos_count", "comment_count", "achievement_count",
    "visibility", "is_trainer", "is_commute",
    "device_name", "map_polyline", "created_at",
    "is_night_run", "is_5k_plus", "local_hour", "week_start", "month",
    "efforts_scanned",
)

EFFORTS_HEADERS: Tuple[str, ...] = (
    "activity_id", "athlete_id", "segment_id", "segment_name",
    "elapsed_time_s", "moving_time_s",
    "start_date", "start_date_local",
    "pr_rank", "kom_rank", "distance_m",
    "average_grade", "elev_high_m", "elev_low_m",
    "segment_start_lat", "segment_start_lng",
    "segment_end_lat", "segment_end_lng",
    "week_start", "month",
)

NIGHT_RUN_START_HOUR = 22
FIVE_K_METERS = 5000


def parse_local_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse Strava's ``start_date_local`` as naive wall-clock time.

    Strava suffixes local timestamps with ``Z`` even though they are not UTC,
    so any zone marker is dropped rather than converted.
    """

    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def week_start(moment: datetime) -> str:
    """Return the Sunday that starts ``moment``'s week as ``YYYY-MM-DD``."""

    days_since_sunday = (moment.weekday() + 1) % 7
    return (moment - timedelta(days=days_since_sunday)).date().isoformat()


def month_bucket(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def derive_local_fields(start_date_local: Optional[str], distance: Any) -> Dict[str, Any]:
    moment = parse_local_timestamp(start_date_local)
    try:
        is_5k = float(distance or 0) >= FIVE_K_METERS
    except (TypeError, ValueError):
        is_5k = False
    if moment is None:
        return {"is_night_run": "", "is_5k_plus": is_5k, "local_hour": "", "week_start": "", "month": ""}
    return {
        "is_night_run": moment.hour >= NIGHT_RUN_START_HOUR,
        "is_5k_plus": is_5k,
        "local_hour": moment.hour,
        "week_start": week_start(moment),
        "month": month_bucket(moment),
    }


def _cell(value: Any) -> Any:
    return "" if value is None else value


def _latlng(pair: Any, index: int) -> Any:
    if isinstance(pair, (list, tuple)) and len(pair) > index:
        return _cell(pair[index])
    return ""


def map_activity_row(athlete_name: Optional[str], athlete_id: Any, activity: Mapping[str, Any]) -> List[Any]:
    """Flatten a detailed activity into a row ordered like ``ACTIVITIES_HEADERS``."""

    derived = derive_local_fields(activity.get("start_date_local"), activity.get("distance"))
    polyline = (activity.get("map") or {}).get("summary_polyline")
    return [
        _cell(activity.get("id")),
        _cell(athlete_id),
        athlete_name or "",
        _cell(activity.get("name")),
        _cell(activity.get("sport_type")),
        _cell(activity.get("distance")),
        _cell(activity.get("moving_time")),
        _cell(activity.get("elapsed_time")),
        _cell(activity.get("total_elevation_gain")),
        _cell(activity.get("start_date")),
        _cell(activity.get("start_date_local")),
        _cell(activity.get("timezone")),
        _cell(activity.get("utc_offset")),
        _latlng(activity.get("start_latlng"), 0),
        _latlng(activity.get("start_latlng"), 1),
        _cell(activity.get("gear_id")),
        _cell(activity.get("average_speed")),
        _cell(activity.get("max_speed")),
        bool(activity.get("has_heartrate")),
        _cell(activity.get("average_heartrate")),
        _cell(activity.get("max_heartrate")),
        _cell(activity.get("suffer_score")),
        _cell(activity.get("kudos_count")),
        _cell(activity.get("comment_count")),
        _cell(activity.get("achievement_count")),
        _cell(activity.get("visibility")),
        _cell(activity.get("trainer")),
        _cell(activity.get("commute")),
        _cell(activity.get("device_name")),
        _cell(polyline),
        _cell(activity.get("created_at")),
        derived["is_night_run"],
        derived["is_5k_plus"],
        derived["local_hour"],
        derived["week_start"],
        derived["month"],
        True,
    ]


def map_effort_row(athlete_id: Any, activity: Mapping[str, Any], effort: Mapping[str, Any]) -> List[Any]:
    """Flatten one segment effort into a row ordered like ``EFFORTS_HEADERS``."""

    segment = effort.get("segment") or {}
    moment = parse_local_timestamp(effort.get("start_date_local"))
    return [
        _cell(activity.get("id")),
        _cell(athlete_id),
        _cell(segment.get("id")),
        _cell(segment.get("name")),
        _cell(effort.get("elapsed_time")),
        _cell(effort.get("moving_time")),
        _cell(effort.get("start_date")),
        _cell(effort.get("start_date_local")),
        _cell(effort.get("pr_rank")),
        _cell(effort.get("kom_rank")),
        _cell(segment.get("distance")),
        _cell(segment.get("average_grade")),
        _cell(segment.get("elevation_high")),
        _cell(segment.get("elevation_low")),
        _latlng(segment.get("start_latlng"), 0),
        _latlng(segment.get("start_latlng"), 1),
        _latlng(segment.get("end_latlng"), 0),
        _latlng(segment.get("end_latlng"), 1),
        week_start(moment) if moment else "",
        month_bucket(moment) if moment else "",
    ]


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def webhook_cell_updates(updates: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Translate a webhook ``updates`` object into ``{header: value}`` for the activities tab."""

    if not updates:
        return {}
    cells: Dict[str, Any] = {}
    if "title" in updates:
        cells["name"] = updates["title"]
    if "visibility" in updates:
        cells["visibility"] = updates["visibility"]
    elif "private" in updates:
        cells["visibility"] = "only_me" if _truthy(updates["private"]) else "everyone"
    if "type" in updates:
        cells["sport_type"] = updates["type"]
    elif "sport_type" in updates:
        cells["sport_type"] = updates["sport_type"]
    return cells


def inbox_row(received_at: str, event: Mapping[str, Any], raw_json: str) -> List[Any]:
    return [
        received_at,
        event.get("object_type") or "",
        event.get("aspect_type") or "",
        event.get("object_id") or "",
        event.get("owner_id") or "",
        raw_json,
    ]


__all__ = [
    "ACTIVITIES_HEADERS",
    "ACTIVITIES_TAB",
    "ATHLETES_HEADERS",
    "ATHLETES_TAB",
    "EFFORTS_HEADERS",
    "EFFORTS_TAB",
    "FIVE_K_METERS",
    "INBOX_HEADERS",
    "INBOX_TAB",
    "NIGHT_RUN_START_HOUR",
    "derive_local_fields",
    "inbox_row",
    "map_activity_row",
    "map_effort_row",
    "month_bucket",
    "parse_local_timestamp",
    "webhook_cell_updates",
    "week_start",
]
