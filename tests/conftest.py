from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

_TMP = Path(tempfile.mkdtemp(prefix="crewsync-tests-"))

os.environ["STRAVA_CLIENT_ID"] = "12345"
os.environ["STRAVA_CLIENT_SECRET"] = "client-secret"
os.environ["STRAVA_REDIRECT_URI"] = "http://testserver/join-callback"
os.environ["STRAVA_VERIFY_TOKEN"] = "verify-me"
os.environ["GOOGLE_SHEET_ID"] = "sheet-1234567890"
os.environ["GOOGLE_SERVICE_EMAIL"] = "bridge@example.iam.gserviceaccount.com"
os.environ["GOOGLE_PRIVATE_KEY"] = ""
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["START_WORKER"] = "false"

import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from crewsync.app import create_app
from crewsync.core import init_db
from crewsync.services import ActivitySync, AthleteStore, EventQueue, SheetsClient
from crewsync.services import strava
from crewsync.services.rows import ATHLETES_HEADERS, ATHLETES_TAB


# ---------------------------------------------------------------------------
# Fake Google Sheets discovery service
# ---------------------------------------------------------------------------


class _FakeRequest:
    def __init__(self, callback: Callable[[], Dict[str, Any]]) -> None:
        self._callback = callback

    def execute(self) -> Dict[str, Any]:
        return self._callback()


class _FakeValues:
    def __init__(self, service: "FakeSheetsService") -> None:
        self._service = service

    def get(self, spreadsheetId: str, range: str, **options: Any):  # noqa: N802 - API compatibility
        return _FakeRequest(lambda: self._service._handle_get(range))

    def update(self, spreadsheetId: str, range: str, valueInputOption: str, body: Dict[str, Any]):  # noqa: N802
        return _FakeRequest(lambda: self._service._handle_update(range, body["values"]))

    def append(  # noqa: N802 - API compatibility
        self,
        spreadsheetId: str,
        range: str,
        valueInputOption: str,
        insertDataOption: str,
        body: Dict[str, Any],
    ):
        return _FakeRequest(lambda: self._service._handle_append(range, body["values"]))


class _FakeSpreadsheets:
    def __init__(self, service: "FakeSheetsService") -> None:
        self._service = service

    def get(self, spreadsheetId: str, **options: Any):  # noqa: N802 - API compatibility
        return _FakeRequest(self._service._handle_metadata)

    def batchUpdate(self, spreadsheetId: str, body: Dict[str, Any]):  # noqa: N802 - API compatibility
        return _FakeRequest(lambda: self._service._handle_batch_update(body))

    def values(self) -> _FakeValues:
        return _FakeValues(self._service)


_CELL = re.compile(r"^([A-Z]*)(\d*)$")


def _column_index(letters: str) -> int:
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - 64)
    return index - 1


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FakeSheetsService:
    """In-memory spreadsheet answering the subset of Sheets v4 the app uses."""

    def __init__(self) -> None:
        self.tabs: Dict[str, List[List[Any]]] = {}
        self.ids: Dict[str, int] = {}
        self.batch_requests: List[Dict[str, Any]] = []
        self.metadata_calls = 0

    def spreadsheets(self) -> _FakeSpreadsheets:
        return _FakeSpreadsheets(self)

    def add_tab(self, title: str, rows: Optional[List[List[Any]]] = None) -> None:
        self.ids[title] = max(self.ids.values(), default=99) + 1
        self.tabs[title] = [list(row) for row in rows or []]

    def data_rows(self, title: str) -> List[List[Any]]:
        return self.tabs[title][1:]

    # Internal helpers -------------------------------------------------
    @staticmethod
    def _split_range(range_spec: str) -> Tuple[str, str]:
        sheet, cells = range_spec.split("!", 1)
        if sheet.startswith("'") and sheet.endswith("'"):
            sheet = sheet[1:-1].replace("''", "'")
        return sheet, cells

    @staticmethod
    def _bounds(cells: str) -> Tuple[int, int, Optional[int], Optional[int]]:
        start, _, end = cells.partition(":")
        end = end or start
        start_col, start_row = _CELL.match(start).groups()
        end_col, end_row = _CELL.match(end).groups()
        return (
            _column_index(start_col) if start_col else 0,
            int(start_row) if start_row else 1,
            _column_index(end_col) if end_col else None,
            int(end_row) if end_row else None,
        )

    def _rows(self, title: str) -> List[List[Any]]:
        if title not in self.tabs:
            raise HttpError(
                SimpleNamespace(status=400, reason="Bad Request"),
                f'{{"error": {{"message": "Unable to parse range: {title}"}}}}'.encode(),
            )
        return self.tabs[title]

    def remove_tab(self, title: str) -> None:
        del self.tabs[title]
        del self.ids[title]

    def _handle_metadata(self) -> Dict[str, Any]:
        self.metadata_calls += 1
        return {
            "sheets": [
                {"properties": {"title": title, "sheetId": sheet_id}}
                for title, sheet_id in self.ids.items()
            ]
        }

    def _handle_get(self, range_spec: str) -> Dict[str, Any]:
        title, cells = self._split_range(range_spec)
        rows = self._rows(title)
        col0, row0, col1, row1 = self._bounds(cells)
        selected = rows[row0 - 1 : row1]
        values: List[List[str]] = []
        for row in selected:
            window = row[col0 : None if col1 is None else col1 + 1]
            shown = [_display(cell) for cell in window]
            while shown and shown[-1] == "":
                shown.pop()
            values.append(shown)
        while values and not values[-1]:
            values.pop()
        return {"values": values} if values else {}

    def _handle_update(self, range_spec: str, values: List[List[Any]]) -> Dict[str, Any]:
        title, cells = self._split_range(range_spec)
        rows = self._rows(title)
        col0, row0, _, _ = self._bounds(cells)
        for offset, new_row in enumerate(values):
            target = row0 - 1 + offset
            while len(rows) <= target:
                rows.append([])
            row = rows[target]
            while len(row) < col0 + len(new_row):
                row.append("")
            for index, value in enumerate(new_row):
                row[col0 + index] = value
        return {}

    def _handle_append(self, range_spec: str, values: List[List[Any]]) -> Dict[str, Any]:
        title, _ = self._split_range(range_spec)
        self._rows(title).extend(list(row) for row in values)
        return {}

    def _handle_batch_update(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.batch_requests.append(body)
        for request in body["requests"]:
            if "addSheet" in request:
                self.add_tab(request["addSheet"]["properties"]["title"])
            elif "deleteDimension" in request:
                spec = request["deleteDimension"]["range"]
                title = next(name for name, sid in self.ids.items() if sid == spec["sheetId"])
                del self.tabs[title][spec["startIndex"] : spec["endIndex"]]
        return {}


# ---------------------------------------------------------------------------
# Fake Strava API
# ---------------------------------------------------------------------------


class FakeStrava:
    """Stands in for the Strava HTTP functions and records how they were called."""

    def __init__(self) -> None:
        self.activities: Dict[str, Dict[str, Any]] = {}
        self.fetch_calls: List[Tuple[str, str, bool]] = []
        self.refresh_calls: List[str] = []
        self.refresh_error: Optional[strava.StravaApiError] = None
        self.refresh_response: Dict[str, Any] = {
            "access_token": "fresh-access",
            "refresh_token": "fresh-refresh",
            "expires_at": 4_000_000_000,
        }
        self.exchange_error: Optional[strava.StravaApiError] = None
        self.exchange_response: Dict[str, Any] = {
            "access_token": "new-access",
            "refresh_token": "new-refresh",
            "expires_at": 4_000_000_000,
            "athlete": {"id": 42, "firstname": "Ada", "lastname": "Lovelace"},
        }

    async def get_activity(self, access_token: str, activity_id: Any, *, include_all_efforts: bool = False):
        self.fetch_calls.append((access_token, str(activity_id), include_all_efforts))
        try:
            return self.activities[str(activity_id)]
        except KeyError:
            raise strava.StravaApiError(
                "not found", status_code=404, payload={"message": "Record Not Found"}
            ) from None

    async def refresh_access_token(self, refresh_token: str):
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return dict(self.refresh_response)

    async def exchange_code_for_token(self, code: str):
        if self.exchange_error is not None:
            raise self.exchange_error
        return dict(self.exchange_response)


def build_activity(
    activity_id: int,
    *,
    name: str = "Night Loop",
    start_date_local: str = "2024-06-15T23:10:00Z",
    distance: float = 8000.0,
    efforts: int = 2,
) -> Dict[str, Any]:
    return {
        "id": activity_id,
        "name": name,
        "sport_type": "Run",
        "distance": distance,
        "moving_time": 2400,
        "elapsed_time": 2500,
        "total_elevation_gain": 35.2,
        "start_date": "2024-06-16T06:10:00Z",
        "start_date_local": start_date_local,
        "timezone": "(GMT-08:00) America/Los_Angeles",
        "utc_offset": -25200.0,
        "start_latlng": [38.58, -121.49],
        "gear_id": "g123",
        "average_speed": 3.33,
        "max_speed": 4.8,
        "has_heartrate": True,
        "average_heartrate": 151.2,
        "max_heartrate": 176.0,
        "kudos_count": 0,
        "visibility": "everyone",
        "trainer": False,
        "commute": False,
        "map": {"summary_polyline": "abc~def"},
        "segment_efforts": [
            {
                "elapsed_time": 300 + index,
                "moving_time": 298 + index,
                "start_date": "2024-06-16T06:20:00Z",
                "start_date_local": "2024-06-15T23:20:00Z",
                "pr_rank": 1 if index == 0 else None,
                "segment": {
                    "id": 9000 + index,
                    "name": f"Segment {index}",
                    "distance": 1200.5,
                    "average_grade": 1.2,
                    "elevation_high": 40.0,
                    "elevation_low": 20.0,
                    "start_latlng": [38.5, -121.4],
                    "end_latlng": [38.6, -121.5],
                },
            }
            for index in range(efforts)
        ],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sheets_service() -> FakeSheetsService:
    return FakeSheetsService()


@pytest.fixture
def sheets(sheets_service: FakeSheetsService) -> SheetsClient:
    return SheetsClient("sheet-1234567890", service=sheets_service)


@pytest.fixture
def athletes(sheets: SheetsClient) -> AthleteStore:
    return AthleteStore(sheets)


@pytest.fixture
def activity_sync(sheets: SheetsClient, athletes: AthleteStore) -> ActivitySync:
    return ActivitySync(sheets, athletes)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(test_engine)
    return test_engine


@pytest.fixture
def broken_engine():
    """An engine whose dead-letter table was never created."""

    return create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )


@pytest.fixture
def event_queue(sheets: SheetsClient, activity_sync: ActivitySync, engine) -> EventQueue:
    return EventQueue(sheets, activity_sync, engine, maxsize=10)


@pytest.fixture
def fake_strava(monkeypatch: pytest.MonkeyPatch) -> FakeStrava:
    fake = FakeStrava()
    monkeypatch.setattr(strava, "get_activity", fake.get_activity)
    monkeypatch.setattr(strava, "refresh_access_token", fake.refresh_access_token)
    monkeypatch.setattr(strava, "exchange_code_for_token", fake.exchange_code_for_token)
    return fake


@pytest.fixture
def seed_athlete(sheets_service: FakeSheetsService) -> Callable[..., None]:
    """Write an athletes row directly into the fake spreadsheet."""

    def _seed(
        athlete_id: int = 42,
        *,
        name: str = "Ada Lovelace",
        access_token: str = "stored-access",
        refresh_token: str = "stored-refresh",
        expires_at: int = 4_000_000_000,
    ) -> None:
        if ATHLETES_TAB not in sheets_service.tabs:
            sheets_service.add_tab(ATHLETES_TAB, [list(ATHLETES_HEADERS)])
        sheets_service.tabs[ATHLETES_TAB].append(
            [athlete_id, name, access_token, refresh_token, expires_at]
        )

    return _seed


@pytest.fixture
def activity_factory() -> Callable[..., Dict[str, Any]]:
    return build_activity


@pytest.fixture
def app(sheets: SheetsClient, engine):
    return create_app(sheets=sheets, engine=engine, start_worker=False)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
