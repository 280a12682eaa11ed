"""Google Sheets row store.

Spreadsheet tabs are treated as tables: row 1 holds the headers, every later
row is one record, and records are addressed by a business key found with a
linear scan of one column. Lookups are therefore O(rows) per call.

Rows are 1-based sheet row numbers throughout (the header is row 1); column
indexes are 0-based positions in the header row.

The Google client is synchronous, so every ``execute()`` runs in Starlette's
threadpool to keep the event loop free while the webhook route is serving.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, MutableSequence, Optional, Sequence

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from starlette.concurrency import run_in_threadpool

from ..core import GOOGLE_PRIVATE_KEY, GOOGLE_SERVICE_EMAIL, GOOGLE_SHEET_ID

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Wide enough for every tab this service writes.
LAST_READ_COLUMN = "ZZ"


class SheetsStoreError(RuntimeError):
    """Raised when the Sheets API rejects a request."""


class SheetsConfigError(SheetsStoreError):
    """Raised when the spreadsheet id or service account is not configured."""


def column_letter(index: int) -> str:
    """Return the A1 column name for a 1-based column number."""

    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: MutableSequence[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def quote_title(title: str) -> str:
    safe = (title or "").strip()
    if not safe:
        raise SheetsStoreError("Worksheet title must not be empty")
    return "'" + safe.replace("'", "''") + "'"


def ids_equal(a: Any, b: Any) -> bool:
    """Compare two ids the way they come back from a sheet.

    ``"15538647680"``, ``15538647680`` and ``"1.553864768e+10"`` are all the
    same activity. Numbers compare exactly, so ids past float precision stay
    distinct.
    """

    if a is None or b is None:
        return False
    left = str(a).strip()
    right = str(b).strip()
    if left == right:
        return True
    if not left or not right:
        return False
    try:
        return Decimal(left) == Decimal(right)
    except InvalidOperation:
        return False


def build_service(email: str, private_key: str):
    """Construct a Sheets v4 service authenticated as a service account."""

    if not email or not private_key:
        raise SheetsConfigError("GOOGLE_SERVICE_EMAIL and GOOGLE_PRIVATE_KEY must be set")
    info = {
        "type": "service_account",
        "client_email": email,
        "private_key": private_key,
        "token_uri": GOOGLE_TOKEN_URI,
    }
    try:
        credentials = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except ValueError as exc:
        raise SheetsConfigError(f"Invalid service account credentials: {exc}") from exc
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


class SheetsClient:
    """Table-style helpers over one spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        service=None,
        service_email: str = "",
        private_key: str = "",
    ) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service = service
        self._service_email = service_email
        self._private_key = private_key
        self._known_tabs: set[str] = set()

    @classmethod
    def from_settings(cls) -> "SheetsClient":
        return cls(
            GOOGLE_SHEET_ID,
            service_email=GOOGLE_SERVICE_EMAIL,
            private_key=GOOGLE_PRIVATE_KEY,
        )

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    def _spreadsheets(self):
        if not self._spreadsheet_id:
            raise SheetsConfigError("GOOGLE_SHEET_ID must be set")
        if self._service is None:
            self._service = build_service(self._service_email, self._private_key)
            logger.info("Sheets service ready for %s", self._service_email)
        return self._service.spreadsheets()

    async def _execute(self, request, *, title: Optional[str] = None) -> Dict[str, Any]:
        try:
            return await run_in_threadpool(request.execute) or {}
        except HttpError as exc:
            # The tab may have been removed by hand; look it up again next time.
            if title is not None:
                self._known_tabs.discard(title)
            raise SheetsStoreError(str(exc)) from exc

    async def _get_values(self, title: str, a1_range: str, **options: Any) -> List[List[Any]]:
        request = self._spreadsheets().values().get(
            spreadsheetId=self._spreadsheet_id, range=a1_range, **options
        )
        response = await self._execute(request, title=title)
        return [list(row) for row in response.get("values", [])]

    async def _update_values(self, title: str, a1_range: str, values: List[List[Any]]) -> None:
        request = self._spreadsheets().values().update(
            spreadsheetId=self._spreadsheet_id,
            range=a1_range,
            valueInputOption="RAW",
            body={"values": values},
        )
        await self._execute(request, title=title)

    async def _batch_update(self, requests: List[Dict[str, Any]]) -> None:
        request = self._spreadsheets().batchUpdate(
            spreadsheetId=self._spreadsheet_id, body={"requests": requests}
        )
        await self._execute(request)

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------
    async def sheet_ids(self) -> Dict[str, int]:
        """Return ``{title: sheetId}`` for every tab in the spreadsheet."""

        request = self._spreadsheets().get(
            spreadsheetId=self._spreadsheet_id, fields="sheets.properties"
        )
        response = await self._execute(request)
        result: Dict[str, int] = {}
        for sheet in response.get("sheets", []):
            properties = sheet.get("properties", {})
            result[properties.get("title", "")] = properties.get("sheetId")
        return result

    async def ensure_tab_with_headers(self, title: str, headers: Sequence[str]) -> bool:
        """Create ``title`` with a header row unless it already exists.

        Returns True when the tab was created. Existing tabs keep whatever
        header row they have.
        """

        if title in self._known_tabs:
            return False
        existing = await self.sheet_ids()
        created = False
        if title not in existing:
            await self._batch_update([{"addSheet": {"properties": {"title": title}}}])
            last = column_letter(len(headers))
            await self._update_values(title, f"{quote_title(title)}!A1:{last}1", [list(headers)])
            logger.info("Created tab %s with %d headers", title, len(headers))
            created = True
        self._known_tabs.add(title)
        return created

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    async def append_rows(self, title: str, rows: Iterable[Sequence[Any]]) -> int:
        values = [list(row) for row in rows]
        if not values:
            return 0
        request = self._spreadsheets().values().append(
            spreadsheetId=self._spreadsheet_id,
            range=f"{quote_title(title)}!A1",
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": values},
        )
        await self._execute(request, title=title)
        logger.info("Appended %d row(s) to %s", len(values), title)
        return len(values)

    async def read_headers(self, title: str) -> List[str]:
        values = await self._get_values(title, f"{quote_title(title)}!1:1")
        return [str(cell).strip() for cell in values[0]] if values else []

    async def header_index(self, title: str, header: str) -> Optional[int]:
        """Return the 0-based column of ``header``, or None when absent."""

        wanted = header.strip()
        for index, name in enumerate(await self.read_headers(title)):
            if name == wanted:
                return index
        return None

    async def read_column(self, title: str, column: str = "A") -> List[str]:
        """Return the values below the header in one column, as strings."""

        values = await self._get_values(title, f"{quote_title(title)}!{column}2:{column}")
        return [str(row[0]) if row else "" for row in values]

    async def read_rows(self, title: str) -> List[List[str]]:
        """Return every data row (header excluded) as displayed in the sheet."""

        values = await self._get_values(
            title,
            f"{quote_title(title)}!A2:{LAST_READ_COLUMN}",
            valueRenderOption="FORMATTED_VALUE",
            dateTimeRenderOption="FORMATTED_STRING",
        )
        return [[str(cell) for cell in row] for row in values]

    async def find_row_indices(self, title: str, header: str, value: Any) -> List[int]:
        """Return every sheet row whose ``header`` cell matches ``value``."""

        column = await self.header_index(title, header)
        if column is None:
            logger.warning("Tab %s has no %s column", title, header)
            return []
        matches: List[int] = []
        for offset, row in enumerate(await self.read_rows(title)):
            cell = row[column] if column < len(row) else None
            if ids_equal(cell, value):
                matches.append(offset + 2)
        return matches

    async def update_cell(self, title: str, row_index: int, column_index: int, value: Any) -> None:
        letter = column_letter(column_index + 1)
        await self._update_values(
            title,
            f"{quote_title(title)}!{letter}{row_index}:{letter}{row_index}", [[value]]
        )

    async def update_row(
        self, title: str, row_index: int, values: Sequence[Any], *, start_column: int = 1
    ) -> None:
        """Overwrite ``values`` into ``row_index`` starting at 1-based ``start_column``."""

        if row_index < 2:
            raise ValueError("Row index must point below the header row")
        first = column_letter(start_column)
        last = column_letter(start_column + len(values) - 1)
        await self._update_values(
            title,
            f"{quote_title(title)}!{first}{row_index}:{last}{row_index}", [list(values)]
        )

    async def delete_rows(self, title: str, row_indices: Iterable[int]) -> int:
        """Delete the given sheet rows in one batch request.

        Indices are deleted from the bottom up so earlier deletions in the
        batch do not shift the rows still to be removed.
        """

        ordered = sorted(set(row_indices), reverse=True)
        if not ordered:
            return 0
        sheet_id = (await self.sheet_ids()).get(title)
        if sheet_id is None:
            logger.warning("Cannot delete rows from missing tab %s", title)
            return 0
        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        "startIndex": row_index - 1,
                        "endIndex": row_index,
                    }
                }
            }
            for row_index in ordered
        ]
        await self._batch_update(requests)
        logger.info("Deleted %d row(s) from %s", len(ordered), title)
        return len(ordered)


__all__ = [
    "SheetsClient",
    "SheetsConfigError",
    "SheetsStoreError",
    "build_service",
    "column_letter",
    "ids_equal",
    "quote_title",
]
