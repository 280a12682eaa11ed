"""Athlete credentials kept in the athletes tab, and token refresh."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..core.time import unix_now
from ..models import AthleteRecord, FreshToken
from . import strava
from .rows import ATHLETES_HEADERS, ATHLETES_TAB
from .sheets import SheetsClient, ids_equal

logger = logging.getLogger(__name__)

# Tokens this close to expiry are refreshed before use.
REFRESH_BUFFER_SECONDS = 60


class AthleteStore:
    """Read and write athlete token rows."""

    def __init__(self, sheets: SheetsClient) -> None:
        self._sheets = sheets

    async def ensure_tab(self) -> None:
        await self._sheets.ensure_tab_with_headers(ATHLETES_TAB, ATHLETES_HEADERS)

    async def find(self, athlete_id: Any) -> Optional[AthleteRecord]:
        await self.ensure_tab()
        for offset, row in enumerate(await self._sheets.read_rows(ATHLETES_TAB)):
            if row and ids_equal(row[0], athlete_id):
                return AthleteRecord.from_row(offset + 2, row)
        return None

    async def upsert(
        self,
        *,
        athlete_id: Any,
        athlete_name: str,
        access_token: str,
        refresh_token: str,
        expires_at: int,
    ) -> None:
        """Write one row per athlete, replacing the previous authorization."""

        values = [athlete_id, athlete_name, access_token, refresh_token, expires_at]
        existing = await self.find(athlete_id)
        if existing is None:
            await self._sheets.append_rows(ATHLETES_TAB, [values])
            logger.info("Added athlete %s", athlete_id)
        else:
            await self._sheets.update_row(ATHLETES_TAB, existing.row_index, values)
            logger.info("Updated athlete %s at row %d", athlete_id, existing.row_index)

    async def write_tokens(
        self, record: AthleteRecord, access_token: str, refresh_token: str, expires_at: int
    ) -> None:
        # access_token, refresh_token and expires_at are columns C:E
        await self._sheets.update_row(
            ATHLETES_TAB,
            record.row_index,
            [access_token, refresh_token, expires_at],
            start_column=3,
        )

    async def ensure_fresh_access_token(self, athlete_id: Any) -> FreshToken:
        """Return a usable access token for ``athlete_id``, refreshing it if needed.

        The token is None when the athlete is unknown or Strava refuses the
        refresh; callers skip the athlete in that case.
        """

        record = await self.find(athlete_id)
        if record is None:
            logger.warning("No athlete row for %s", athlete_id)
            return FreshToken(None, None)

        now = unix_now()
        if record.access_token and record.expires_at and record.expires_at - REFRESH_BUFFER_SECONDS > now:
            return FreshToken(record.access_token, record.athlete_name)

        try:
            data = await strava.refresh_access_token(record.refresh_token)
        except strava.StravaApiError as exc:
            logger.error("Token refresh failed for athlete %s: %s %s", athlete_id, exc, exc.payload)
            return FreshToken(None, record.athlete_name)

        access_token = data["access_token"]
        refresh_token = data.get("refresh_token") or record.refresh_token
        expires_at = int(data["expires_at"])
        await self.write_tokens(record, access_token, refresh_token, expires_at)
        logger.info("Refreshed token for athlete %s (expires %d)", athlete_id, expires_at)
        return FreshToken(access_token, record.athlete_name)


__all__ = ["AthleteStore", "REFRESH_BUFFER_SECONDS"]
