"""Create, update and delete handling for activity webhook events."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from . import strava
from .athletes import AthleteStore
from .rows import (
    ACTIVITIES_HEADERS,
    ACTIVITIES_TAB,
    EFFORTS_HEADERS,
    EFFORTS_TAB,
    map_activity_row,
    map_effort_row,
    webhook_cell_updates,
)
from .sheets import SheetsClient

logger = logging.getLogger(__name__)


class ActivitySync:
    """Keeps the activities and segment_efforts tabs in step with Strava."""

    def __init__(self, sheets: SheetsClient, athletes: AthleteStore) -> None:
        self._sheets = sheets
        self._athletes = athletes

    async def ensure_tabs(self) -> None:
        await self._sheets.ensure_tab_with_headers(ACTIVITIES_TAB, ACTIVITIES_HEADERS)
        await self._sheets.ensure_tab_with_headers(EFFORTS_TAB, EFFORTS_HEADERS)

    async def find_activity_row(self, activity_id: Any) -> Optional[int]:
        rows = await self._sheets.find_row_indices(ACTIVITIES_TAB, "activity_id", activity_id)
        return rows[0] if rows else None

    async def process_new_activity(self, activity_id: Any, owner_id: Any) -> bool:
        """Append an activity and its segment efforts; returns False when skipped."""

        await self.ensure_tabs()
        if await self.find_activity_row(activity_id) is not None:
            logger.info("Activity %s already stored, skipping", activity_id)
            return False

        token = await self._athletes.ensure_fresh_access_token(owner_id)
        if not token.access_token:
            logger.warning("No usable access token for owner %s, skipping activity %s", owner_id, activity_id)
            return False

        activity = await strava.get_activity(token.access_token, activity_id, include_all_efforts=True)
        await self._sheets.append_rows(
            ACTIVITIES_TAB, [map_activity_row(token.athlete_name, owner_id, activity)]
        )
        efforts = activity.get("segment_efforts") or []
        await self._sheets.append_rows(
            EFFORTS_TAB, [map_effort_row(owner_id, activity, effort) for effort in efforts]
        )
        logger.info("Stored activity %s with %d effort(s)", activity_id, len(efforts))
        return True

    async def process_activity_update(self, event: Mapping[str, Any]) -> bool:
        """Rewrite the stored row for an updated activity.

        A missing row is created once from Strava and the lookup retried a
        single time. The full row is re-fetched and overwritten; the partial
        ``updates`` carried by the webhook are only written when no access
        token is available to re-fetch with.
        """

        activity_id = event.get("object_id")
        owner_id = event.get("owner_id")
        await self.ensure_tabs()

        row_index = await self.find_activity_row(activity_id)
        if row_index is None:
            logger.info("Activity %s not stored yet, creating it first", activity_id)
            created = await self.process_new_activity(activity_id, owner_id)
            row_index = await self.find_activity_row(activity_id)
            if row_index is None:
                logger.warning("Activity %s still missing after create, giving up", activity_id)
                return False
            if created:
                return True

        token = await self._athletes.ensure_fresh_access_token(owner_id)
        if not token.access_token:
            return await self._apply_webhook_updates(row_index, activity_id, event.get("updates"))

        activity = await strava.get_activity(token.access_token, activity_id, include_all_efforts=False)
        await self._sheets.update_row(
            ACTIVITIES_TAB, row_index, map_activity_row(token.athlete_name, owner_id, activity)
        )
        logger.info("Refreshed activity %s at row %d", activity_id, row_index)
        return True

    async def _apply_webhook_updates(
        self, row_index: int, activity_id: Any, updates: Optional[Mapping[str, Any]]
    ) -> bool:
        cells = webhook_cell_updates(updates)
        if not cells:
            logger.warning("No access token and no webhook fields for activity %s", activity_id)
            return False
        for header, value in cells.items():
            column = await self._sheets.header_index(ACTIVITIES_TAB, header)
            if column is None:
                continue
            await self._sheets.update_cell(ACTIVITIES_TAB, row_index, column, value)
            logger.info("Applied %s=%r from webhook to activity %s", header, value, activity_id)
        return True

    async def process_activity_delete(self, activity_id: Any) -> Tuple[int, int]:
        """Remove the activity row(s) and every effort row that references it."""

        await self.ensure_tabs()
        activity_rows = await self._sheets.find_row_indices(ACTIVITIES_TAB, "activity_id", activity_id)
        removed_activities = await self._sheets.delete_rows(ACTIVITIES_TAB, activity_rows)

        effort_rows = await self._sheets.find_row_indices(EFFORTS_TAB, "activity_id", activity_id)
        removed_efforts = await self._sheets.delete_rows(EFFORTS_TAB, effort_rows)

        if not removed_activities and not removed_efforts:
            logger.info("Nothing stored for deleted activity %s", activity_id)
        else:
            logger.info(
                "Deleted activity %s: %d activity row(s), %d effort row(s)",
                activity_id,
                removed_activities,
                removed_efforts,
            )
        return removed_activities, removed_efforts


__all__ = ["ActivitySync"]
