"""In-process webhook event queue and its drain loop.

The webhook route only enqueues; all spreadsheet and Strava work happens
when the worker drains the queue. Events are handled one at a time in
arrival order. A failing event is logged and written to the dead-letter
table, then the pass moves on to the next event. Queued events live in
memory only and are lost on restart.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Mapping

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from ..core.time import utcnow
from .activities import ActivitySync
from .dead_letters import record_dead_letter
from .rows import INBOX_HEADERS, INBOX_TAB, inbox_row
from .sheets import SheetsClient

logger = logging.getLogger(__name__)


class EventQueue:
    """Bounded FIFO of webhook events with a single consumer."""

    def __init__(
        self,
        sheets: SheetsClient,
        activities: ActivitySync,
        engine: Engine,
        *,
        maxsize: int = 1000,
    ) -> None:
        self._sheets = sheets
        self._activities = activities
        self._engine = engine
        self._queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def qsize(self) -> int:
        return self._queue.qsize()

    async def enqueue(self, event: Mapping[str, Any]) -> bool:
        """Queue ``event`` for the next drain; a full queue sends it to the dead-letter table.

        Never raises. Returns False when the event did not fit in the queue.
        """

        try:
            self._queue.put_nowait(dict(event))
        except asyncio.QueueFull:
            logger.error("Event queue full (%d), dead-lettering %s", self._queue.maxsize, event)
            await self._dead_letter(event, "queue full")
            return False
        return True

    async def drain(self) -> int:
        """Process every queued event; overlapping calls return 0 immediately."""

        if self._busy:
            return 0
        self._busy = True
        processed = 0
        try:
            while not self._queue.empty():
                event = self._queue.get_nowait()
                try:
                    await self.process(event)
                except Exception as exc:
                    logger.exception(
                        "Event %s/%s for %s failed",
                        event.get("object_type"),
                        event.get("aspect_type"),
                        event.get("object_id"),
                    )
                    await self._dead_letter(event, f"{type(exc).__name__}: {exc}")
                finally:
                    self._queue.task_done()
                processed += 1
        finally:
            self._busy = False
        return processed

    async def process(self, event: Mapping[str, Any]) -> None:
        await self.audit(event)

        if event.get("object_type") != "activity":
            logger.info("Ignoring %s event for %s", event.get("object_type"), event.get("object_id"))
            return

        aspect = event.get("aspect_type")
        if aspect == "create":
            await self._activities.process_new_activity(event.get("object_id"), event.get("owner_id"))
        elif aspect == "update":
            await self._activities.process_activity_update(event)
        elif aspect == "delete":
            await self._activities.process_activity_delete(event.get("object_id"))
        else:
            logger.warning("Unknown aspect_type %r for activity %s", aspect, event.get("object_id"))

    async def audit(self, event: Mapping[str, Any]) -> None:
        await self._sheets.ensure_tab_with_headers(INBOX_TAB, INBOX_HEADERS)
        raw = json.dumps(dict(event), default=str)
        await self._sheets.append_rows(INBOX_TAB, [inbox_row(utcnow().isoformat(), event, raw)])

    async def run(self, interval: float) -> None:
        """Drain forever, pausing ``interval`` seconds between passes."""

        logger.info("Event worker started (every %ss)", interval)
        while True:
            try:
                processed = await self.drain()
            except Exception:
                logger.exception("Drain pass failed, retrying in %ss", interval)
            else:
                if processed:
                    logger.info("Drained %d event(s)", processed)
            await asyncio.sleep(interval)

    def _store_dead_letter(self, event: Mapping[str, Any], error: str) -> int:
        with Session(self._engine) as session:
            return record_dead_letter(session, event, error).id

    async def _dead_letter(self, event: Mapping[str, Any], error: str) -> bool:
        try:
            entry_id = await run_in_threadpool(self._store_dead_letter, event, error)
        except SQLAlchemyError:
            logger.exception("Could not dead-letter event %s, dropping it", event.get("object_id"))
            return False
        logger.warning("Dead-lettered event %s as #%s", event.get("object_id"), entry_id)
        return True


__all__ = ["EventQueue"]
