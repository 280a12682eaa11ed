"""FastAPI application factory and configuration."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from .api import register_routes
from .core import (
    DRAIN_INTERVAL_SECONDS,
    EVENT_QUEUE_MAXSIZE,
    LOG_LEVEL,
    PORT,
    START_WORKER,
    configure_logging,
    engine as default_engine,
    init_db,
)
from .services import ActivitySync, AthleteStore, EventQueue, SheetsClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    worker: Optional[asyncio.Task] = None
    if app.state.start_worker:
        worker = asyncio.create_task(app.state.event_queue.run(DRAIN_INTERVAL_SECONDS))
    yield
    if worker is not None:
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
    pending = app.state.event_queue.qsize()
    if pending:
        logger.warning("Shutting down with %d undrained event(s)", pending)


def create_app(
    *,
    sheets: Optional[SheetsClient] = None,
    engine: Optional[Engine] = None,
    start_worker: bool = START_WORKER,
) -> FastAPI:
    configure_logging(LOG_LEVEL)

    sheets = sheets or SheetsClient.from_settings()
    engine = engine or default_engine
    athletes = AthleteStore(sheets)
    activities = ActivitySync(sheets, athletes)

    app = FastAPI(title="Strava Webhook Bridge", version="1.0.0", lifespan=lifespan)
    app.state.sheets = sheets
    app.state.engine = engine
    app.state.athletes = athletes
    app.state.activities = activities
    app.state.event_queue = EventQueue(sheets, activities, engine, maxsize=EVENT_QUEUE_MAXSIZE)
    app.state.start_worker = start_worker

    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("crewsync.app:app", host="0.0.0.0", port=PORT)
