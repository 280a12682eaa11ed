"""Operational diagnostics."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from ...core import (
    GOOGLE_PRIVATE_KEY,
    GOOGLE_SERVICE_EMAIL,
    GOOGLE_SHEET_ID,
    STRAVA_CLIENT_ID,
    STRAVA_REDIRECT_URI,
    STRAVA_VERIFY_TOKEN,
    utcnow,
)
from ...services import EventQueue, SheetsClient, SheetsStoreError
from ...services.dead_letters import (
    count_dead_letters,
    dead_letter_to_dict,
    list_dead_letters,
    take_dead_letter,
)
from ...services.rows import INBOX_HEADERS, INBOX_TAB
from ..deps import get_db_session, get_event_queue, get_sheets

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])

MISSING = "(missing)"


def mask(value: str) -> str:
    return f"{value[:6]}...{value[-6:]}" if value else MISSING


@router.get("/sheets-ping")
async def sheets_ping(sheets: SheetsClient = Depends(get_sheets)):
    try:
        await sheets.ensure_tab_with_headers(INBOX_TAB, INBOX_HEADERS)
        await sheets.append_rows(
            INBOX_TAB, [[utcnow().isoformat(), "diag", "ping", "", "", "hello from crewsync"]]
        )
    except SheetsStoreError as exc:
        logger.error("Sheets ping failed: %s", exc)
        return PlainTextResponse(f"ERROR: {exc}", status_code=500)
    return PlainTextResponse("OK: wrote a test row to inbox")


@router.get("/env")
def env() -> Dict[str, Any]:
    """Report configuration presence without exposing secrets."""

    return {
        "STRAVA_CLIENT_ID": STRAVA_CLIENT_ID or MISSING,
        "STRAVA_VERIFY_TOKEN_len": len(STRAVA_VERIFY_TOKEN),
        "GOOGLE_PRIVATE_KEY_len": len(GOOGLE_PRIVATE_KEY.strip()),
        "GOOGLE_SHEET_ID_masked": mask(GOOGLE_SHEET_ID),
        "GOOGLE_SERVICE_EMAIL": GOOGLE_SERVICE_EMAIL or MISSING,
        "REDIRECT_URI": STRAVA_REDIRECT_URI or MISSING,
    }


@router.get("/queue")
def queue_status(
    events: EventQueue = Depends(get_event_queue),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    return {
        "queued": events.qsize(),
        "busy": events.busy,
        "dead_letters": count_dead_letters(session),
    }


@router.get("/dead-letters")
def dead_letters(limit: int = 50, session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    entries = list_dead_letters(session, limit=max(1, min(limit, 500)))
    return {"dead_letters": [dead_letter_to_dict(entry) for entry in entries]}


@router.post("/dead-letters/{dead_letter_id}/replay")
async def replay_dead_letter(
    dead_letter_id: int,
    events: EventQueue = Depends(get_event_queue),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    payload = take_dead_letter(session, dead_letter_id)
    if payload is None:
        raise HTTPException(404, "Dead letter not found")
    queued = await events.enqueue(payload)
    logger.info("Replayed dead letter #%d (queued=%s)", dead_letter_id, queued)
    return {"ok": True, "queued": queued}


__all__ = ["router"]
