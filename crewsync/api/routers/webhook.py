"""Strava webhook subscription and event endpoints."""

from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core import STRAVA_VERIFY_TOKEN
from ...services import EventQueue
from ..deps import get_event_queue

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])


@router.get("/webhook")
def verify_subscription(
    hub_mode: str = Query("", alias="hub.mode"),
    hub_verify_token: str = Query("", alias="hub.verify_token"),
    hub_challenge: str = Query("", alias="hub.challenge"),
):
    """Answer Strava's subscription challenge."""

    mode = hub_mode.strip()
    provided = hub_verify_token.strip()
    expected = STRAVA_VERIFY_TOKEN
    match = bool(expected) and hmac.compare_digest(provided.encode(), expected.encode())
    logger.info(
        "Webhook verification: mode=%s provided_len=%d expected_len=%d match=%s",
        mode,
        len(provided),
        len(expected),
        match,
    )
    if mode == "subscribe" and match and hub_challenge:
        return JSONResponse({"hub.challenge": hub_challenge})
    return PlainTextResponse("Verification failed.", status_code=403)


@router.post("/webhook")
async def receive_event(request: Request, events: EventQueue = Depends(get_event_queue)) -> Response:
    """Acknowledge immediately; the worker does the rest."""

    try:
        event = await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON, dropping")
        return Response(status_code=200)

    if not isinstance(event, dict):
        logger.warning("Webhook body is not an object, dropping: %r", event)
        return Response(status_code=200)

    logger.info(
        "Webhook %s/%s object=%s owner=%s",
        event.get("object_type"),
        event.get("aspect_type"),
        event.get("object_id"),
        event.get("owner_id"),
    )
    await events.enqueue(event)
    return Response(status_code=200)


__all__ = ["router"]
