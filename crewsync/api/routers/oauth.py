"""Strava authorization routes."""

from __future__ import annotations

import html
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from ...services import AthleteStore, SheetsStoreError, StravaApiError
from ...services import strava
from ..deps import get_athlete_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

_CONNECTED_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Connected</title></head>
<body>
<h1>You're connected!</h1>
<p>Welcome, {name}. Your activities will now sync automatically.<br>
You can close this tab.</p>
</body>
</html>"""


@router.get("/join")
def join() -> RedirectResponse:
    """Send the athlete to Strava's consent screen."""

    return RedirectResponse(strava.authorize_url())


@router.get("/authorize")
def authorize() -> RedirectResponse:
    return RedirectResponse(strava.authorize_url())


@router.get("/join-callback")
async def join_callback(
    code: Optional[str] = None,
    error: Optional[str] = None,
    athletes: AthleteStore = Depends(get_athlete_store),
):
    """Exchange the returned code and store the athlete's tokens."""

    if error:
        return PlainTextResponse(f"Strava error: {error}", status_code=400)
    if not code:
        return PlainTextResponse("Missing code", status_code=400)

    try:
        data = await strava.exchange_code_for_token(code)
        athlete = data.get("athlete") or {}
        firstname = athlete.get("firstname") or ""
        lastname = athlete.get("lastname") or ""
        await athletes.ensure_tab()
        await athletes.upsert(
            athlete_id=athlete.get("id"),
            athlete_name=f"{firstname} {lastname}".strip(),
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(data["expires_at"]),
        )
    except StravaApiError as exc:
        logger.error("OAuth exchange failed: %s %s", exc, exc.payload)
        return PlainTextResponse("OAuth failed.", status_code=500)
    except (SheetsStoreError, KeyError) as exc:
        logger.error("Could not store athlete after OAuth: %s", exc)
        return PlainTextResponse("OAuth failed.", status_code=500)

    logger.info("Athlete %s connected", athlete.get("id"))
    return HTMLResponse(_CONNECTED_PAGE.format(name=html.escape(firstname or "runner")))


__all__ = ["router"]
