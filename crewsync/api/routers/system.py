"""System-level endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse

router = APIRouter(tags=["system"])

_LANDING = """<h1>Strava Webhook Bridge</h1>
<p>Health: <a href="/health">/health</a></p>
<p>Join: <a href="/join">/join</a></p>
<p>Sheets ping: <a href="/debug/sheets-ping">/debug/sheets-ping</a></p>"""


@router.get("/", response_class=HTMLResponse)
def landing() -> str:
    return _LANDING


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    """Liveness probe."""

    return "ok"


__all__ = ["router"]
