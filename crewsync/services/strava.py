"""Strava OAuth and REST API client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..core import STRAVA_CLIENT_ID, STRAVA_CLIENT_SECRET, STRAVA_REDIRECT_URI

logger = logging.getLogger(__name__)

AUTH_BASE = "https://www.strava.com/oauth/authorize"
TOKEN_URL = "https://www.strava.com/oauth/token"
API_BASE = "https://www.strava.com/api/v3"
SCOPES = "read,activity:read"

TOKEN_TIMEOUT = 20
API_TIMEOUT = 30


class StravaApiError(RuntimeError):
    """Raised when Strava rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


async def _send(method: str, url: str, *, timeout: float, **kwargs: Any) -> Dict[str, Any]:
    try:
        async with _client(timeout) as client:
            response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise StravaApiError(f"{method} {url} failed: {exc}") from exc

    if response.is_error:
        payload = _payload(response)
        raise StravaApiError(
            f"{method} {url} returned {response.status_code}",
            status_code=response.status_code,
            payload=payload,
        )
    return response.json()


def authorize_url() -> str:
    """Build the Strava authorize URL for the fixed read scope."""

    params = {
        "client_id": STRAVA_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": STRAVA_REDIRECT_URI,
        "scope": SCOPES,
        "approval_prompt": "auto",
    }
    return f"{AUTH_BASE}?{urlencode(params)}"


async def exchange_code_for_token(code: str) -> Dict[str, Any]:
    """Exchange authorization code for access token."""

    return await _send(
        "POST",
        TOKEN_URL,
        timeout=TOKEN_TIMEOUT,
        data={
            "client_id": STRAVA_CLIENT_ID,
            "client_secret": STRAVA_CLIENT_SECRET,
            "code": code,
            "grant_type": "authorization_code",
        },
    )


async def refresh_access_token(refresh_token: str) -> Dict[str, Any]:
    """Refresh expired access token."""

    return await _send(
        "POST",
        TOKEN_URL,
        timeout=TOKEN_TIMEOUT,
        data={
            "client_id": STRAVA_CLIENT_ID,
            "client_secret": STRAVA_CLIENT_SECRET,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        },
    )


async def get_activity(
    access_token: str, activity_id: Any, *, include_all_efforts: bool = False
) -> Dict[str, Any]:
    """Fetch one detailed activity."""

    logger.debug("Fetching activity %s (efforts=%s)", activity_id, include_all_efforts)
    return await _send(
        "GET",
        f"{API_BASE}/activities/{activity_id}",
        timeout=API_TIMEOUT,
        headers={"Authorization": f"Bearer {access_token}"},
        params={"include_all_efforts": "true" if include_all_efforts else "false"},
    )


__all__ = [
    "API_BASE",
    "AUTH_BASE",
    "SCOPES",
    "StravaApiError",
    "TOKEN_URL",
    "authorize_url",
    "exchange_code_for_token",
    "get_activity",
    "refresh_access_token",
]
