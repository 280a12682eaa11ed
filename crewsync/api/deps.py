"""Dependency helpers exposing the collaborators stored on ``app.state``."""

from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlmodel import Session

from ..services import AthleteStore, EventQueue, SheetsClient


def get_event_queue(request: Request) -> EventQueue:
    return request.app.state.event_queue


def get_sheets(request: Request) -> SheetsClient:
    return request.app.state.sheets


def get_athlete_store(request: Request) -> AthleteStore:
    return request.app.state.athletes


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield a session bound to the app's engine."""

    with Session(request.app.state.engine) as session:
        yield session


__all__ = ["get_athlete_store", "get_db_session", "get_event_queue", "get_sheets"]
