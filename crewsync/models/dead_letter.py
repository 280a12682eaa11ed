"""Database model for webhook events that failed processing."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class DeadLetter(SQLModel, table=True):
    """Raw webhook event kept for inspection and replay."""

    id: Optional[int] = ORMField(default=None, primary_key=True)
    object_type: Optional[str] = None
    aspect_type: Optional[str] = None
    object_id: Optional[str] = ORMField(default=None, index=True)
    owner_id: Optional[str] = None
    payload_json: str
    error: str
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["DeadLetter"]
