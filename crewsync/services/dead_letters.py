"""Persistence for webhook events that could not be processed."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from sqlmodel import Session, func, select

from ..models import DeadLetter


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def record_dead_letter(session: Session, event: Mapping[str, Any], error: str) -> DeadLetter:
    entry = DeadLetter(
        object_type=_text(event.get("object_type")),
        aspect_type=_text(event.get("aspect_type")),
        object_id=_text(event.get("object_id")),
        owner_id=_text(event.get("owner_id")),
        payload_json=json.dumps(dict(event), default=str),
        error=error[:2000],
    )
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def list_dead_letters(session: Session, limit: int = 50) -> List[DeadLetter]:
    statement = select(DeadLetter).order_by(DeadLetter.id.desc()).limit(limit)
    return list(session.exec(statement).all())


def count_dead_letters(session: Session) -> int:
    return session.exec(select(func.count()).select_from(DeadLetter)).one()


def take_dead_letter(session: Session, dead_letter_id: int) -> Optional[Dict[str, Any]]:
    """Delete a dead letter and return its original event payload."""

    entry = session.get(DeadLetter, dead_letter_id)
    if entry is None:
        return None
    payload = json.loads(entry.payload_json)
    session.delete(entry)
    session.commit()
    return payload


def dead_letter_to_dict(entry: DeadLetter) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "object_type": entry.object_type,
        "aspect_type": entry.aspect_type,
        "object_id": entry.object_id,
        "owner_id": entry.owner_id,
        "error": entry.error,
        "payload": json.loads(entry.payload_json),
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


__all__ = [
    "count_dead_letters",
    "dead_letter_to_dict",
    "list_dead_letters",
    "record_dead_letter",
    "take_dead_letter",
]
