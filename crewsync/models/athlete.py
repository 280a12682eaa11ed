"""Row model for the athletes tab."""

from __future__ import annotations

from typing import List, NamedTuple, Optional

from sqlmodel import SQLModel


class AthleteRecord(SQLModel):
    """Stored Strava credentials for one athlete, plus the sheet row they live on."""

    row_index: int
    athlete_id: str
    athlete_name: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0

    @classmethod
    def from_row(cls, row_index: int, row: List[str]) -> "AthleteRecord":
        cells = list(row) + [""] * (5 - len(row))
        try:
            expires_at = int(float(cells[4] or 0))
        except ValueError:
            expires_at = 0
        return cls(
            row_index=row_index,
            athlete_id=str(cells[0]),
            athlete_name=cells[1] or "",
            access_token=cells[2] or "",
            refresh_token=cells[3] or "",
            expires_at=expires_at,
        )


class FreshToken(NamedTuple):
    """Result of a token check; ``access_token`` is None when the athlete must be skipped."""

    access_token: Optional[str]
    athlete_name: Optional[str]


__all__ = ["AthleteRecord", "FreshToken"]
