"""Model exports."""

from .athlete import AthleteRecord, FreshToken
from .dead_letter import DeadLetter

__all__ = [
    "AthleteRecord",
    "DeadLetter",
    "FreshToken",
]
