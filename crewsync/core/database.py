"""Database engine for local state."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from .config import DATA_DIR, DATABASE_URL


def build_engine(url: str = DATABASE_URL) -> Engine:
    """Create the engine backing the dead-letter table."""

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if url == f"sqlite:///{DATA_DIR / 'app.db'}":
            DATA_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


engine = build_engine()


def init_db(target: Engine = engine) -> None:
    from .. import models  # noqa: F401 - ensure models are registered with SQLModel

    SQLModel.metadata.create_all(target)


__all__ = ["build_engine", "engine", "init_db"]
