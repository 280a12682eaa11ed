"""Aggregate API routers."""

from fastapi import APIRouter

from .debug import router as debug_router
from .oauth import router as oauth_router
from .system import router as system_router
from .webhook import router as webhook_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    oauth_router,
    webhook_router,
    debug_router,
)

__all__ = ["ALL_ROUTERS"]
