"""API routers package initialization."""

from shiplink.api.dispatch import router as dispatch_router
from shiplink.api.quotes import router as quotes_router
from shiplink.api.drivers import router as directory_router
from shiplink.api.events import router as events_router

__all__ = [
    "dispatch_router",
    "quotes_router",
    "directory_router",
    "events_router",
]
