"""API routers for the scraper service."""

from .health import router as health_router
from .manga import router as manga_router

__all__ = [
    "health_router",
    "manga_router",
]
