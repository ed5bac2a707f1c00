"""API routers for the web backend."""

from .jobs import router as jobs_router
from .themes import router as themes_router

__all__ = [
    "jobs_router",
    "themes_router",
]
