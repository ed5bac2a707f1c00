"""FastAPI backend for the course pipeline."""

from .app import create_app

__all__ = ["create_app"]
