"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coursegen import __version__
from coursegen.logging_setup import setup_logging

from .config import WebConfig
from .dependencies import get_config, get_job_controller
from .routers import jobs_router, themes_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    provider = app.dependency_overrides.get(get_job_controller, get_job_controller)
    controller = provider()
    setup_logging(controller.config.logging.level, rich=controller.config.logging.rich)
    recovered = controller.recover()
    if recovered:
        logger.info(f"Recovered jobs awaiting retry: {', '.join(job.id for job in recovered)}")

    yield

    # Shutdown
    await controller.shutdown()


def create_app(config: WebConfig | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Optional configuration. Uses defaults if not provided.

    Returns:
        The FastAPI application.
    """
    if config is None:
        config = get_config()

    app = FastAPI(
        title="Course Generation API",
        description="API for generating course videos with per-stage approval",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs_router)
    app.include_router(themes_router)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    return app
