"""Dependency injection for FastAPI."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from coursegen.config import load_config

from .config import WebConfig
from .services.job_controller import JobController


@dataclass(frozen=True)
class Credential:
    """Bearer token taken from the request. Validated by an external service."""

    token: str

    def __repr__(self) -> str:
        return "Credential(token=***)"


@lru_cache
def get_config() -> WebConfig:
    """Get the web configuration (cached)."""
    return WebConfig()


@lru_cache
def get_job_controller() -> JobController:
    """Get the job controller (cached singleton)."""
    config = get_config()
    return JobController.from_config(load_config(config.config_path))


def get_credential(
    config: Annotated[WebConfig, Depends(get_config)],
    authorization: Annotated[str | None, Header()] = None,
) -> Credential | None:
    """Extract the bearer credential.

    Missing credentials are only rejected when the server requires auth.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return Credential(token=token.strip())

    if config.require_auth:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return None


# Type aliases for cleaner router signatures
JobControllerDep = Annotated[JobController, Depends(get_job_controller)]
