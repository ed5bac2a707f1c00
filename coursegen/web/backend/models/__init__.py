"""Pydantic models for API requests and responses."""

from .requests import (
    CamelModel,
    CreateJobRequest,
    ApproveStageRequest,
    RejectStageRequest,
    ResolveThemeRequest,
)
from .responses import (
    CreateJobResponse,
    RunResponse,
    ArtifactResponse,
    ArtifactsResponse,
    JobResponse,
    ApprovalResponse,
    ApprovalResultResponse,
    ThemeCatalogResponse,
)

__all__ = [
    # Requests
    "CamelModel",
    "CreateJobRequest",
    "ApproveStageRequest",
    "RejectStageRequest",
    "ResolveThemeRequest",
    # Responses
    "CreateJobResponse",
    "RunResponse",
    "ArtifactResponse",
    "ArtifactsResponse",
    "JobResponse",
    "ApprovalResponse",
    "ApprovalResultResponse",
    "ThemeCatalogResponse",
]
