"""Pydantic request models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase keys on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateJobRequest(CamelModel):
    """Request to create a course generation job."""

    content: str = Field(..., description="Markdown source document")
    style: str | None = Field(default=None, description="Theme preset name")
    language: str | None = Field(default=None, description="Narration language code")
    auto_mode: bool = Field(default=False, description="Skip manual approval between stages")


class ApproveStageRequest(CamelModel):
    """Request to approve the stage awaiting review."""

    stage: str = Field(..., description="Stage name, e.g. SCRIPT")
    approved_by: str | None = Field(default=None, description="Approving user id")


class RejectStageRequest(CamelModel):
    """Request to reject a stage and regenerate it."""

    stage: str = Field(..., description="Stage name, e.g. SCRIPT")
    reason: str | None = Field(default=None, description="Why the output was rejected")
    rejected_by: str | None = Field(default=None, description="Rejecting user id")


class ResolveThemeRequest(CamelModel):
    """Request to preview a resolved theme configuration."""

    preset: str | None = Field(default=None, description="Preset name, default preset if unknown")
    overrides: dict[str, Any] | None = Field(default=None, description="Partial theme overrides")
