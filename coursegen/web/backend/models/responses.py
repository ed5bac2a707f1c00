"""Pydantic response models for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import Field

from coursegen.models import Approval, Artifact, Job

from .requests import CamelModel


class CreateJobResponse(CamelModel):
    """Id of a newly created job."""

    job_id: str


class RunResponse(CamelModel):
    """Handle of a started pipeline run."""

    workflow_id: str
    run_id: str


class ArtifactResponse(CamelModel):
    """One versioned stage output."""

    stage: str
    type: str
    version: int
    content: dict[str, Any] | None = None
    blob_url: str | None = None
    created_at: datetime

    @classmethod
    def from_artifact(cls, artifact: Artifact) -> "ArtifactResponse":
        return cls(
            stage=artifact.stage.value,
            type=artifact.type.value,
            version=artifact.version,
            content=artifact.content,
            blob_url=artifact.blob_url,
            created_at=artifact.created_at,
        )


class ArtifactsResponse(CamelModel):
    """Artifacts of a job, optionally after waiting for a stage."""

    artifacts: list[ArtifactResponse]
    timeout: bool = Field(description="True when the awaited stage did not appear in time")


class JobResponse(CamelModel):
    """Job state."""

    id: str
    status: str
    current_stage: str
    state: str = Field(description="Status with its stage, e.g. RUNNING(SCRIPT)")
    auto_mode: bool
    style: str | None = None
    language: str | None = None
    error: str | None = None
    retry_count: int = 0
    created_at: datetime
    updated_at: datetime
    history: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        return cls(
            id=job.id,
            status=job.status.value,
            current_stage=job.current_stage.value,
            state=job.describe_state(),
            auto_mode=job.auto_mode,
            style=job.style,
            language=job.language,
            error=job.error,
            retry_count=job.retry_count,
            created_at=job.created_at,
            updated_at=job.updated_at,
            history=list(job.history),
        )


class ApprovalResponse(CamelModel):
    """Approval (or rejection) record of one stage."""

    stage: str
    approved: bool
    approved_at: datetime
    approved_by: str
    reason: str | None = None

    @classmethod
    def from_approval(cls, approval: Approval) -> "ApprovalResponse":
        return cls(
            stage=approval.stage.value,
            approved=approval.approved,
            approved_at=approval.approved_at,
            approved_by=approval.approved_by,
            reason=approval.reason,
        )


class ApprovalResultResponse(CamelModel):
    """Outcome of approve or reject."""

    ok: bool = True
    job: JobResponse
    approval: ApprovalResponse


class ThemeCatalogResponse(CamelModel):
    """Available theme presets and color schemes."""

    default_preset: str
    presets: list[str]
    color_schemes: list[str]
