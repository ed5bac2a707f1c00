"""
Core data models shared by the course generation pipeline.

Includes models for:
- Stages and job lifecycle status
- Jobs, artifacts and approvals
- Retry bookkeeping and stage step output
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from coursegen.errors import NotFoundError


AUTO_APPROVER = "AUTO"


# ============================================================================
# STAGES & STATUS
# ============================================================================


class Stage(str, Enum):
    """Pipeline stages, in their fixed execution order."""

    SCRIPT = "SCRIPT"
    STORYBOARD = "STORYBOARD"
    PAGES = "PAGES"
    MERGE = "MERGE"

    @classmethod
    def ordered(cls) -> list["Stage"]:
        return list(cls)

    @classmethod
    def parse(cls, value: "str | Stage") -> "Stage":
        """Parse a stage name case-insensitively."""
        if isinstance(value, Stage):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise NotFoundError(f"Unknown stage '{value}' (expected one of {valid})")

    @property
    def index(self) -> int:
        return Stage.ordered().index(self)

    def next(self) -> Optional["Stage"]:
        """The stage after this one, or None after MERGE."""
        stages = Stage.ordered()
        if self.index + 1 < len(stages):
            return stages[self.index + 1]
        return None


class JobStatus(str, Enum):
    """Lifecycle status of a job. The active stage is Job.current_stage."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"


class ArtifactType(str, Enum):
    """Discriminant of the artifact payload variant."""

    JSON = "JSON"    # structured content, optional blob copy
    VIDEO = "VIDEO"  # blob_url required, content holds metadata only


# ============================================================================
# JOB
# ============================================================================


@dataclass
class Job:
    """A course generation job and its position in the stage pipeline."""

    id: str
    source_content: str
    style: Optional[str] = None
    language: Optional[str] = None
    auto_mode: bool = False

    current_stage: Stage = Stage.SCRIPT
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    retry_count: int = 0

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    history: list[dict] = field(default_factory=list)

    def describe_state(self) -> str:
        """Human readable state, e.g. RUNNING(STORYBOARD)."""
        if self.status in (JobStatus.PENDING, JobStatus.COMPLETED):
            return self.status.value
        return f"{self.status.value}({self.current_stage.value})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_content": self.source_content,
            "style": self.style,
            "language": self.language,
            "auto_mode": self.auto_mode,
            "current_stage": self.current_stage.value,
            "status": self.status.value,
            "error": self.error,
            "retry_count": self.retry_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "history": self.history,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        return cls(
            id=data["id"],
            source_content=data.get("source_content", ""),
            style=data.get("style"),
            language=data.get("language"),
            auto_mode=data.get("auto_mode", False),
            current_stage=Stage(data.get("current_stage", Stage.SCRIPT.value)),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            error=data.get("error"),
            retry_count=data.get("retry_count", 0),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now(),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else datetime.now(),
            history=data.get("history", []),
        )


# ============================================================================
# ARTIFACTS
# ============================================================================


@dataclass(frozen=True)
class Artifact:
    """
    Immutable, versioned output of one stage.

    Identity is (job_id, stage, type, version). Versions start at 1 per
    (job_id, stage, type) and are never reused.
    """

    job_id: str
    stage: Stage
    type: ArtifactType
    version: int
    content: Optional[dict[str, Any]] = None
    blob_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "stage": self.stage.value,
            "type": self.type.value,
            "version": self.version,
            "content": self.content,
            "blob_url": self.blob_url,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Artifact":
        return cls(
            job_id=data["job_id"],
            stage=Stage(data["stage"]),
            type=ArtifactType(data["type"]),
            version=data["version"],
            content=data.get("content"),
            blob_url=data.get("blob_url"),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now(),
        )


@dataclass(frozen=True)
class StepOutput:
    """
    What a stage step hands back to the sequencer.

    Build with StepOutput.json(...) or StepOutput.video(...) so the payload
    shape always matches its ArtifactType.
    """

    type: ArtifactType
    content: Optional[dict[str, Any]] = None
    blob_url: Optional[str] = None

    @classmethod
    def json(cls, content: dict[str, Any], blob_url: Optional[str] = None) -> "StepOutput":
        return cls(type=ArtifactType.JSON, content=content, blob_url=blob_url)

    @classmethod
    def video(cls, blob_url: str, content: Optional[dict[str, Any]] = None) -> "StepOutput":
        return cls(type=ArtifactType.VIDEO, content=content, blob_url=blob_url)


# ============================================================================
# APPROVALS & RETRIES
# ============================================================================


@dataclass
class Approval:
    """Approval record for one (job, stage). approved_by is a user id or AUTO."""

    job_id: str
    stage: Stage
    approved: bool
    approved_at: datetime
    approved_by: str
    reason: Optional[str] = None

    @property
    def is_auto(self) -> bool:
        return self.approved_by == AUTO_APPROVER

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "stage": self.stage.value,
            "approved": self.approved,
            "approved_at": self.approved_at.isoformat(),
            "approved_by": self.approved_by,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Approval":
        return cls(
            job_id=data["job_id"],
            stage=Stage(data["stage"]),
            approved=data["approved"],
            approved_at=datetime.fromisoformat(data["approved_at"]),
            approved_by=data["approved_by"],
            reason=data.get("reason"),
        )


@dataclass
class RetryState:
    """Attempt bookkeeping for a single stage execution."""

    job_id: str
    stage: Stage
    attempt: int = 0
    last_error: Optional[str] = None
