"""
Approval Gate - Per-stage approval records and the gating decision.

No stage may start until the stage before it is approved. Approvals are
explicit user decisions, or AUTO records written when an auto-mode job passes
the gate, so the audit trail shows every gate crossing.

Key concepts:
- Approval: one record per (job, stage) once set
- Rejection: an approved=False record with a reason
- Auto mode: the gate always passes and persists an AUTO approval
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from coursegen.errors import StageNotReadyError
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.storage import job_dir, read_json, write_json_atomic
from coursegen.models import AUTO_APPROVER, Approval, Job, Stage

logger = logging.getLogger(__name__)


class ApprovalGate:
    """
    Manages approval records for every job.

    Provides:
    - Gating decision (is_approved / check)
    - Idempotent approval handling
    - Rejections with reasons
    - Optional JSON persistence, one approvals.json per job
    """

    def __init__(self, store: ArtifactStore, data_dir: Path | str | None = None):
        """
        Initialize the gate.

        Args:
            store: Artifact store, used to refuse approval of empty stages
            data_dir: Root directory for persisted state (None = memory only)
        """
        self.store = store
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._approvals: dict[tuple[str, Stage], Approval] = {}
        self._lock = threading.Lock()

        if self.data_dir is not None:
            self._load()

    def _load(self) -> None:
        jobs_root = self.data_dir / "jobs"
        if not jobs_root.exists():
            return
        for path in sorted(jobs_root.glob("*/approvals.json")):
            for item in read_json(path, default={}).get("approvals", []):
                approval = Approval.from_dict(item)
                self._approvals[(approval.job_id, approval.stage)] = approval

    def _put(self, approval: Approval) -> Approval:
        with self._lock:
            if self.data_dir is not None:
                records = [
                    a.to_dict() for (job_id, _), a in self._approvals.items()
                    if job_id == approval.job_id and a.stage != approval.stage
                ]
                records.append(approval.to_dict())
                write_json_atomic(
                    job_dir(self.data_dir, approval.job_id) / "approvals.json",
                    {"job_id": approval.job_id, "approvals": records},
                )
            self._approvals[(approval.job_id, approval.stage)] = approval
        return approval

    def get(self, job_id: str, stage: Stage) -> Optional[Approval]:
        """The approval record for a stage, if any."""
        with self._lock:
            return self._approvals.get((job_id, stage))

    def list(self, job_id: str) -> list[Approval]:
        """All approval records of a job, in stage order."""
        with self._lock:
            records = [a for (jid, _), a in self._approvals.items() if jid == job_id]
        return sorted(records, key=lambda a: a.stage.index)

    def is_approved(self, job: Job, stage: Stage) -> bool:
        """True iff the job is in auto mode or an approved record exists."""
        if job.auto_mode:
            return True
        approval = self.get(job.id, stage)
        return approval is not None and approval.approved

    def check(self, job: Job, stage: Stage) -> bool:
        """
        Gate check taken by the sequencer before leaving a stage.

        In auto mode this is the moment the AUTO approval is persisted.
        """
        approval = self.get(job.id, stage)
        if approval is not None and approval.approved:
            return True
        if job.auto_mode:
            self._put(Approval(
                job_id=job.id,
                stage=stage,
                approved=True,
                approved_at=datetime.now(),
                approved_by=AUTO_APPROVER,
            ))
            logger.info(f"Auto-approved {stage.value} for job {job.id}")
            return True
        return False

    def approve(self, job: Job, stage: Stage, approved_by: str) -> Approval:
        """
        Approve a stage.

        Approving an already approved stage is a no-op that returns the
        existing record.

        Raises:
            StageNotReadyError: If the stage has produced no artifact yet.
        """
        if not self.store.has_stage(job.id, stage):
            raise StageNotReadyError(f"Stage {stage.value} of job {job.id} has no artifact yet")

        existing = self.get(job.id, stage)
        if existing is not None and existing.approved:
            return existing

        approval = self._put(Approval(
            job_id=job.id,
            stage=stage,
            approved=True,
            approved_at=datetime.now(),
            approved_by=approved_by,
        ))
        logger.info(f"{stage.value} approved for job {job.id} by {approved_by}")
        return approval

    def reject(self, job: Job, stage: Stage, rejected_by: str, reason: Optional[str] = None) -> Approval:
        """
        Record a rejection for a stage.

        Raises:
            StageNotReadyError: If the stage has produced no artifact yet.
        """
        if not self.store.has_stage(job.id, stage):
            raise StageNotReadyError(f"Stage {stage.value} of job {job.id} has no artifact yet")

        approval = self._put(Approval(
            job_id=job.id,
            stage=stage,
            approved=False,
            approved_at=datetime.now(),
            approved_by=rejected_by,
            reason=reason or f"Stage {stage.value} was rejected",
        ))
        logger.warning(f"{stage.value} rejected for job {job.id}: {approval.reason}")
        return approval
