"""
Job State - Lifecycle persistence and the transition table for jobs.

Pipeline flow:
    PENDING → RUNNING(SCRIPT) → AWAITING_APPROVAL(SCRIPT) → RUNNING(STORYBOARD)
    → ... → RUNNING(MERGE) → COMPLETED

Any RUNNING(s) can fall to FAILED(s); FAILED(s) goes back to RUNNING(s) on a
manual retry. Every transition is appended to Job.history.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

from coursegen.errors import NotFoundError, PersistenceError, StageOutOfOrderError, ValidationError
from coursegen.factory.storage import job_dir, read_json, write_json_atomic
from coursegen.models import Job, JobStatus, Stage

logger = logging.getLogger(__name__)


VALID_TRANSITIONS = {
    JobStatus.PENDING: [JobStatus.RUNNING],
    JobStatus.RUNNING: [JobStatus.AWAITING_APPROVAL, JobStatus.RUNNING, JobStatus.FAILED, JobStatus.COMPLETED],
    JobStatus.AWAITING_APPROVAL: [JobStatus.RUNNING],
    JobStatus.FAILED: [JobStatus.RUNNING],
    JobStatus.COMPLETED: [],  # Terminal
}


def can_transition(from_status: JobStatus, to_status: JobStatus) -> bool:
    """Check if a status transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, [])


class JobRepository:
    """
    Stores jobs and applies status transitions.

    Jobs are kept in memory and, when a data dir is configured, mirrored to
    jobs/<job_id>/job.json after every change.
    """

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

        if self.data_dir is not None:
            self._load()

    def _load(self) -> None:
        jobs_root = self.data_dir / "jobs"
        if not jobs_root.exists():
            return
        for path in sorted(jobs_root.glob("*/job.json")):
            job = Job.from_dict(read_json(path))
            self._jobs[job.id] = job
        logger.debug(f"Loaded {len(self._jobs)} jobs from {jobs_root}")

    def _save(self, job: Job) -> None:
        if self.data_dir is not None:
            write_json_atomic(job_dir(self.data_dir, job.id) / "job.json", job.to_dict())

    def create(
        self,
        content: str,
        style: Optional[str] = None,
        language: Optional[str] = None,
        auto_mode: bool = False,
    ) -> Job:
        """
        Create a new PENDING job.

        Raises:
            ValidationError: If content is empty.
        """
        if not content or not content.strip():
            raise ValidationError("content is required")

        job = Job(
            id=f"job_{uuid4().hex[:12]}",
            source_content=content,
            style=style,
            language=language,
            auto_mode=auto_mode,
        )
        job.history.append({
            "from": None,
            "to": JobStatus.PENDING.value,
            "stage": None,
            "reason": "Created",
            "timestamp": job.created_at.isoformat(),
        })

        with self._lock:
            self._save(job)
            self._jobs[job.id] = job

        logger.info(f"Created job {job.id} (auto_mode={auto_mode})")
        return job

    def get(self, job_id: str) -> Job:
        """
        Raises:
            NotFoundError: If the job does not exist.
        """
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return job

    def list(self) -> list[Job]:
        """All jobs, newest first."""
        with self._lock:
            jobs = list(self._jobs.values())
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def transition(
        self,
        job: Job,
        status: JobStatus,
        stage: Optional[Stage] = None,
        reason: str = "",
        error: Optional[str] = None,
        best_effort: bool = False,
    ) -> Job:
        """
        Move a job to a new status (and optionally a new stage) and persist it.

        The new state is written before it is applied, so a failed write
        leaves the job exactly as it was. With best_effort the write failure
        is logged and the new state is applied anyway.

        Raises:
            StageOutOfOrderError: If the table forbids the transition.
            PersistenceError: If the write failed and best_effort is off.
        """
        if not can_transition(job.status, status):
            raise StageOutOfOrderError(
                f"Job {job.id} cannot go from {job.describe_state()} to {status.value}"
            )

        previous = job.describe_state()
        now = datetime.now()
        updated = replace(
            job,
            status=status,
            current_stage=stage if stage is not None else job.current_stage,
            error=error,
            updated_at=now,
            history=job.history + [{
                "from": previous,
                "to": status.value,
                "stage": (stage or job.current_stage).value,
                "reason": reason,
                "timestamp": now.isoformat(),
            }],
        )

        with self._lock:
            try:
                self._save(updated)
            except PersistenceError:
                if not best_effort:
                    raise
                logger.exception(f"Job {job.id}: could not persist {updated.describe_state()}")
            self._apply(job, updated)

        logger.info(f"Job {job.id}: {previous} -> {job.describe_state()} {reason}".rstrip())
        return job

    def record_attempt(self, job: Job, attempt: int, last_error: Optional[str] = None) -> None:
        """Expose the current attempt count on the job."""
        updated = replace(
            job,
            retry_count=attempt,
            error=last_error if last_error is not None else job.error,
            updated_at=datetime.now(),
        )
        with self._lock:
            self._save(updated)
            self._apply(job, updated)

    @staticmethod
    def _apply(job: Job, updated: Job) -> None:
        # Callers hold references to the job object, so it is updated in place
        job.status = updated.status
        job.current_stage = updated.current_stage
        job.error = updated.error
        job.retry_count = updated.retry_count
        job.updated_at = updated.updated_at
        job.history = updated.history
