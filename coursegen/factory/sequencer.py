"""
Stage Sequencer - Drives a job through SCRIPT, STORYBOARD, PAGES and MERGE.

Each job is driven by one asyncio task at a time. The task runs the stage step
through the RetryController without holding the job lock, then takes the lock
to store the artifact and apply the transition together:

    RUNNING(s) --step ok--> AWAITING_APPROVAL(s)      (manual mode)
    RUNNING(s) --step ok--> RUNNING(next(s))          (auto mode, AUTO approval)
    RUNNING(MERGE) --ok---> COMPLETED
    RUNNING(s) --failed---> FAILED(s)

Commands (start, approve, reject, retry) are serialized per job by the same
lock, so two of them can never produce duplicate versions or double
transitions.
"""

import asyncio
import logging
from typing import Optional

from coursegen.errors import (
    PersistenceError,
    StageNotReadyError,
    StageOutOfOrderError,
    StepExecutionError,
    ValidationError,
)
from coursegen.factory.approval_gate import ApprovalGate
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.job_state import JobRepository
from coursegen.factory.retry import RetryController
from coursegen.factory.steps import StageStep, StepContext
from coursegen.models import Approval, Job, JobStatus, RetryState, Stage

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "interrupted"


class StageSequencer:
    """Owns every job's stage transitions and the tasks that execute steps."""

    def __init__(
        self,
        repo: JobRepository,
        store: ArtifactStore,
        gate: ApprovalGate,
        retry: RetryController,
        steps: dict[Stage, StageStep],
        context: StepContext,
    ):
        missing = [s.value for s in Stage.ordered() if s not in steps]
        if missing:
            raise ValueError(f"No step registered for stage(s): {', '.join(missing)}")

        self.repo = repo
        self.store = store
        self.gate = gate
        self.retry_controller = retry
        self.steps = steps
        self.context = context

        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    def is_driving(self, job_id: str) -> bool:
        """Whether a step task is currently in flight for the job."""
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self, job_id: str) -> Job:
        """
        PENDING -> RUNNING(SCRIPT) and begin executing.

        Raises:
            NotFoundError: Unknown job.
            StageOutOfOrderError: The job was already started.
        """
        job = self.repo.get(job_id)
        async with self._lock_for(job_id):
            if job.status != JobStatus.PENDING:
                raise StageOutOfOrderError(f"Job {job_id} was already started ({job.describe_state()})")
            self.repo.transition(job, JobStatus.RUNNING, Stage.SCRIPT, reason="Started")
            self._spawn(job, Stage.SCRIPT)
        return job

    async def approve(self, job_id: str, stage: Stage | str, approved_by: str) -> tuple[Job, Approval]:
        """
        AWAITING_APPROVAL(stage) -> RUNNING(next(stage)).

        Approving a stage that is already approved returns the existing
        record and changes nothing.

        Raises:
            NotFoundError: Unknown job or stage name.
            StageNotReadyError: The stage has no artifact yet.
            StageOutOfOrderError: The stage is not the one awaiting approval.
        """
        job = self.repo.get(job_id)
        stage = Stage.parse(stage)

        async with self._lock_for(job_id):
            if not self.store.has_stage(job_id, stage):
                raise StageNotReadyError(f"Stage {stage.value} of job {job_id} has no artifact yet")

            existing = self.gate.get(job_id, stage)
            awaiting = job.status == JobStatus.AWAITING_APPROVAL and job.current_stage == stage
            if existing is not None and existing.approved and not awaiting:
                return job, existing

            if not awaiting:
                raise StageOutOfOrderError(
                    f"Cannot approve {stage.value}: job {job_id} is {job.describe_state()}"
                )

            # An approval stored before a failed transition is reused, not rewritten
            approval = self.gate.approve(job, stage, approved_by)
            next_stage = stage.next()
            self.repo.transition(job, JobStatus.RUNNING, next_stage, reason=f"{stage.value} approved by {approved_by}")
            self._spawn(job, next_stage)
        return job, approval

    async def reject(
        self,
        job_id: str,
        stage: Stage | str,
        reason: Optional[str] = None,
        rejected_by: str = "user",
    ) -> tuple[Job, Approval]:
        """
        AWAITING_APPROVAL(stage) -> RUNNING(stage); the step runs again and
        writes the next version of the stage's artifact.

        Raises:
            NotFoundError: Unknown job or stage name.
            StageOutOfOrderError: The stage is not the one awaiting approval.
        """
        job = self.repo.get(job_id)
        stage = Stage.parse(stage)

        async with self._lock_for(job_id):
            if job.status != JobStatus.AWAITING_APPROVAL or job.current_stage != stage:
                raise StageOutOfOrderError(
                    f"Cannot reject {stage.value}: job {job_id} is {job.describe_state()}"
                )
            rejection = self.gate.reject(job, stage, rejected_by, reason)
            self.repo.transition(job, JobStatus.RUNNING, stage, reason=f"Rejected: {rejection.reason}")
            self._spawn(job, stage)
        return job, rejection

    async def retry(self, job_id: str) -> Job:
        """
        FAILED(s) -> RUNNING(s), the explicit manual retry.

        Raises:
            NotFoundError: Unknown job.
            StageOutOfOrderError: The job is not FAILED.
        """
        job = self.repo.get(job_id)
        async with self._lock_for(job_id):
            if job.status != JobStatus.FAILED:
                raise StageOutOfOrderError(f"Only failed jobs can be retried; job {job_id} is {job.describe_state()}")
            stage = job.current_stage
            self.repo.transition(job, JobStatus.RUNNING, stage, reason="Manual retry")
            self._spawn(job, stage)
        return job

    def recover_interrupted(self) -> list[Job]:
        """
        Mark jobs persisted as RUNNING, but with no live task, as FAILED.

        Called once at startup: their task died with the previous process, so
        they wait for a manual retry instead of hanging in RUNNING forever.
        """
        recovered = []
        for job in self.repo.list():
            if job.status == JobStatus.RUNNING and not self.is_driving(job.id):
                self.repo.transition(
                    job, JobStatus.FAILED, job.current_stage,
                    reason="Interrupted by restart", error=INTERRUPTED_ERROR,
                )
                recovered.append(job)
        if recovered:
            logger.warning(f"Marked {len(recovered)} interrupted job(s) as FAILED")
        return recovered

    async def join(self, job_id: str) -> None:
        """Wait until the job has no step task in flight."""
        while True:
            task = self._tasks.get(job_id)
            if task is None:
                return
            await asyncio.wait([task])
            if self._tasks.get(job_id) is task:
                self._tasks.pop(job_id, None)

    async def shutdown(self) -> None:
        """Cancel every in-flight step task."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} running step task(s)")
        self._tasks.clear()

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _spawn(self, job: Job, stage: Stage) -> None:
        task = asyncio.create_task(self._drive(job, stage), name=f"{job.id}:{stage.value}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda t: self._task_done(job.id, t))

    def _task_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            self._tasks.pop(job_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Step task for job {job_id} crashed", exc_info=task.exception())

    async def _drive(self, job: Job, stage: Stage) -> None:
        step = self.steps[stage]

        def on_attempt(state: RetryState) -> None:
            self.repo.record_attempt(job, state.attempt, state.last_error)

        try:
            output = await self.retry_controller.execute(job, stage, lambda: step(job, self.context), on_attempt)
        except (StepExecutionError, PersistenceError) as e:
            async with self._lock_for(job.id):
                if self._is_current(job, stage):
                    self._fail(job, stage, "Step failed", str(e))
            return

        async with self._lock_for(job.id):
            if not self._is_current(job, stage):
                logger.warning(f"Discarding {stage.value} output for job {job.id}: job is {job.describe_state()}")
                return

            # Artifact first: a crash after this line leaves the job RUNNING(stage)
            # with its output stored, never advanced without it.
            try:
                self.store.create(job.id, stage, output.type, content=output.content, blob_url=output.blob_url)
            except (ValidationError, PersistenceError) as e:
                self._fail(job, stage, "Could not store output", str(e))
                return

            next_stage = stage.next()
            try:
                if next_stage is None:
                    self.repo.transition(job, JobStatus.COMPLETED, reason="Course video merged")
                elif self.gate.check(job, stage):
                    self.repo.transition(job, JobStatus.RUNNING, next_stage, reason=f"{stage.value} auto-approved")
                    self._spawn(job, next_stage)
                else:
                    self.repo.transition(job, JobStatus.AWAITING_APPROVAL, stage, reason="Waiting for review")
            except PersistenceError as e:
                self._fail(job, stage, "Could not record transition", str(e))
                return

        if job.status == JobStatus.COMPLETED:
            self._locks.pop(job.id, None)

    def _fail(self, job: Job, stage: Stage, reason: str, error: str) -> None:
        # FAILED is kept in memory even if it cannot be written, so the job stays retryable
        self.repo.transition(job, JobStatus.FAILED, stage, reason=reason, error=error, best_effort=True)

    @staticmethod
    def _is_current(job: Job, stage: Stage) -> bool:
        return job.status == JobStatus.RUNNING and job.current_stage == stage
