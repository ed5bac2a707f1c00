"""Job controller: the composition root the HTTP layer talks to.

Wires the repository, artifact store, approval gate, retry controller,
sequencer and wait coordinator together from a Config, and exposes one
method per API operation.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from coursegen.config import Config
from coursegen.factory.approval_gate import ApprovalGate
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.job_state import JobRepository
from coursegen.factory.retry import RetryController
from coursegen.factory.sequencer import StageSequencer
from coursegen.factory.steps import LocalBlobStorage, StageStep, StepContext, default_steps
from coursegen.factory.theme import ThemeConfig, ThemeConfigResolver, ThemeOverrides
from coursegen.factory.wait import WaitCoordinator, WaitResult
from coursegen.models import Approval, Job, Stage

logger = logging.getLogger(__name__)

DEFAULT_APPROVER = "user"


def workflow_id_for(job_id: str) -> str:
    """Stable workflow id of a job's pipeline run."""
    return f"course-generation-{job_id}"


@dataclass
class RunHandle:
    """Identifies one start (or retry) of a job's pipeline."""

    workflow_id: str
    run_id: str


class JobController:
    """Facade over the pipeline core for the API routers."""

    def __init__(
        self,
        repo: JobRepository,
        store: ArtifactStore,
        gate: ApprovalGate,
        sequencer: StageSequencer,
        waiter: WaitCoordinator,
        resolver: ThemeConfigResolver,
        config: Optional[Config] = None,
    ):
        self.repo = repo
        self.store = store
        self.gate = gate
        self.sequencer = sequencer
        self.waiter = waiter
        self.resolver = resolver
        self.config = config or Config()

    @classmethod
    def from_config(
        cls,
        config: Config,
        steps: Optional[dict[Stage, StageStep]] = None,
    ) -> "JobController":
        """Build every component from configuration.

        Args:
            config: Pipeline configuration.
            steps: Stage steps to run. Defaults to the built-in steps.

        Returns:
            A ready JobController.
        """
        data_dir = Path(config.storage.data_dir) if config.storage.data_dir else None
        blobs_root = data_dir / config.storage.blobs_dir if data_dir else Path(config.storage.blobs_dir)

        repo = JobRepository(data_dir)
        store = ArtifactStore(data_dir)
        gate = ApprovalGate(store, data_dir)
        resolver = ThemeConfigResolver(default_preset=config.theme.default_preset)
        retry = RetryController(
            max_attempts=config.pipeline.max_attempts,
            base_interval=config.pipeline.backoff_base_seconds,
            max_interval=config.pipeline.backoff_max_seconds,
        )
        context = StepContext(
            store=store,
            resolver=resolver,
            blobs=LocalBlobStorage(blobs_root, base_url=config.storage.blob_base_url),
        )
        sequencer = StageSequencer(repo, store, gate, retry, steps or default_steps(), context)
        waiter = WaitCoordinator(
            repo,
            store,
            default_timeout_ms=config.wait.default_timeout_ms,
            max_timeout_ms=config.wait.max_timeout_ms,
            poll_interval_ms=config.wait.poll_interval_ms,
        )
        return cls(repo, store, gate, sequencer, waiter, resolver, config=config)

    # Jobs

    def create_job(
        self,
        content: str,
        style: Optional[str] = None,
        language: Optional[str] = None,
        auto_mode: bool = False,
    ) -> Job:
        return self.repo.create(content, style=style, language=language, auto_mode=auto_mode)

    def get_job(self, job_id: str) -> Job:
        return self.repo.get(job_id)

    def list_jobs(self) -> list[Job]:
        return self.repo.list()

    async def run(self, job_id: str) -> RunHandle:
        """Start the pipeline for a PENDING job."""
        await self.sequencer.start(job_id)
        handle = RunHandle(workflow_id=workflow_id_for(job_id), run_id=uuid.uuid4().hex)
        logger.info(f"Started {handle.workflow_id} (run {handle.run_id})")
        return handle

    async def retry(self, job_id: str) -> RunHandle:
        """Re-run the failed stage of a FAILED job."""
        await self.sequencer.retry(job_id)
        handle = RunHandle(workflow_id=workflow_id_for(job_id), run_id=uuid.uuid4().hex)
        logger.info(f"Retrying {handle.workflow_id} (run {handle.run_id})")
        return handle

    # Artifacts & approvals

    async def artifacts(
        self,
        job_id: str,
        wait_for_stage: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> WaitResult:
        return await self.waiter.wait(job_id, wait_for_stage, timeout_ms)

    async def approve(self, job_id: str, stage: str, approved_by: Optional[str] = None) -> tuple[Job, Approval]:
        return await self.sequencer.approve(job_id, stage, approved_by or DEFAULT_APPROVER)

    async def reject(
        self,
        job_id: str,
        stage: str,
        reason: Optional[str] = None,
        rejected_by: Optional[str] = None,
    ) -> tuple[Job, Approval]:
        return await self.sequencer.reject(job_id, stage, reason=reason, rejected_by=rejected_by or DEFAULT_APPROVER)

    def approvals(self, job_id: str) -> list[Approval]:
        self.repo.get(job_id)
        return self.gate.list(job_id)

    # Themes

    def resolve_theme(
        self,
        preset: Optional[str] = None,
        overrides: ThemeOverrides | dict[str, Any] | None = None,
    ) -> ThemeConfig:
        return self.resolver.resolve(preset, overrides)

    # Lifecycle

    def recover(self) -> list[Job]:
        return self.sequencer.recover_interrupted()

    async def shutdown(self) -> None:
        await self.sequencer.shutdown()
