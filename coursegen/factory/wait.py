"""Bounded long-poll over a job's artifacts.

The coordinator is a read-side observer: it subscribes to the artifact store
and never takes a job's write lock, so approvals and step completions proceed
while callers wait.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.job_state import JobRepository
from coursegen.models import Artifact, Stage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 20000
MAX_TIMEOUT_MS = 60000


@dataclass
class WaitResult:
    """Artifacts visible when the wait ended, and whether it timed out."""

    artifacts: list[Artifact]
    timeout: bool = False


class WaitCoordinator:
    def __init__(
        self,
        repo: JobRepository,
        store: ArtifactStore,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_timeout_ms: int = MAX_TIMEOUT_MS,
        poll_interval_ms: int = 1000,
    ):
        self.repo = repo
        self.store = store
        self.default_timeout_ms = default_timeout_ms
        self.max_timeout_ms = max_timeout_ms
        self.poll_interval_ms = poll_interval_ms

    def clamp_timeout(self, timeout_ms: Optional[int]) -> int:
        """Apply the default and keep the value within [0, max_timeout_ms]."""
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        return max(0, min(int(timeout_ms), self.max_timeout_ms))

    async def wait(
        self,
        job_id: str,
        target_stage: Stage | str | None = None,
        timeout_ms: Optional[int] = None,
    ) -> WaitResult:
        """
        Return the job's artifacts once target_stage has one, or at timeout.

        Without a target stage this returns the current artifacts at once.

        Raises:
            NotFoundError: Unknown job or stage name.
        """
        self.repo.get(job_id)
        if target_stage is None:
            return WaitResult(artifacts=self.store.list(job_id))

        stage = Stage.parse(target_stage)
        timeout = self.clamp_timeout(timeout_ms) / 1000
        poll_interval = self.poll_interval_ms / 1000

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        arrived = asyncio.Event()

        def on_artifact(artifact: Artifact) -> None:
            if artifact.stage == stage:
                loop.call_soon_threadsafe(arrived.set)

        unsubscribe = self.store.subscribe(job_id, on_artifact)
        try:
            while True:
                arrived.clear()
                if self.store.has_stage(job_id, stage):
                    return WaitResult(artifacts=self.store.list(job_id))

                remaining = deadline - loop.time()
                if remaining <= 0:
                    logger.debug(f"Wait for {stage.value} on job {job_id} timed out after {timeout:.2f}s")
                    return WaitResult(artifacts=self.store.list(job_id), timeout=True)

                try:
                    await asyncio.wait_for(arrived.wait(), timeout=min(remaining, poll_interval))
                except asyncio.TimeoutError:
                    pass
        finally:
            unsubscribe()
