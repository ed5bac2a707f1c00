"""Shared test fixtures."""

from pathlib import Path
from typing import Awaitable, Callable

import pytest

from coursegen.config import Config
from coursegen.factory.approval_gate import ApprovalGate
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.job_state import JobRepository
from coursegen.factory.retry import RetryController
from coursegen.factory.sequencer import StageSequencer
from coursegen.factory.steps import LocalBlobStorage, StepContext, default_steps
from coursegen.factory.theme import ThemeConfigResolver
from coursegen.models import Job, Stage, StepOutput


async def no_sleep(seconds: float) -> None:
    """Backoff stand-in that returns at once."""


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Provide a test configuration with fast retries and waits."""
    config = Config()
    config.storage.data_dir = str(tmp_path / "data")
    config.pipeline.backoff_base_seconds = 0.0
    config.pipeline.backoff_max_seconds = 0.0
    config.wait.poll_interval_ms = 20
    return config


@pytest.fixture
def sample_markdown() -> str:
    """Provide sample markdown content for testing."""
    return """
# How Caches Work

## Why caching matters

Memory is slow compared to the CPU, so recently used data is kept close by.

## Cache lines

Data moves between memory and cache in fixed size blocks called lines.
"""


@pytest.fixture
def store() -> ArtifactStore:
    return ArtifactStore()


@pytest.fixture
def repo() -> JobRepository:
    return JobRepository()


@pytest.fixture
def gate(store: ArtifactStore) -> ApprovalGate:
    return ApprovalGate(store)


class StepRecorder:
    """Wraps stage steps, counting calls and failing the first N calls per stage (-1 = always)."""

    def __init__(self, failures: dict[Stage, int] | None = None):
        self.calls: dict[Stage, int] = {stage: 0 for stage in Stage}
        self.failures = dict(failures or {})

    def wrap(self, stage: Stage, step: Callable[[Job, StepContext], Awaitable[StepOutput]]):
        async def recorded(job: Job, context: StepContext) -> StepOutput:
            self.calls[stage] += 1
            if self.failures.get(stage, 0) != 0:
                self.failures[stage] -= 1
                raise RuntimeError(f"{stage.value} renderer unavailable")
            return await step(job, context)

        return recorded

    def steps(self) -> dict:
        return {stage: self.wrap(stage, step) for stage, step in default_steps().items()}


@pytest.fixture
def make_sequencer(tmp_path: Path, repo: JobRepository, store: ArtifactStore, gate: ApprovalGate):
    """Factory for a sequencer over the shared in-memory repo, store and gate."""

    def factory(steps: dict | None = None, max_attempts: int = 3) -> StageSequencer:
        context = StepContext(
            store=store,
            resolver=ThemeConfigResolver(),
            blobs=LocalBlobStorage(tmp_path / "blobs"),
        )
        retry = RetryController(max_attempts=max_attempts, sleep=no_sleep)
        return StageSequencer(repo, store, gate, retry, steps or default_steps(), context)

    return factory


@pytest.fixture
def step_recorder() -> type[StepRecorder]:
    return StepRecorder
