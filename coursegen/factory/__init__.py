"""Course pipeline core: artifacts, approvals, retries and stage sequencing."""

from coursegen.factory.approval_gate import ApprovalGate
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.job_state import JobRepository
from coursegen.factory.retry import RetryController
from coursegen.factory.sequencer import StageSequencer
from coursegen.factory.steps import LocalBlobStorage, StepContext, default_steps
from coursegen.factory.theme import ThemeConfig, ThemeConfigResolver, ThemeOverrides
from coursegen.factory.wait import WaitCoordinator, WaitResult

__all__ = [
    "ApprovalGate",
    "ArtifactStore",
    "JobRepository",
    "LocalBlobStorage",
    "RetryController",
    "StageSequencer",
    "StepContext",
    "ThemeConfig",
    "ThemeConfigResolver",
    "ThemeOverrides",
    "WaitCoordinator",
    "WaitResult",
    "default_steps",
]
