"""
Artifact Store - Append-only, versioned store for all stage outputs.

Every stage step writes its output here. Nothing is ever updated or deleted:
each write creates the next version for its (job, stage, type) key, giving a
full audit trail that can reproduce any earlier run.

Key concepts:
- Version: 1-based, allocated per (job_id, stage, type), never reused
- Immutable: artifacts are frozen once written
- Blob indirection: large payloads carry blob_url instead of inline content
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from coursegen.errors import ValidationError
from coursegen.factory.storage import job_dir, read_json, write_json_atomic
from coursegen.models import Artifact, ArtifactType, Stage

logger = logging.getLogger(__name__)

ArtifactListener = Callable[[Artifact], None]


class ArtifactStore:
    """
    Canonical store for all pipeline artifacts.

    Features:
    - Atomic version allocation (no two writers get the same version)
    - Ordered listing by stage then version
    - Per-job subscriptions for read-side observers
    - Optional JSON persistence, one artifacts.json per job
    """

    def __init__(self, data_dir: Path | str | None = None):
        """
        Initialize the artifact store.

        Args:
            data_dir: Root directory for persisted state. None keeps
                everything in memory.
        """
        self.data_dir = Path(data_dir) if data_dir is not None else None

        self._artifacts: dict[str, list[Artifact]] = {}
        self._lock = threading.Lock()

        self._listeners: dict[str, list[ArtifactListener]] = {}
        self._listeners_lock = threading.Lock()

        if self.data_dir is not None:
            self._load_index()

    def _index_path(self, job_id: str) -> Path:
        return job_dir(self.data_dir, job_id) / "artifacts.json"

    def _load_index(self) -> None:
        """Load every job's artifact index from disk."""
        jobs_root = self.data_dir / "jobs"
        if not jobs_root.exists():
            return
        for index_path in sorted(jobs_root.glob("*/artifacts.json")):
            data = read_json(index_path, default={})
            artifacts = [Artifact.from_dict(a) for a in data.get("artifacts", [])]
            if artifacts:
                self._artifacts[artifacts[0].job_id] = artifacts
        logger.debug(f"Loaded artifacts for {len(self._artifacts)} jobs from {jobs_root}")

    def _save_index(self, job_id: str, artifacts: list[Artifact]) -> None:
        write_json_atomic(
            self._index_path(job_id),
            {"job_id": job_id, "artifacts": [a.to_dict() for a in artifacts]},
        )

    def create(
        self,
        job_id: str,
        stage: Stage | str,
        type: ArtifactType | str,
        content: Optional[dict[str, Any]] = None,
        blob_url: Optional[str] = None,
    ) -> Artifact:
        """
        Append the next version of an artifact.

        Version allocation and insertion happen as one step under the store
        lock, and the durable write completes before the artifact becomes
        visible to readers.

        Args:
            job_id: Owning job
            stage: Stage that produced the artifact
            type: Payload variant (JSON or VIDEO)
            content: Structured payload, may be omitted when blob_url is set
            blob_url: Location of an externally stored payload

        Returns:
            The created Artifact.

        Raises:
            ValidationError: If the payload does not match its type.
            PersistenceError: If the durable write failed. No row is kept.
        """
        stage = Stage.parse(stage)
        try:
            type = ArtifactType(type)
        except ValueError:
            raise ValidationError(f"Unknown artifact type '{type}'")

        if content is None and blob_url is None:
            raise ValidationError("An artifact needs content or a blob_url")
        if type == ArtifactType.VIDEO and not blob_url:
            raise ValidationError("VIDEO artifacts require a blob_url")

        with self._lock:
            existing = self._artifacts.get(job_id, [])
            latest = max(
                (a.version for a in existing if a.stage == stage and a.type == type),
                default=0,
            )
            artifact = Artifact(
                job_id=job_id,
                stage=stage,
                type=type,
                version=latest + 1,
                content=copy.deepcopy(content),
                blob_url=blob_url,
            )
            updated = existing + [artifact]
            if self.data_dir is not None:
                self._save_index(job_id, updated)
            self._artifacts[job_id] = updated

        logger.info(f"Stored {stage.value}/{type.value} v{artifact.version} for job {job_id}")
        self._notify(artifact)
        return artifact

    def list(self, job_id: str) -> list[Artifact]:
        """All artifacts of a job, ordered by stage then version."""
        with self._lock:
            artifacts = list(self._artifacts.get(job_id, []))
        return sorted(artifacts, key=lambda a: (a.stage.index, a.version, a.type.value))

    def get_latest(
        self,
        job_id: str,
        stage: Stage | str,
        type: ArtifactType | str | None = None,
    ) -> Optional[Artifact]:
        """
        Highest version for a stage, optionally restricted to one type.

        Across types, equal versions are ranked by insertion order. Timestamps
        are never used.
        """
        stage = Stage.parse(stage)
        type = ArtifactType(type) if type is not None else None
        with self._lock:
            artifacts = list(self._artifacts.get(job_id, []))
        candidates = [
            (a.version, position, a) for position, a in enumerate(artifacts)
            if a.stage == stage and (type is None or a.type == type)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda c: (c[0], c[1]))[2]

    def has_stage(self, job_id: str, stage: Stage | str) -> bool:
        """Whether any artifact exists for the stage."""
        return self.get_latest(job_id, stage) is not None

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, job_id: str, listener: ArtifactListener) -> Callable[[], None]:
        """
        Call listener after every artifact created for job_id.

        Returns:
            A function that removes the subscription. Calling it twice is fine.
        """
        with self._listeners_lock:
            self._listeners.setdefault(job_id, []).append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                listeners = self._listeners.get(job_id, [])
                if listener in listeners:
                    listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(job_id, None)

        return unsubscribe

    def listener_count(self, job_id: str) -> int:
        with self._listeners_lock:
            return len(self._listeners.get(job_id, []))

    def _notify(self, artifact: Artifact) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners.get(artifact.job_id, []))
        for listener in listeners:
            try:
                listener(artifact)
            except Exception:
                # The artifact is already committed; one bad observer must not undo that
                logger.exception(f"Artifact listener failed for job {artifact.job_id}")
