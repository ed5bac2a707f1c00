"""JSON file helpers for the per-job stores."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from coursegen.errors import PersistenceError


def job_dir(data_dir: Path, job_id: str) -> Path:
    """Directory holding one job's state files."""
    return data_dir / "jobs" / job_id


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON so readers see either the old file or the new one.

    Raises:
        PersistenceError: If the file could not be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON file, or return default when it does not exist."""
    if not path.exists():
        return default
    with open(path) as f:
        return json.load(f)
