"""Configuration loading and management."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class PipelineConfig(BaseModel):
    """Stage execution and auto-mode retry settings."""

    max_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    backoff_max_seconds: float = Field(default=30.0, ge=0.0)


class WaitConfig(BaseModel):
    """Long-poll settings for artifact waits."""

    default_timeout_ms: int = Field(default=20000, ge=0)
    max_timeout_ms: int = Field(default=60000, ge=0)
    poll_interval_ms: int = Field(default=1000, ge=10)


class StorageConfig(BaseModel):
    """Where jobs, artifacts, approvals and blobs are kept."""

    data_dir: str | None = "data"
    blobs_dir: str = "blobs"
    blob_base_url: str | None = None


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: str = "INFO"
    rich: bool = True


class ThemeDefaultsConfig(BaseModel):
    """Theme used when a job names no style."""

    default_preset: str = "modern"


class Config(BaseModel):
    """Main application configuration."""

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    wait: WaitConfig = Field(default_factory=WaitConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    theme: ThemeDefaultsConfig = Field(default_factory=ThemeDefaultsConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()

        # Accept the flat "wait_timeout_ms" shorthand used by older configs
        if "wait_timeout_ms" in data:
            data.setdefault("wait", {})["default_timeout_ms"] = data.pop("wait_timeout_ms")

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump()
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file or use defaults."""
    if config_path is None:
        # Look for config.yaml in current directory or project root
        candidates = [Path("config.yaml"), Path(__file__).parent.parent / "config.yaml"]
        for candidate in candidates:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is not None:
        return Config.from_yaml(config_path)

    return Config()
