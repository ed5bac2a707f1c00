"""Configuration for the web backend."""

from pathlib import Path

from pydantic import BaseModel


class WebConfig(BaseModel):
    """Web server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    config_path: Path | None = None  # pipeline config.yaml, searched for when unset
    require_auth: bool = False  # reject requests without a bearer token
