"""Test fixtures for web backend tests."""

import time
from contextlib import contextmanager
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from coursegen.config import Config
from coursegen.web.backend import dependencies
from coursegen.web.backend.app import create_app
from coursegen.web.backend.config import WebConfig
from coursegen.web.backend.dependencies import get_config, get_job_controller
from coursegen.web.backend.services.job_controller import JobController


@pytest.fixture
def web_config() -> WebConfig:
    """Create a test configuration."""
    return WebConfig(host="127.0.0.1", port=8000, cors_origins=["*"])


@pytest.fixture
def controller(test_config: Config) -> JobController:
    """A controller over a temporary data dir with fast retries and waits."""
    test_config.logging.rich = False
    return JobController.from_config(test_config)


@contextmanager
def client_for(controller: JobController, web_config: WebConfig) -> Generator[TestClient, None, None]:
    """Run the real app, lifespan included, against the given controller."""
    dependencies.get_config.cache_clear()
    dependencies.get_job_controller.cache_clear()

    app = create_app(web_config)
    app.dependency_overrides[get_config] = lambda: web_config
    app.dependency_overrides[get_job_controller] = lambda: controller

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def test_client(controller: JobController, web_config: WebConfig) -> Generator[TestClient, None, None]:
    with client_for(controller, web_config) as client:
        yield client


@pytest.fixture
def make_client(web_config: WebConfig):
    """Open a client over a custom controller (e.g. one with failing steps)."""
    return lambda controller, config=None: client_for(controller, config or web_config)


def poll_job(client: TestClient, job_id: str, state: str, timeout: float = 5.0) -> dict[str, Any]:
    """Poll GET /jobs/{id} until the job reaches state, e.g. AWAITING_APPROVAL(SCRIPT)."""
    deadline = time.monotonic() + timeout
    while True:
        job = client.get(f"/jobs/{job_id}").json()
        if job["state"] == state or time.monotonic() > deadline:
            return job
        time.sleep(0.02)


@pytest.fixture
def wait_for_state():
    return poll_job
