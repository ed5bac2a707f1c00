"""Service layer for the web backend.

Services wrap the pipeline core to provide a clean interface for API
endpoints.
"""

from .job_controller import JobController, RunHandle, workflow_id_for

__all__ = [
    "JobController",
    "RunHandle",
    "workflow_id_for",
]
