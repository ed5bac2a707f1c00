"""HTTP client for the course generation API.

The bearer credential is held explicitly: set it after the user signs in,
clear it when they sign out, or pass one per call to override it.
"""

from typing import Any, Optional

import httpx

DEFAULT_TIMEOUT = 30.0


class CourseGenClient:
    """Thin synchronous wrapper over the HTTP endpoints."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        credential: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        self._credential = credential
        self.timeout = timeout

    def __enter__(self) -> "CourseGenClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # Credential lifecycle

    @property
    def has_credential(self) -> bool:
        return self._credential is not None

    def set_credential(self, token: str) -> None:
        if not token:
            raise ValueError("token must not be empty")
        self._credential = token

    def clear_credential(self) -> None:
        self._credential = None

    def _headers(self, credential: Optional[str]) -> dict[str, str]:
        token = credential or self._credential
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _request(
        self,
        method: str,
        path: str,
        credential: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        response = self._client.request(method, path, headers=self._headers(credential), **kwargs)
        response.raise_for_status()
        return response.json()

    # Jobs

    def create_job(
        self,
        content: str,
        style: Optional[str] = None,
        language: Optional[str] = None,
        auto_mode: bool = False,
        credential: Optional[str] = None,
    ) -> str:
        """Create a job and return its id."""
        payload: dict[str, Any] = {"content": content, "autoMode": auto_mode}
        if style is not None:
            payload["style"] = style
        if language is not None:
            payload["language"] = language
        return self._request("POST", "/jobs", credential, json=payload)["jobId"]

    def run(self, job_id: str, credential: Optional[str] = None) -> dict[str, str]:
        """Start a job. Returns {workflowId, runId}."""
        return self._request("POST", f"/jobs/{job_id}/run", credential)

    def retry(self, job_id: str, credential: Optional[str] = None) -> dict[str, str]:
        return self._request("POST", f"/jobs/{job_id}/retry", credential)

    def get_job(self, job_id: str, credential: Optional[str] = None) -> dict[str, Any]:
        return self._request("GET", f"/jobs/{job_id}", credential)

    def list_jobs(self, credential: Optional[str] = None) -> list[dict[str, Any]]:
        return self._request("GET", "/jobs", credential)

    def artifacts(
        self,
        job_id: str,
        wait_for_stage: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        credential: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Fetch artifacts, optionally long-polling until a stage has output.

        The read timeout is stretched past timeout_ms so the server, not the
        client, decides when the wait ends.
        """
        params: dict[str, Any] = {}
        if wait_for_stage:
            params["waitForStage"] = wait_for_stage
        if timeout_ms is not None:
            params["timeoutMs"] = timeout_ms
        timeout = self.timeout
        if wait_for_stage:
            timeout += (timeout_ms if timeout_ms is not None else 60000) / 1000
        return self._request("GET", f"/jobs/{job_id}/artifacts", credential, params=params, timeout=timeout)

    def approve(
        self,
        job_id: str,
        stage: str,
        approved_by: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> dict[str, Any]:
        payload = {"stage": stage}
        if approved_by:
            payload["approvedBy"] = approved_by
        return self._request("POST", f"/jobs/{job_id}/approve", credential, json=payload)

    def reject(
        self,
        job_id: str,
        stage: str,
        reason: Optional[str] = None,
        credential: Optional[str] = None,
    ) -> dict[str, Any]:
        payload = {"stage": stage}
        if reason:
            payload["reason"] = reason
        return self._request("POST", f"/jobs/{job_id}/reject", credential, json=payload)

    # Themes

    def themes(self, credential: Optional[str] = None) -> dict[str, Any]:
        return self._request("GET", "/themes", credential)

    def resolve_theme(
        self,
        preset: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
        credential: Optional[str] = None,
    ) -> dict[str, Any]:
        return self._request(
            "POST", "/themes/resolve", credential,
            json={"preset": preset, "overrides": overrides},
        )

    def health(self) -> bool:
        return self._request("GET", "/health").get("status") == "ok"
