from __future__ import annotations

from typing import Any, Protocol

import httpx

from .errors import GitHubApiError
from .models import Job

DEFAULT_API_URL = "https://api.github.com"
PER_PAGE = 100


class JobSource(Protocol):
    def list_jobs(self, run_id: int, attempt: int) -> list[Job]:
        ...

    def close(self) -> None:
        ...


class GitHubJobsClient(JobSource):
    """Reads the jobs of one workflow run attempt from the GitHub REST API."""

    def __init__(
        self,
        *,
        token: str,
        repository: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        logger=None,
        client: httpx.Client | None = None,
    ) -> None:
        if "/" not in repository:
            raise ValueError(f"repository must be 'owner/repo', got {repository!r}")
        self._repository = repository
        self._logger = logger
        self._client = client or httpx.Client(timeout=timeout)
        self._base_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "deploy-status",
        }

    def close(self) -> None:
        self._client.close()

    def _get_page(self, url: str, page: int) -> dict[str, Any]:
        try:
            response = self._client.get(
                url,
                headers=self._headers,
                params={"per_page": PER_PAGE, "page": page},
            )
        except httpx.HTTPError as exc:
            raise GitHubApiError(f"failed to reach GitHub API: {exc}") from exc
        if response.status_code != 200:
            raise GitHubApiError(
                f"GitHub API returned HTTP {response.status_code} when listing jobs: {response.text[:500]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise GitHubApiError(f"failed to decode GitHub jobs JSON: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("jobs"), list):
            raise GitHubApiError("GitHub jobs API returned an unexpected structure")
        return data

    def list_jobs(self, run_id: int, attempt: int) -> list[Job]:
        url = f"{self._base_url}/repos/{self._repository}/actions/runs/{run_id}/attempts/{attempt}/jobs"
        raw_jobs: list[dict[str, Any]] = []
        page = 1
        while True:
            data = self._get_page(url, page)
            batch = [item for item in data["jobs"] if isinstance(item, dict)]
            raw_jobs.extend(batch)
            total = data.get("total_count")
            if not batch or not isinstance(total, int) or len(raw_jobs) >= total:
                break
            page += 1
        if self._logger is not None:
            self._logger.debug("jobs_payload", run_id=run_id, attempt=attempt, jobs=raw_jobs)
        return [Job.from_dict(item) for item in raw_jobs]
