"""GitHub Issues adapter for the issue reconciler."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
import structlog

from docguard.errors import IssueFilingError

from . import IssueRequest, OpenIssue, parse_dedup_key

logger = structlog.get_logger(__name__)

PER_PAGE = 100
MAX_PAGES = 10


class GitHubIssueTracker:
    """List and create issues in one repository through the REST API."""

    def __init__(
        self,
        repository: str,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if "/" not in repository:
            raise ValueError(f"Repository must look like 'owner/name', got {repository!r}")
        self.repository = repository
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=api_url.rstrip("/"), timeout=timeout)
        self._headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def list_open(self, label: str) -> List[OpenIssue]:
        issues: List[OpenIssue] = []
        for page in range(1, MAX_PAGES + 1):
            params = {"state": "open", "labels": label, "per_page": PER_PAGE, "page": page}
            payload = self._request("GET", f"/repos/{self.repository}/issues", params=params)
            if not isinstance(payload, list):
                raise IssueFilingError("Unexpected response listing issues")
            for item in payload:
                if "pull_request" in item:
                    continue
                key = parse_dedup_key(item.get("body"))
                if key:
                    issues.append(OpenIssue(dedup_key=key, id=str(item.get("number"))))
            if len(payload) < PER_PAGE:
                break
        logger.debug("open_issues_listed", repository=self.repository, count=len(issues))
        return issues

    def create(self, request: IssueRequest) -> str:
        payload = self._request(
            "POST",
            f"/repos/{self.repository}/issues",
            json={"title": request.title, "body": request.body, "labels": list(request.labels)},
        )
        if not isinstance(payload, dict) or "number" not in payload:
            raise IssueFilingError("Unexpected response creating issue")
        return str(payload["number"])

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise IssueFilingError(
                f"GitHub API {method} {path} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise IssueFilingError(f"GitHub API {method} {path} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise IssueFilingError(f"GitHub API {method} {path} returned invalid JSON") from exc
