from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import TransportError

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "epicbot-rest/0.2.0"
HTTP_ERROR_STATUS = 400
REQUEST_TIMEOUT = 30


class GitHubAPIError(TransportError):
    """Raised when the GitHub REST API returns an error or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


@dataclass
class GitHubRestClient:
    """Lightweight blocking REST client for the issue endpoints EpicBot uses.

    Every call is attempted exactly once; failures surface as
    :class:`GitHubAPIError` and are never retried here.
    """

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}") from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:  # pragma: no cover - defensive
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Issue operations --------------------------------------------
    def get_issue(self, *, number: int) -> dict[str, Any]:
        data = self._request("GET", f"/repos/{self.repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"GitHub API returned no issue payload for #{number}")
        return data

    def list_timeline(self, *, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{self.repo}/issues/{number}/timeline")
        return [entry for entry in data if isinstance(entry, dict)]

    def update_issue(
        self,
        *,
        number: int,
        body: str | None = None,
        state: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if body is not None:
            payload["body"] = body
        if state is not None:
            payload["state"] = state
        if payload:
            self._request(
                "PATCH", f"/repos/{self.repo}/issues/{number}", json_body=payload
            )

    def create_comment(self, *, number: int, body: str) -> int | None:
        data = self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/comments",
            json_body={"body": body},
        )
        if isinstance(data, dict):
            comment_id = data.get("id")
            if isinstance(comment_id, int):
                return comment_id
        return None


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
]
