from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

import httpx

from gitlytics.domain.entities import Event, Repository, UserProfile
from gitlytics.domain.errors import (
    FetchError,
    NotFoundError,
    RateLimitedError,
    TransportError,
    UpstreamError,
)
from gitlytics.domain.interfaces import IGitHubFetcher

log = logging.getLogger(__name__)

GITHUB_API_URL  = "https://api.github.com"
API_VERSION     = "2022-11-28"
REQUEST_TIMEOUT = 15.0
MAX_RETRIES     = 3

ACTIVITY_KINDS = {
    "commits": {"per_page": 100},
    "issues":  {"state": "all", "per_page": 100},
    "pulls":   {"state": "all", "per_page": 100},
}


def raise_for_status(response: httpx.Response) -> None:
    """Translate a non-2xx response into the matching UpstreamError."""
    if response.is_success:
        return
    url = str(response.request.url)
    status = response.status_code
    if status in (403, 429):
        raise RateLimitedError(f"Rate limited ({status}) on {url}", status, url)
    if status == 404:
        raise NotFoundError(f"Not found: {url}", status, url)
    raise UpstreamError(f"HTTP {status} from {url}", status, url)


class GitHubRestClient(IGitHubFetcher):
    """
    Concrete IGitHubFetcher for the GitHub REST API.

    The httpx.AsyncClient is injected, so callers own its lifecycle and tests
    can hand in one backed by httpx.MockTransport. A token is optional:
    anonymous calls work but hit the stricter rate limit sooner, which shows
    up as RateLimitedError.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str | None = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        backoff_base: float = 1.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(1, max_retries)
        self._backoff_base = backoff_base
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET one resource and decode its JSON body.

        Transport errors and 5xx answers are retried with exponential backoff;
        4xx answers are final. Whatever is left over is raised as a FetchError.
        """
        url = f"{self._base_url}{path}"
        last_exc: FetchError | None = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.get(
                    url,
                    params=params,
                    headers=self._headers,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as exc:
                last_exc = TransportError(f"Timed out fetching {url}", url)
                last_exc.__cause__ = exc
            except httpx.RequestError as exc:
                last_exc = TransportError(f"Request to {url} failed: {exc}", url)
                last_exc.__cause__ = exc
            else:
                try:
                    raise_for_status(response)
                except UpstreamError as exc:
                    if not exc.retryable:
                        raise
                    last_exc = exc
                else:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise FetchError(f"Invalid JSON from {url}", url) from exc

            if attempt + 1 >= self._max_retries:
                raise last_exc

            wait = self._backoff_base * 2 ** attempt
            log.warning("HTTP error attempt %d/%d: %s — retrying in %.1fs",
                        attempt + 1, self._max_retries, last_exc, wait)
            await asyncio.sleep(wait)

        raise FetchError(f"Exhausted {self._max_retries} retries for {url}", url)

    # Anti-Corruption Layer
    @staticmethod
    def _parse_datetime(value: str | None) -> datetime | None:
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    def _parse_user(self, node: dict) -> UserProfile:
        try:
            return UserProfile(
                login        = node["login"],
                name         = node.get("name"),
                avatar_url   = node.get("avatar_url"),
                html_url     = node.get("html_url"),
                bio          = node.get("bio"),
                public_repos = node.get("public_repos") or 0,
                followers    = node.get("followers") or 0,
                following    = node.get("following") or 0,
                created_at   = self._parse_datetime(node.get("created_at")),
            )
        except (KeyError, TypeError) as exc:
            raise FetchError(f"Malformed user payload: {exc}") from exc

    def _parse_repo(self, node: dict) -> Repository | None:
        """
        GitHub sends:            We keep:
          "stargazers_count"  →  star_count
          "forks_count"       →  fork_count
          "owner": {"login"}  →  owner_login
        """
        try:
            return Repository(
                owner_login       = node["owner"]["login"],
                name              = node["name"],
                description       = node.get("description"),
                language          = node.get("language"),
                star_count        = node.get("stargazers_count") or 0,
                fork_count        = node.get("forks_count") or 0,
                open_issues_count = node.get("open_issues_count") or 0,
                topics            = tuple(node.get("topics") or ()),
                pushed_at         = self._parse_datetime(node.get("pushed_at")),
                html_url          = node.get("html_url"),
                is_fork           = bool(node.get("fork", False)),
            )
        except (KeyError, TypeError) as exc:
            log.debug("Skipping malformed repo node %s: %s", node.get("id") if isinstance(node, dict) else node, exc)
            return None

    def _parse_event(self, node: dict) -> Event | None:
        try:
            return Event(
                event_type = node["type"],
                created_at = self._parse_datetime(node.get("created_at")),
                repo_name  = (node.get("repo") or {}).get("name"),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            log.debug("Skipping malformed event node: %s", exc)
            return None

    @staticmethod
    def _expect_list(data: Any, url: str) -> list:
        if not isinstance(data, list):
            raise FetchError(f"Expected a JSON array from {url}", url)
        return data

    # IGitHubFetcher implementation
    async def fetch_user(self, username: str) -> UserProfile:
        data = await self._get_json(f"/users/{username}")
        if not isinstance(data, dict):
            raise FetchError(f"Expected a JSON object for user {username}")
        return self._parse_user(data)

    async def fetch_repos_page(self, username: str, page: int, per_page: int = 100) -> list[Repository]:
        path = f"/users/{username}/repos"
        data = await self._get_json(path, {"per_page": per_page, "page": page, "sort": "updated"})
        nodes = self._expect_list(data, path)
        return [parsed for node in nodes if (parsed := self._parse_repo(node)) is not None]

    async def fetch_repo_languages(self, owner: str, repo: str) -> dict[str, int]:
        data = await self._get_json(f"/repos/{owner}/{repo}/languages")
        if not isinstance(data, dict):
            raise FetchError(f"Expected a JSON object for {owner}/{repo} languages")
        return {lang: n for lang, n in data.items() if isinstance(n, int)}

    async def fetch_user_events(self, username: str, per_page: int = 100) -> list[Event]:
        path = f"/users/{username}/events"
        data = await self._get_json(path, {"per_page": per_page})
        nodes = self._expect_list(data, path)
        return [parsed for node in nodes if (parsed := self._parse_event(node)) is not None]

    async def fetch_repo_activity(self, owner: str, repo: str, kind: str) -> list[dict]:
        if kind not in ACTIVITY_KINDS:
            raise ValueError(f"Unknown activity kind: {kind!r}")
        path = f"/repos/{owner}/{repo}/{kind}"
        data = await self._get_json(path, ACTIVITY_KINDS[kind])
        return [n for n in self._expect_list(data, path) if isinstance(n, dict)]
