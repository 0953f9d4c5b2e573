"""
Domain Layer — Errors
---------------------
Two families live here.

Fetch-level errors describe why a single upstream call failed. They are
raised by the infrastructure clients and absorbed by the cached fetch
wrapper, which turns them into an absent FetchResult value.

Insights-level errors are the only ones that reach the caller of a public
use case: they fire when the user profile itself cannot be obtained.
"""

from __future__ import annotations


class FetchError(Exception):
    """Any failure to obtain or decode an upstream payload."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    """Network failure or timeout before a response arrived."""


class UpstreamError(FetchError):
    """The upstream answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, url: str | None = None) -> None:
        super().__init__(message, url)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500


class RateLimitedError(UpstreamError):
    """403/429 — primary or secondary rate limit exhausted."""


class NotFoundError(UpstreamError):
    """404 — the user or repository does not exist."""


class InsightsError(Exception):
    """A top-level request could not be answered."""


class UserNotFoundError(InsightsError):
    def __init__(self, username: str) -> None:
        super().__init__(f"GitHub user '{username}' not found")
        self.username = username


class GitHubRateLimitError(InsightsError):
    def __init__(self) -> None:
        super().__init__(
            "GitHub API rate limit exceeded. "
            "Configure GITHUB_TOKEN or try again later."
        )
