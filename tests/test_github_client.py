from __future__ import annotations

import httpx
import pytest

from gitlytics.domain.errors import (
    FetchError,
    NotFoundError,
    RateLimitedError,
    TransportError,
    UpstreamError,
)
from gitlytics.infrastructure.github_client import GitHubRestClient

REPO_NODE = {
    "id": 1,
    "name": "hello",
    "owner": {"login": "octo"},
    "description": "says hi",
    "language": "Python",
    "stargazers_count": 12,
    "forks_count": 3,
    "open_issues_count": 4,
    "topics": ["cli", "python"],
    "pushed_at": "2025-01-10T08:00:00Z",
    "html_url": "https://github.com/octo/hello",
    "fork": False,
}


def client_for(handler, **kwargs) -> GitHubRestClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("backoff_base", 0)
    return GitHubRestClient(client=http, **kwargs)


@pytest.mark.unit
class TestGitHubRestClient:

    @pytest.mark.asyncio
    async def test_fetch_user_parses_profile_and_sends_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "login": "octo", "name": "Octo", "public_repos": 8,
                "followers": 5, "following": 2, "created_at": "2011-01-25T18:44:36Z",
            })

        user = await client_for(handler, token="t0ken").fetch_user("octo")

        assert seen["url"] == "https://api.github.com/users/octo"
        assert seen["auth"] == "Bearer t0ken"
        assert user.login == "octo"
        assert user.public_repos == 8
        assert user.created_at.year == 2011

    @pytest.mark.asyncio
    async def test_no_token_sends_no_authorization(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"login": "octo"})

        await client_for(handler).fetch_user("octo")

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_repos_page_params_and_parsing(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[REPO_NODE, {"id": 2, "broken": True}])

        repos = await client_for(handler).fetch_repos_page("octo", 2, 100)

        assert seen["params"] == {"per_page": "100", "page": "2", "sort": "updated"}
        assert len(repos) == 1
        repo = repos[0]
        assert repo.full_name == "octo/hello"
        assert (repo.star_count, repo.fork_count, repo.open_issues_count) == (12, 3, 4)
        assert repo.topics == ("cli", "python")
        assert repo.pushed_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_empty_repo_page(self):
        repos = await client_for(lambda r: httpx.Response(200, json=[])).fetch_repos_page("octo", 3)
        assert repos == []

    @pytest.mark.asyncio
    async def test_languages(self):
        def handler(request):
            assert request.url.path == "/repos/octo/hello/languages"
            return httpx.Response(200, json={"Python": 1200, "Shell": 30})

        langs = await client_for(handler).fetch_repo_languages("octo", "hello")

        assert langs == {"Python": 1200, "Shell": 30}

    @pytest.mark.asyncio
    async def test_events_skip_malformed(self):
        payload = [
            {"type": "PushEvent", "created_at": "2025-01-01T10:00:00Z", "repo": {"name": "octo/hello"}},
            {"created_at": "2025-01-01T10:00:00Z"},
        ]
        events = await client_for(lambda r: httpx.Response(200, json=payload)).fetch_user_events("octo")

        assert len(events) == 1
        assert events[0].event_type == "PushEvent"
        assert events[0].repo_name == "octo/hello"

    @pytest.mark.asyncio
    async def test_repo_activity_params(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[{"number": 1}])

        items = await client_for(handler).fetch_repo_activity("octo", "hello", "pulls")

        assert seen["path"] == "/repos/octo/hello/pulls"
        assert seen["params"] == {"state": "all", "per_page": "100"}
        assert items == [{"number": 1}]

    @pytest.mark.asyncio
    async def test_unknown_activity_kind(self):
        with pytest.raises(ValueError):
            await client_for(lambda r: httpx.Response(200, json=[])).fetch_repo_activity("o", "r", "stars")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, error_type", [
        (403, RateLimitedError),
        (429, RateLimitedError),
        (404, NotFoundError),
        (422, UpstreamError),
    ])
    async def test_client_errors_map_to_types_without_retry(self, status, error_type):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status, json={"message": "nope"})

        with pytest.raises(error_type) as info:
            await client_for(handler, max_retries=3).fetch_user("octo")

        assert info.value.status_code == status
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"login": "octo"})])

        user = await client_for(lambda r: next(responses), max_retries=2).fetch_user("octo")

        assert user.login == "octo"

    @pytest.mark.asyncio
    async def test_exhausted_server_errors_raise_upstream_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(UpstreamError) as info:
            await client_for(handler, max_retries=2).fetch_user("octo")

        assert info.value.status_code == 500
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(TransportError):
            await client_for(handler, max_retries=1).fetch_user("octo")

    @pytest.mark.asyncio
    async def test_exhausted_transport_errors_raise_the_last_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError(f"refused #{len(calls)}", request=request)

        with pytest.raises(TransportError, match="refused #3"):
            await client_for(handler, max_retries=3).fetch_user("octo")

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_zero_retries_still_makes_one_attempt(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(UpstreamError):
            await client_for(handler, max_retries=0).fetch_user("octo")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            await client_for(handler, max_retries=2).fetch_repo_languages("octo", "hello")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with pytest.raises(FetchError):
            await client_for(lambda r: httpx.Response(200, text="<html>")).fetch_user("octo")

    @pytest.mark.asyncio
    async def test_wrong_shape(self):
        with pytest.raises(FetchError):
            await client_for(lambda r: httpx.Response(200, json={"message": "x"})).fetch_repos_page("octo", 1)
