"""Tests for GitHubClient.

Tests cover:
- Token validation and request headers
- Rate-limit cooldown and retry on 403
- Immediate propagation of other statuses
- Context manager usage
"""

from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest
from githubkit.exception import RequestFailed

from github_sync_db.github.client import GitHubClient
from github_sync_db.github.exceptions import (
    GitHubAuthenticationError,
    GitHubFetchError,
    GitHubNotFoundError,
)


def make_request_failed(status_code: int) -> RequestFailed:
    """Create a githubkit RequestFailed carrying the given status."""
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.headers = {}
    return RequestFailed(mock_response)


def make_response(parsed_data, headers=None):
    response = MagicMock()
    response.parsed_data = parsed_data
    response.headers = headers or {}
    return response


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def mock_github():
    """Create a mock githubkit GitHub client."""
    with patch("github_sync_db.github.client.GitHub") as mock_class:
        mock_instance = MagicMock()
        mock_instance.arequest = AsyncMock()
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def mock_sleep():
    """Skip real cooldowns."""
    with patch("github_sync_db.github.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


# -----------------------------------------------------------------------------
# Test: Initialization
# -----------------------------------------------------------------------------
class TestGitHubClientInit:
    """Tests for GitHubClient initialization."""

    def test_init_with_token(self):
        client = GitHubClient("test-token")
        assert client._token == "test-token"

    def test_init_without_token_raises(self):
        with pytest.raises(GitHubAuthenticationError):
            GitHubClient("")

    def test_cooldown_override(self):
        client = GitHubClient("test-token", cooldown_seconds=0.5)
        assert client.cooldown_seconds == 0.5

    def test_cooldown_defaults_to_settings(self):
        client = GitHubClient("test-token")
        assert client.cooldown_seconds == 60.0


# -----------------------------------------------------------------------------
# Test: Requests
# -----------------------------------------------------------------------------
class TestGet:
    """Tests for the GET transport."""

    async def test_get_returns_response(self, mock_github):
        mock_github.arequest.return_value = make_response([{"login": "octo-org"}])

        client = GitHubClient("test-token")
        response = await client.get("/user/orgs", params={"per_page": 100})

        assert response.parsed_data == [{"login": "octo-org"}]
        args, kwargs = mock_github.arequest.call_args
        assert args == ("GET", "/user/orgs")
        assert kwargs["params"] == {"per_page": 100}
        assert kwargs["headers"]["X-GitHub-Api-Version"] == "2022-11-28"
        assert kwargs["headers"]["Accept"] == "application/vnd.github+json"

    async def test_get_json_returns_body(self, mock_github):
        mock_github.arequest.return_value = make_response({"id": 583231})

        client = GitHubClient("test-token")
        assert await client.get_json("/user") == {"id": 583231}

    async def test_get_authenticated_user(self, mock_github):
        mock_github.arequest.return_value = make_response({"id": 583231, "login": "octocat"})

        client = GitHubClient("test-token")
        profile = await client.get_authenticated_user()

        assert profile["login"] == "octocat"
        assert mock_github.arequest.call_args.args == ("GET", "/user")


# -----------------------------------------------------------------------------
# Test: Rate Limit Policy
# -----------------------------------------------------------------------------
class TestRateLimit:
    """403 responses are waited out, never surfaced."""

    async def test_retries_after_cooldown_until_success(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = [
            make_request_failed(403),
            make_request_failed(403),
            make_response([{"id": 1}]),
        ]

        client = GitHubClient("test-token")
        response = await client.get("/user/orgs")

        assert response.parsed_data == [{"id": 1}]
        assert mock_github.arequest.await_count == 3
        assert mock_sleep.await_args_list == [call(60.0), call(60.0)]

    async def test_retries_identical_request(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = [make_request_failed(403), make_response([])]

        client = GitHubClient("test-token")
        await client.get("/orgs/octo-org/repos", params={"per_page": 50})

        first, second = mock_github.arequest.call_args_list
        assert first == second

    async def test_custom_cooldown(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = [make_request_failed(403), make_response([])]

        client = GitHubClient("test-token", cooldown_seconds=5)
        await client.get("/user/orgs")

        mock_sleep.assert_awaited_once_with(5)

    async def test_server_error_propagates_immediately(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = make_request_failed(500)

        client = GitHubClient("test-token")
        with pytest.raises(GitHubFetchError) as exc_info:
            await client.get("/user/orgs")

        assert exc_info.value.status_code == 500
        assert mock_github.arequest.await_count == 1
        mock_sleep.assert_not_awaited()

    async def test_not_found(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = make_request_failed(404)

        client = GitHubClient("test-token")
        with pytest.raises(GitHubNotFoundError) as exc_info:
            await client.get("/repos/octo-org/missing/commits")

        assert "/repos/octo-org/missing/commits" in str(exc_info.value)
        mock_sleep.assert_not_awaited()

    async def test_unauthorized(self, mock_github, mock_sleep):
        mock_github.arequest.side_effect = make_request_failed(401)

        client = GitHubClient("test-token")
        with pytest.raises(GitHubAuthenticationError):
            await client.get("/user")


# -----------------------------------------------------------------------------
# Test: Context Manager
# -----------------------------------------------------------------------------
class TestContextManager:
    async def test_context_manager_drops_client(self, mock_github):
        mock_github.arequest.return_value = make_response([])

        async with GitHubClient("test-token") as client:
            await client.get("/user/orgs")
            assert client._client is not None

        assert client._client is None

    async def test_close_only_drops_the_reference(self, mock_github):
        mock_github.arequest.return_value = make_response([])
        client = GitHubClient("test-token")
        await client.get("/user/orgs")

        await client.close()

        assert client._client is None
        assert [name for name, _, _ in mock_github.method_calls] == ["arequest"]
