"""Async GitHub REST transport using githubkit.

Every GitHub call made by the sync pipeline goes through
``GitHubClient.get``, which owns the rate-limit policy: a 403 is never
surfaced to the caller, the client cools down and retries the same request.
"""

from __future__ import annotations

import asyncio
from typing import Any

from githubkit import GitHub, Response
from githubkit.exception import RequestError, RequestFailed, RequestTimeout

from github_sync_db.config import get_settings
from github_sync_db.logging import get_logger

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubFetchError,
    GitHubNotFoundError,
)

logger = get_logger(__name__)

RATE_LIMIT_STATUS = 403


class GitHubClient:
    """Authenticated GET transport for the GitHub REST API.

    Usage:
        async with GitHubClient(integration.access_token) as client:
            response = await client.get("/user/orgs", params={"per_page": 100})
            orgs = response.parsed_data

    Rate limiting:
        A 403 response triggers a fixed cooldown (60s by default) followed by
        a retry of the identical request. There is no retry cap; the loop ends
        only on success or on a non-403 error.
    """

    def __init__(
        self,
        token: str,
        *,
        cooldown_seconds: float | None = None,
        api_version: str | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: OAuth access token of the integration being synced
            cooldown_seconds: Wait before retrying a rate-limited request
                              (default: settings.github.rate_limit_cooldown_seconds)
            api_version: X-GitHub-Api-Version header value
                         (default: settings.github.api_version)

        Raises:
            GitHubAuthenticationError: If no token is given.
        """
        if not token:
            raise GitHubAuthenticationError("GitHub access token required")

        api_settings = get_settings().github
        self._token = token
        self._cooldown_seconds = (
            api_settings.rate_limit_cooldown_seconds
            if cooldown_seconds is None
            else cooldown_seconds
        )
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": api_version or api_settings.api_version,
        }
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance.

        githubkit's own retry is disabled so the 403 policy lives here.
        """
        if self._client is None:
            self._client = GitHub(self._token, auto_retry=False)
        return self._client

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    async def close(self) -> None:
        """Drop the underlying githubkit client.

        No connection is closed here: outside its own context manager
        githubkit opens and closes an HTTP client per request.
        """
        self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    async def get(self, url: str, params: dict[str, Any] | None = None) -> Response[Any]:
        """Issue one authenticated GET, waiting out rate limits.

        Args:
            url: API path ("/user/orgs") or absolute URL from a Link header
            params: Query parameters

        Returns:
            githubkit Response; ``parsed_data`` holds the decoded JSON body

        Raises:
            GitHubAuthenticationError: On 401
            GitHubNotFoundError: On 404
            GitHubFetchError: On any other non-403 status or transport error
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._github.arequest(
                    "GET",
                    url,
                    params=params,
                    headers=self._headers,
                )
            except RequestFailed as e:
                if e.response.status_code != RATE_LIMIT_STATUS:
                    raise self._handle_error(e, url) from e
                logger.warning(
                    "Rate limited on {url} (attempt {attempt}), retrying in {cooldown}s",
                    url=url,
                    attempt=attempt,
                    cooldown=self._cooldown_seconds,
                )
                await asyncio.sleep(self._cooldown_seconds)
            except (RequestError, RequestTimeout) as e:
                raise GitHubFetchError(f"Request to {url} failed: {e}") from e

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET and return the decoded JSON body."""
        response = await self.get(url, params=params)
        return response.parsed_data

    async def get_authenticated_user(self) -> dict[str, Any]:
        """Profile of the user who owns the token."""
        return await self.get_json("/user")

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed, url: str) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        status = error.response.status_code

        if status == 401:
            return GitHubAuthenticationError("Invalid or revoked GitHub token")
        if status == 404:
            return GitHubNotFoundError(f"Not found: {url}")
        return GitHubFetchError(f"GitHub API error ({status}) for {url}", status_code=status)
