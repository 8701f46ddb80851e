"""GitHub client exceptions."""


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when no token is available or GitHub rejects it (401)."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404)."""

    pass


class GitHubFetchError(GitHubClientError):
    """Raised for any other non-rate-limit failure talking to GitHub.

    Covers unexpected HTTP statuses and transport errors (DNS, TLS,
    connection resets). Rate-limit rejections never surface as this
    error; the client waits them out.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OAuthExchangeError(GitHubClientError):
    """Raised when an OAuth authorization code cannot be exchanged for a token."""

    pass
