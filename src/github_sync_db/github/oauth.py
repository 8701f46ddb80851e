"""GitHub OAuth web flow: authorize URL and code-for-token exchange."""

from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError

from github_sync_db.config import Settings
from github_sync_db.logging import get_logger

from .exceptions import OAuthExchangeError

logger = get_logger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"

EXCHANGE_TIMEOUT_SECONDS = 30.0


class OAuthToken(BaseModel):
    """Token payload returned by GitHub's access_token endpoint."""

    access_token: str
    token_type: str | None = None
    scope: str | None = None
    refresh_token: str | None = None


def build_authorize_url(settings: Settings) -> str:
    """URL the user visits to grant the OAuth app access."""
    query = urlencode(
        {
            "client_id": settings.github_client_id,
            "redirect_uri": settings.github_callback_url,
            "scope": settings.github_oauth_scope,
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


async def exchange_code_for_token(
    code: str,
    settings: Settings,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> OAuthToken:
    """Exchange an authorization code for an access token.

    Args:
        code: Code received on the OAuth callback
        settings: Settings holding the OAuth app credentials
        http_client: Optional client to send the request with (default: a
                     short-lived ``httpx.AsyncClient``)

    Returns:
        The granted token

    Raises:
        OAuthExchangeError: On HTTP failure, or when GitHub reports an error
                            (expired or already used code, bad credentials)
    """
    if not code:
        raise OAuthExchangeError("Authorization code required")

    payload = {
        "client_id": settings.github_client_id,
        "client_secret": settings.github_client_secret,
        "code": code,
    }
    headers = {"Accept": "application/json"}

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=EXCHANGE_TIMEOUT_SECONDS) as client:
                response = await client.post(ACCESS_TOKEN_URL, json=payload, headers=headers)
        else:
            response = await http_client.post(ACCESS_TOKEN_URL, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        logger.error("OAuth token exchange failed: {error}", error=e)
        raise OAuthExchangeError(f"Token exchange failed: {e}") from e
    except ValueError as e:
        raise OAuthExchangeError("Token exchange returned a non-JSON body") from e

    # GitHub answers 200 with an "error" field for rejected codes
    if "error" in data:
        description = data.get("error_description") or data["error"]
        logger.warning("OAuth token exchange rejected: {error}", error=description)
        raise OAuthExchangeError(f"Token exchange rejected: {description}")

    try:
        return OAuthToken.model_validate(data)
    except ValidationError as e:
        raise OAuthExchangeError("Token exchange response has no access_token") from e
