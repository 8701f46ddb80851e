"""Link-header pagination over GitHub listing endpoints."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from .checkpoint import checkpoint

if TYPE_CHECKING:
    from .client import GitHubClient

NEXT_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="next"')

DEFAULT_PER_PAGE = 100


def parse_next_link(link_header: str | None) -> str | None:
    """Extract the rel="next" URL from a Link header.

    Args:
        link_header: Raw ``Link`` response header, or None

    Returns:
        Next page URL, or None on the last page
    """
    if not link_header:
        return None
    match = NEXT_LINK_PATTERN.search(link_header)
    return match.group(1) if match else None


async def iter_pages(
    client: GitHubClient,
    path: str,
    params: dict[str, Any] | None = None,
    *,
    per_page: int = DEFAULT_PER_PAGE,
) -> AsyncIterator[list[Any]]:
    """Yield each page of a listing endpoint in order.

    The first request goes to ``path`` with ``params`` and ``per_page``;
    later requests follow the rel="next" URL verbatim (it already carries
    the query string). Iteration stops when there is no next link, when a
    page comes back short or empty, or when the next URL was already
    requested. Each call walks its own cursor.

    Args:
        client: Transport used for every request
        path: Listing endpoint path, e.g. "/orgs/octo-org/repos"
        params: Extra query parameters for the first request
        per_page: Page size requested from GitHub

    Yields:
        Non-empty lists of raw JSON items
    """
    url: str | None = path
    query: dict[str, Any] | None = {**(params or {}), "per_page": per_page}
    requested: set[str] = set()

    while url is not None:
        requested.add(url)
        response = await client.get(url, params=query)
        payload = response.parsed_data

        if payload is None:
            items: list[Any] = []
        elif isinstance(payload, list):
            items = payload
        else:
            items = [payload]

        if items:
            yield items
        await checkpoint()

        if len(items) < per_page:
            return

        next_url = parse_next_link(response.headers.get("link"))
        if next_url is None or next_url in requested:
            return
        url, query = next_url, None


async def fetch_all_pages(
    client: GitHubClient,
    path: str,
    params: dict[str, Any] | None = None,
    *,
    per_page: int = DEFAULT_PER_PAGE,
) -> list[Any]:
    """Concatenate every page of a listing endpoint into one list."""
    items: list[Any] = []
    async for page in iter_pages(client, path, params, per_page=per_page):
        items.extend(page)
    return items
