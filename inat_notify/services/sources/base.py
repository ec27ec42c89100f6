"""Protocol for notification sources. All fetchers return the same normalized shape."""
from typing import Any, Protocol

import httpx

from inat_notify.core.errors import SourceFetchError
from inat_notify.services.sources.types import FetcherCapabilities, FetchResult


class NotificationFetcher(Protocol):
    """Interface for API v1, session JSON and HTML scraping. Same contract; only fetch differs."""

    name: str
    capabilities: FetcherCapabilities

    async def fetch(self, page: int = 1, per_page: int | None = None) -> FetchResult:
        """
        Fetch one page of notifications, normalized.
        Raises NotAuthenticatedError when credentials are missing or rejected,
        SourceFetchError for any other network, HTTP or parse failure.
        """
        ...


def parse_json(resp: httpx.Response, source: str) -> Any:
    try:
        return resp.json() if resp.content else None
    except ValueError as e:
        raise SourceFetchError(source, f"{source} returned invalid JSON: {e}", status_code=resp.status_code) from e
