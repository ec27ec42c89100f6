"""iNaturalist HTTP client: lowest level, sends requests and classifies failures. No parsing."""
import logging
from typing import Any

import httpx

from inat_notify.config import settings
from inat_notify.core.errors import (
    MSG_NOT_LOGGED_IN,
    MSG_SESSION_EXPIRED,
    NotAuthenticatedError,
    SourceFetchError,
)

logger = logging.getLogger(__name__)


class INatClient:
    """Shared async client for api.inaturalist.org (bearer JWT) and www.inaturalist.org (session cookie)."""

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        *,
        api_base_url: str | None = None,
        site_base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_base_url = (api_base_url or settings.api_base_url).rstrip("/")
        self.site_base_url = (site_base_url or settings.site_base_url).rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=timeout or settings.http_timeout_seconds,
            headers={"User-Agent": settings.user_agent},
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "INatClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        source: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """Send one request. Transport failures become SourceFetchError tagged with source."""
        try:
            return await self._http.request(
                method,
                url,
                params=params,
                headers=headers,
                follow_redirects=follow_redirects,
            )
        except httpx.HTTPError as e:
            raise SourceFetchError(source, f"{source} request failed: {e}") from e

    async def api(
        self,
        method: str,
        path: str,
        *,
        token: str,
        source: str = "api_v1",
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Authenticated API v1 call. 401 raises NotAuthenticatedError; other non-2xx raise SourceFetchError."""
        resp = await self.request(
            method,
            f"{self.api_base_url}{path}",
            source=source,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        if resp.status_code == 401:
            raise NotAuthenticatedError(source, MSG_SESSION_EXPIRED, status_code=401)
        if not resp.is_success:
            raise SourceFetchError(source, f"API error: {resp.status_code}", status_code=resp.status_code)
        return resp

    async def site(
        self,
        path: str,
        *,
        source: str,
        session_headers: dict[str, str],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        redirect_means_logged_out: bool = False,
    ) -> httpx.Response:
        """Session-cookie GET on the website. 401 (or any redirect, when asked) raises NotAuthenticatedError."""
        resp = await self.request(
            "GET",
            f"{self.site_base_url}{path}",
            source=source,
            params=params,
            headers={**session_headers, **(headers or {})},
        )
        if resp.status_code == 401 or (redirect_means_logged_out and resp.is_redirect):
            raise NotAuthenticatedError(source, MSG_NOT_LOGGED_IN, status_code=resp.status_code)
        if not resp.is_success:
            raise SourceFetchError(source, f"{source} fetch failed: {resp.status_code}", status_code=resp.status_code)
        return resp

    async def final_url(self, path: str, *, source: str, session_headers: dict[str, str]) -> str:
        """HEAD with redirects followed; returns where the site finally sent us."""
        resp = await self.request(
            "HEAD",
            f"{self.site_base_url}{path}",
            source=source,
            headers=session_headers,
            follow_redirects=True,
        )
        return str(resp.url)
