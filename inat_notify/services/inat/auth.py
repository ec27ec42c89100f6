"""
Credential providers for the three sources.

The API needs a JWT (bearer); the website endpoints need the session cookie.
A SessionCredentialProvider trades the session cookie for a JWT at /users/api_token
and caches it until its exp claim. If nothing is configured, callers get None and
the fetchers report "not authenticated".
"""
import logging
import time
from typing import Protocol

import jwt

from inat_notify.config import settings
from inat_notify.core.engine_config import JWT_LIFETIME_HOURS
from inat_notify.core.errors import SourceFetchError
from inat_notify.services.inat.client import INatClient

logger = logging.getLogger(__name__)

# Treat a token as expired this long before its exp claim
_EXPIRY_SKEW_SECONDS = 60


class CredentialProvider(Protocol):
    """Supplies auth context. The engine never manages credential lifecycle beyond clearing a rejected token."""

    async def get_api_token(self) -> str | None:
        ...

    async def clear_api_token(self) -> None:
        ...

    def session_headers(self) -> dict[str, str]:
        """Headers carrying the session cookie (empty when no session)."""
        ...


def _cookie_headers(cookie_name: str, session_cookie: str) -> dict[str, str]:
    if not session_cookie:
        return {}
    return {"Cookie": f"{cookie_name}={session_cookie}"}


def token_expiry(token: str, now: float | None = None) -> float:
    """Epoch seconds when token should be refreshed: exp claim if readable, else the configured lifetime."""
    now = time.time() if now is None else now
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        claims = {}
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return float(exp) - _EXPIRY_SKEW_SECONDS
    return now + JWT_LIFETIME_HOURS * 60 * 60


class StaticCredentialProvider:
    """Fixed token and cookie (from settings or arguments). Clearing drops the token for this session."""

    def __init__(
        self,
        *,
        api_token: str | None = None,
        session_cookie: str | None = None,
        cookie_name: str | None = None,
    ) -> None:
        self._api_token = (api_token if api_token is not None else settings.api_token).strip() or None
        self._session_cookie = (session_cookie if session_cookie is not None else settings.session_cookie).strip()
        self._cookie_name = cookie_name or settings.session_cookie_name

    async def get_api_token(self) -> str | None:
        return self._api_token

    async def clear_api_token(self) -> None:
        self._api_token = None

    def session_headers(self) -> dict[str, str]:
        return _cookie_headers(self._cookie_name, self._session_cookie)


class SessionCredentialProvider:
    """Exchanges the website session cookie for an API JWT and caches it."""

    def __init__(
        self,
        client: INatClient,
        *,
        session_cookie: str | None = None,
        cookie_name: str | None = None,
    ) -> None:
        self._client = client
        self._session_cookie = (session_cookie if session_cookie is not None else settings.session_cookie).strip()
        self._cookie_name = cookie_name or settings.session_cookie_name
        # (token, refresh_at_epoch)
        self._token_cache: tuple[str, float] | None = None

    def session_headers(self) -> dict[str, str]:
        return _cookie_headers(self._cookie_name, self._session_cookie)

    async def get_api_token(self) -> str | None:
        now = time.time()
        if self._token_cache and self._token_cache[1] > now:
            return self._token_cache[0]
        self._token_cache = None
        if not self._session_cookie:
            return None
        try:
            resp = await self._client.site(
                "/users/api_token",
                source="auth",
                session_headers=self.session_headers(),
                headers={"Accept": "application/json"},
                redirect_means_logged_out=True,
            )
            data = resp.json()
            token = data.get("api_token") if isinstance(data, dict) else None
        except (SourceFetchError, ValueError) as e:
            logger.info("Could not get API token from session: %s", e)
            return None
        if not token or not isinstance(token, str):
            logger.info("No api_token in /users/api_token response")
            return None
        self._token_cache = (token, token_expiry(token, now))
        return token

    async def clear_api_token(self) -> None:
        self._token_cache = None


def default_credentials(client: INatClient) -> CredentialProvider:
    """A configured INAT_API_TOKEN wins; else trade INAT_SESSION_COOKIE for a token; else nothing."""
    if settings.api_token or not settings.session_cookie:
        return StaticCredentialProvider()
    return SessionCredentialProvider(client)
