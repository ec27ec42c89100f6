"""Shared fixtures: notification factory, fake sources, mock-transport iNat client."""
from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest

from inat_notify.models import Category, Notification, NotificationUser, Source
from inat_notify.services.inat import INatClient, StaticCredentialProvider
from inat_notify.services.sources.types import FetcherCapabilities, FetchResult

API_BASE = "https://api.test/v1"
SITE_BASE = "https://site.test"


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 1, 26, hour, minute, tzinfo=timezone.utc)


def make_notification(
    id: str = "n1",
    *,
    source: Source = Source.API_V1,
    category: Category = Category.COMMENT,
    observation_id: str = "100",
    login: str = "alice",
    created_at: datetime | None = None,
    viewed: bool | None = False,
) -> Notification:
    url = f"{SITE_BASE}/observations/{observation_id}" if observation_id.isdigit() else f"{SITE_BASE}/comments/{observation_id.split('_')[-1]}"
    return Notification(
        id=id,
        source=source,
        category=category,
        viewed=viewed,
        created_at=created_at,
        observation_id=observation_id,
        observation_url=url,
        user=NotificationUser(login=login, name=login.title()),
    )


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> INatClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return INatClient(http, api_base_url=API_BASE, site_base_url=SITE_BASE)


def empty_api_handler(request: httpx.Request) -> httpx.Response:
    """Observations endpoint with no results; anything else 404."""
    if request.url.path.endswith("/observations"):
        return httpx.Response(200, json={"results": []})
    return httpx.Response(404)


API_CAPS = FetcherCapabilities(comments=True, identifications=True, viewed_state=True, viewed_notifications=True,
                               pagination=True, timestamps=True, structured_data=True)
JSON_CAPS = FetcherCapabilities(mentions=True, comments=True, identifications=True, viewed_state=True,
                                timestamps=True, structured_data=True)
HTML_CAPS = FetcherCapabilities(mentions=True, comments=True, identifications=True, viewed_notifications=True)


class FakeFetcher:
    """Returns a fixed FetchResult or raises a fixed error. Optionally waits on an event first."""

    def __init__(self, name, capabilities, notifications=None, *, error=None, total=None, gate=None):
        self.name = name
        self.capabilities = capabilities
        self._notifications = notifications or []
        self._error = error
        self._total = total
        self._gate = gate
        self.calls = 0
        self.viewed_calls: list[str] = []

    async def fetch(self, page=1, per_page=None):
        self.calls += 1
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return FetchResult(
            notifications=[n.model_copy(deep=True) for n in self._notifications],
            total=self._total if self._total is not None else len(self._notifications),
            page=page,
        )

    async def mark_viewed(self, observation_id):
        self.viewed_calls.append(observation_id)
        return True

    async def mark_all_viewed(self):
        self.viewed_calls.append("*")
        return True


@pytest.fixture
def credentials():
    return StaticCredentialProvider(api_token="token-123", session_cookie="sess", cookie_name="_inaturalist_session")


@pytest.fixture
def no_credentials():
    return StaticCredentialProvider(api_token="", session_cookie="")
