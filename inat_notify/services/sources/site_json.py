"""Session JSON source: GET /users/new_updates.json. Unread items only, capped, no pagination."""
import logging

from inat_notify.core.constants import SITE_UPDATES_PARAMS
from inat_notify.core.errors import SourceFetchError
from inat_notify.services.inat import CredentialProvider, INatClient
from inat_notify.services.normalize import normalize_many
from inat_notify.services.sources.base import parse_json
from inat_notify.services.sources.types import FetcherCapabilities, FetchResult, SiteUpdate

logger = logging.getLogger(__name__)


class JsonFetcher:
    name = "json"
    # Mentions are included but coverage is unreliable; the controller uses it as a mention supplement only
    capabilities = FetcherCapabilities(
        mentions=True,
        comments=True,
        identifications=True,
        viewed_state=True,
        viewed_notifications=False,
        pagination=False,
        timestamps=True,
        structured_data=True,
    )

    def __init__(self, client: INatClient, credentials: CredentialProvider) -> None:
        self._client = client
        self._credentials = credentials

    async def fetch(self, page: int = 1, per_page: int | None = None) -> FetchResult:
        """page and per_page are ignored; the endpoint returns everything unread at once."""
        resp = await self._client.site(
            "/users/new_updates.json",
            source=self.name,
            session_headers=self._credentials.session_headers(),
            params=SITE_UPDATES_PARAMS,
            headers={"Accept": "application/json"},
            redirect_means_logged_out=True,
        )
        data = parse_json(resp, self.name)
        if data is None:
            data = []
        if not isinstance(data, list):
            raise SourceFetchError(self.name, "Unexpected /users/new_updates.json response shape")
        notifications = normalize_many(
            [SiteUpdate(item) for item in data if isinstance(item, dict)],
            site_base_url=self._client.site_base_url,
        )
        types = sorted({str(item.get("notification")) for item in data if isinstance(item, dict)})
        logger.info("Site JSON fetched %s notifications (types: %s)", len(notifications), types)
        return FetchResult(
            notifications=notifications,
            total=len(notifications),
            page=1,
            has_more=False,
            raw_response=data,
        )
