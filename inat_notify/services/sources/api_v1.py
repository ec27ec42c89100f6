"""API v1 source: GET /v1/observations/updates with a bearer JWT. Comments and identifications only."""
import logging

from inat_notify.core.engine_config import DEFAULT_PER_PAGE
from inat_notify.core.errors import MSG_NOT_AUTHENTICATED, NotAuthenticatedError, SourceFetchError
from inat_notify.services.inat import CredentialProvider, INatClient
from inat_notify.services.normalize import normalize_many
from inat_notify.services.sources.base import parse_json
from inat_notify.services.sources.types import ApiV1Update, FetcherCapabilities, FetchResult

logger = logging.getLogger(__name__)


def _int_or_none(v: object) -> int | None:
    try:
        return int(v)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class ApiV1Fetcher:
    name = "api_v1"
    # Mentions never appear in /observations/updates (platform limitation)
    capabilities = FetcherCapabilities(
        mentions=False,
        comments=True,
        identifications=True,
        viewed_state=True,
        viewed_notifications=True,
        pagination=True,
        timestamps=True,
        structured_data=True,
    )

    def __init__(self, client: INatClient, credentials: CredentialProvider) -> None:
        self._client = client
        self._credentials = credentials

    async def _token(self) -> str:
        token = await self._credentials.get_api_token()
        if not token:
            raise NotAuthenticatedError(self.name, MSG_NOT_AUTHENTICATED)
        return token

    async def _call(self, method: str, path: str, params: dict | None = None):
        token = await self._token()
        try:
            return await self._client.api(method, path, token=token, source=self.name, params=params)
        except NotAuthenticatedError:
            # Token expired or revoked; drop it so the next load fetches a fresh one
            await self._credentials.clear_api_token()
            raise

    async def fetch(self, page: int = 1, per_page: int | None = None) -> FetchResult:
        page = max(1, page or 1)
        per_page = per_page or DEFAULT_PER_PAGE
        resp = await self._call("GET", "/observations/updates", {"page": page, "per_page": per_page})
        data = parse_json(resp, self.name)
        if not isinstance(data, dict):
            raise SourceFetchError(self.name, "Unexpected /observations/updates response shape")
        results = data.get("results") or []
        if not isinstance(results, list):
            results = []
        notifications = normalize_many(
            [ApiV1Update(r) for r in results if isinstance(r, dict)],
            site_base_url=self._client.site_base_url,
        )
        total = _int_or_none(data.get("total_results"))
        logger.info("API v1 fetched %s notifications (page %s, total %s)", len(notifications), page, total)
        return FetchResult(
            notifications=notifications,
            total=total,
            page=_int_or_none(data.get("page")) or page,
            has_more=len(results) == per_page and total is not None and total > page * per_page,
            raw_response=data,
        )

    async def mark_viewed(self, observation_id: str) -> bool:
        """Mark the updates on one observation as read."""
        await self._call("PUT", f"/observations/{observation_id}/viewed")
        return True

    async def mark_all_viewed(self) -> bool:
        await self._call("PUT", "/observations/updates/viewed")
        return True
