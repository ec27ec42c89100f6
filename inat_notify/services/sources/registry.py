"""Registry of notification sources. Add new fetchers here."""
import logging

from inat_notify.services.inat import CredentialProvider, INatClient
from inat_notify.services.sources.base import NotificationFetcher

logger = logging.getLogger(__name__)


def default_fetchers(client: INatClient, credentials: CredentialProvider) -> list[NotificationFetcher]:
    """
    The built-in sources in merge order: primary first, then supplements by descending rank.
    The controller takes every category from the primary and only mentions from the rest.
    """
    from inat_notify.services.sources.api_v1 import ApiV1Fetcher
    from inat_notify.services.sources.html_page import HtmlFetcher
    from inat_notify.services.sources.site_json import JsonFetcher

    fetchers: list[NotificationFetcher] = [
        ApiV1Fetcher(client, credentials),
        JsonFetcher(client, credentials),
        HtmlFetcher(client, credentials),
    ]
    logger.debug("Notification sources: %s", [f.name for f in fetchers])
    return fetchers
