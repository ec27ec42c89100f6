"""Comment -> observation resolution: follow the /comments/<id> redirect to the observation page."""
import asyncio
import logging
from typing import Iterable

from inat_notify.core.constants import observation_id_from_url
from inat_notify.core.errors import SourceFetchError
from inat_notify.services.inat import CredentialProvider, INatClient

logger = logging.getLogger(__name__)


async def _resolve_one(client: INatClient, credentials: CredentialProvider, comment_id: str) -> str | None:
    try:
        url = await client.final_url(
            f"/comments/{comment_id}",
            source="comments",
            session_headers=credentials.session_headers(),
        )
    except SourceFetchError as e:
        logger.debug("Comment %s did not resolve: %s", comment_id, e)
        return None
    return observation_id_from_url(url)


async def resolve_comment_ids(
    client: INatClient,
    credentials: CredentialProvider,
    comment_ids: Iterable[str],
) -> dict[str, str]:
    """
    Map comment id -> observation id. Probes run concurrently and independently;
    a comment that fails or does not redirect to an observation is left out.
    """
    ids = list(dict.fromkeys(c for c in comment_ids if c))
    if not ids:
        return {}
    results = await asyncio.gather(
        *(_resolve_one(client, credentials, cid) for cid in ids),
        return_exceptions=True,
    )
    mapping: dict[str, str] = {}
    for cid, result in zip(ids, results):
        if isinstance(result, BaseException):
            logger.debug("Comment %s resolution raised: %s", cid, result)
            continue
        if result:
            mapping[cid] = result
    logger.info("Resolved %s of %s comment ids", len(mapping), len(ids))
    return mapping
