"""
Enrichment: upgrades stored notifications after the first render.

1. Mentions whose only link was a comment get their observation id resolved.
2. Details for every referenced observation are fetched in batches and attached.

Best effort throughout. Runs against whatever the store holds when each step
applies; writes are keyed by id, so records that disappeared in a reload are
simply not touched.
"""
import logging

from inat_notify.core.engine_config import OBSERVATION_BATCH_SIZE
from inat_notify.services.enrichment.comments import resolve_comment_ids
from inat_notify.services.enrichment.observations import fetch_observations
from inat_notify.services.inat import CredentialProvider, INatClient
from inat_notify.services.store import NotificationStore

logger = logging.getLogger(__name__)


async def enrich(
    store: NotificationStore,
    client: INatClient,
    credentials: CredentialProvider,
    *,
    batch_size: int = OBSERVATION_BATCH_SIZE,
) -> bool:
    """Run both stages. Returns True when anything in the store changed."""
    resolved = 0
    pending = store.get_pending_comment_ids()
    if pending:
        mapping = await resolve_comment_ids(client, credentials, pending)
        if mapping:
            resolved = store.resolve_comment_ids(mapping)

    obs_ids = store.get_observation_ids()
    if not obs_ids:
        return resolved > 0
    observations = await fetch_observations(client, obs_ids, batch_size=batch_size)
    enriched = store.enrich_with_observations(observations) if observations else 0
    logger.debug("Enrichment: %s comments resolved, %s notifications enriched", resolved, enriched)
    return resolved > 0 or enriched > 0
