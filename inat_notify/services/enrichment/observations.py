"""Batched observation detail fetch from GET /v1/observations?id=1,2,3 (public, no auth)."""
import asyncio
import logging
from typing import Any, Iterable

from inat_notify.core.engine_config import OBSERVATION_BATCH_SIZE
from inat_notify.core.errors import SourceFetchError
from inat_notify.services.inat import INatClient
from inat_notify.services.sources.base import parse_json

logger = logging.getLogger(__name__)

SOURCE = "observations"


def batches(ids: list[str], size: int) -> list[list[str]]:
    return [ids[i:i + size] for i in range(0, len(ids), size)]


async def _fetch_batch(client: INatClient, batch: list[str], per_page: int) -> dict[str, dict[str, Any]]:
    resp = await client.request(
        "GET",
        f"{client.api_base_url}/observations",
        source=SOURCE,
        params={"id": ",".join(batch), "per_page": per_page},
    )
    if not resp.is_success:
        raise SourceFetchError(SOURCE, f"Observations batch failed: {resp.status_code}", status_code=resp.status_code)
    data = parse_json(resp, SOURCE)
    results = data.get("results") if isinstance(data, dict) else None
    out: dict[str, dict[str, Any]] = {}
    for obs in results or []:
        if isinstance(obs, dict) and obs.get("id") is not None:
            out[str(obs["id"])] = obs
    return out


async def fetch_observations(
    client: INatClient,
    ids: Iterable[str],
    *,
    batch_size: int = OBSERVATION_BATCH_SIZE,
) -> dict[str, dict[str, Any]]:
    """
    Observation id -> raw observation, fetched in concurrent batches.
    A failed batch is logged and skipped; the others still contribute.
    """
    unique = list(dict.fromkeys(str(i) for i in ids if i))
    if not unique:
        return {}
    chunks = batches(unique, batch_size)
    results = await asyncio.gather(
        *(_fetch_batch(client, chunk, batch_size) for chunk in chunks),
        return_exceptions=True,
    )
    merged: dict[str, dict[str, Any]] = {}
    for chunk, result in zip(chunks, results):
        if isinstance(result, BaseException):
            logger.warning("Error fetching observations batch (%s ids): %s", len(chunk), result)
            continue
        merged.update(result)
    logger.info("Fetched %s of %s observations in %s batches", len(merged), len(unique), len(chunks))
    return merged
