"""
NotificationStore: ordered, deduplicating collection of canonical notifications.

One instance per controller session. Entries are mutated in place by enrichment, so
callers must not keep copies that could go stale.
"""
import logging
from typing import Any, Iterable

from inat_notify.config import settings
from inat_notify.core.constants import (
    PENDING_COMMENT_PREFIX,
    SOURCE_RANK,
    UNKNOWN_SOURCE_RANK,
    observation_id_from_url,
    observation_url,
)
from inat_notify.models import Category, Notification, ObservationDetails, TaxonRef
from inat_notify.services.dedup import notification_key

logger = logging.getLogger(__name__)


def source_rank(n: Notification) -> int:
    return SOURCE_RANK.get(n.source.value, UNKNOWN_SOURCE_RANK)


def _empty_counts() -> dict[str, int]:
    counts = {c.value: 0 for c in Category}
    counts["total"] = 0
    return counts


def _photo_variant(obs: dict[str, Any], size: str) -> str | None:
    photos = obs.get("photos") or []
    if not isinstance(photos, list) or not photos or not isinstance(photos[0], dict):
        return None
    url = photos[0].get("url")
    return url.replace("square", size) if isinstance(url, str) and url else None


def observation_details(obs: dict[str, Any]) -> ObservationDetails:
    """Build the enrichment block from one /v1/observations result."""
    taxon = obs.get("taxon") if isinstance(obs.get("taxon"), dict) else None
    user = obs.get("user") if isinstance(obs.get("user"), dict) else {}
    return ObservationDetails(
        taxon=TaxonRef(
            id=taxon.get("id"),
            name=taxon.get("name"),
            common_name=taxon.get("preferred_common_name") or None,
        ) if taxon else None,
        thumbnail=_photo_variant(obs, "small"),
        medium_photo=_photo_variant(obs, "medium"),
        observer=user.get("login") or None,
        observed_on=obs.get("observed_on_string") or obs.get("observed_on") or None,
        place_guess=obs.get("place_guess") or None,
        quality_grade=obs.get("quality_grade") or None,
        identifications_count=obs.get("identifications_count") or 0,
    )


class NotificationStore:
    """Maps dedup key -> the best-ranked surviving copy of each event."""

    def __init__(self, site_base_url: str | None = None) -> None:
        self._site_base_url = (site_base_url or settings.site_base_url).rstrip("/")
        self._notifications: dict[str, Notification] = {}

    def __len__(self) -> int:
        return len(self._notifications)

    def add(self, notifications: Iterable[Notification]) -> "NotificationStore":
        """Insert new keys; replace an existing entry only when the incoming source ranks strictly higher."""
        for n in notifications:
            key = notification_key(n)
            existing = self._notifications.get(key)
            if existing is None or source_rank(n) > source_rank(existing):
                self._notifications[key] = n
        return self

    def merge(self, other: "NotificationStore") -> "NotificationStore":
        return self.add(other.get_all())

    def clear(self) -> "NotificationStore":
        self._notifications.clear()
        return self

    def get_all(self) -> list[Notification]:
        """Newest first; records without a timestamp follow in insertion order."""
        values = list(self._notifications.values())
        dated = sorted((n for n in values if n.created_at is not None), key=lambda n: n.created_at, reverse=True)
        return dated + [n for n in values if n.created_at is None]

    def get_by_category(self, category: Category | str) -> list[Notification]:
        category = Category(category)
        return [n for n in self.get_all() if n.category is category]

    def get_unread(self) -> list[Notification]:
        return [n for n in self.get_all() if n.viewed is False]

    def get_read(self) -> list[Notification]:
        return [n for n in self.get_all() if n.viewed is True]

    def get_counts(self) -> dict[str, int]:
        counts = _empty_counts()
        for n in self._notifications.values():
            counts[n.category.value] += 1
            counts["total"] += 1
        return counts

    def get_unread_counts(self) -> dict[str, int]:
        counts = _empty_counts()
        for n in self._notifications.values():
            if n.viewed is False:
                counts[n.category.value] += 1
                counts["total"] += 1
        return counts

    def get_observation_ids(self) -> list[str]:
        """Distinct numeric observation ids embedded in stored URLs, first-seen order."""
        ids: dict[str, None] = {}
        for n in self._notifications.values():
            oid = observation_id_from_url(n.observation_url)
            if oid:
                ids[oid] = None
        return list(ids)

    def get_pending_comment_ids(self) -> list[str]:
        return [
            n.observation_id[len(PENDING_COMMENT_PREFIX):]
            for n in self._notifications.values()
            if n.is_pending_comment
        ]

    def resolve_comment_ids(self, mapping: dict[str, str]) -> int:
        """
        Swap pending comment placeholders for resolved observation ids.
        The URL is rebuilt with a deep link to the comment. Unresolved entries are left as they are.
        Returns how many records were resolved.
        """
        resolved = 0
        for n in self._notifications.values():
            if not n.is_pending_comment:
                continue
            comment_id = n.observation_id[len(PENDING_COMMENT_PREFIX):]
            obs_id = mapping.get(comment_id)
            if obs_id:
                n.observation_id = str(obs_id)
                n.observation_url = observation_url(self._site_base_url, str(obs_id), comment_id)
                resolved += 1
        return resolved

    def enrich_with_observations(self, observations: dict[str, dict[str, Any]]) -> int:
        """Attach observation details by the id in each record's URL. Overwrites, so repeat calls are safe."""
        enriched = 0
        for n in self._notifications.values():
            oid = observation_id_from_url(n.observation_url)
            obs = observations.get(oid) if oid else None
            if not obs:
                continue
            try:
                n.observation = observation_details(obs)
                enriched += 1
            except ValueError as e:
                # pydantic ValidationError subclasses ValueError
                logger.debug("Skip malformed observation %s: %s", oid, e)
        return enriched
