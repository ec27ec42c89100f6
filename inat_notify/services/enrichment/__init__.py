"""Secondary lookups that upgrade notifications after the first render."""
from inat_notify.services.enrichment.comments import resolve_comment_ids
from inat_notify.services.enrichment.observations import fetch_observations
from inat_notify.services.enrichment.pipeline import enrich

__all__ = ["enrich", "fetch_observations", "resolve_comment_ids"]
