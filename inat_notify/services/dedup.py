"""
Dedup key: identity of "the same real-world event" across sources.

No source gives a cross-source id, so identity is (observation, category, actor,
rough time). The time bucket absorbs clock and formatting skew between sources.

Known limitation: when observation_id is an observation id rather than a comment id,
two distinct mentions by the same user on the same observation inside one bucket
collapse to one record. No source exposes a richer identifier.
"""
from inat_notify.core.constants import UNKNOWN_LOGIN
from inat_notify.core.engine_config import DEDUP_BUCKET_MINUTES
from inat_notify.models import Notification

BUCKET_MS = DEDUP_BUCKET_MINUTES * 60 * 1000


def time_bucket(n: Notification, bucket_ms: int = BUCKET_MS) -> str:
    if n.created_at is None:
        return "unknown"
    epoch_ms = int(n.created_at.timestamp() * 1000)
    return str(epoch_ms // bucket_ms)


def notification_key(n: Notification, bucket_ms: int = BUCKET_MS) -> str:
    """observationId-category-login-bucket, e.g. '12345-mention-alice-2843211'."""
    login = n.user.login if n.user and n.user.login else UNKNOWN_LOGIN
    return f"{n.observation_id}-{n.category.value}-{login}-{time_bucket(n, bucket_ms)}"
