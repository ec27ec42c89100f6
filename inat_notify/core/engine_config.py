"""
Engine tunables. .env is the source of truth; these defaults apply only when
the env var is unset. All values read at import time.

Env vars: INAT_DEFAULT_PER_PAGE, INAT_OBSERVATION_BATCH_SIZE,
INAT_DEDUP_BUCKET_MINUTES, INAT_JWT_LIFETIME_HOURS.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load the project .env so tunables see env vars regardless of entry point
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path, override=False)  # no-op if file missing

_log = logging.getLogger(__name__)


def _int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = int(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


# -----------------------------------------------------------------------------
# Fetching and enrichment
# -----------------------------------------------------------------------------
DEFAULT_PER_PAGE = _int("INAT_DEFAULT_PER_PAGE", 20, min_val=1, max_val=200)
# /v1/observations accepts up to 200 ids per call; 30 keeps URLs short
OBSERVATION_BATCH_SIZE = _int("INAT_OBSERVATION_BATCH_SIZE", 30, min_val=1, max_val=200)

# -----------------------------------------------------------------------------
# Dedup and credentials
# -----------------------------------------------------------------------------
DEDUP_BUCKET_MINUTES = _int("INAT_DEDUP_BUCKET_MINUTES", 10, min_val=1, max_val=120)
# iNat JWTs last 24h; refresh after 23h when the token carries no exp claim
JWT_LIFETIME_HOURS = _int("INAT_JWT_LIFETIME_HOURS", 23, min_val=1, max_val=24)

_log.debug(
    "Engine config (from env): per_page=%s observation_batch_size=%s dedup_bucket_minutes=%s jwt_lifetime_hours=%s",
    DEFAULT_PER_PAGE,
    OBSERVATION_BATCH_SIZE,
    DEDUP_BUCKET_MINUTES,
    JWT_LIFETIME_HOURS,
)


@dataclass(frozen=True)
class EngineConfig:
    """Snapshot of engine config for passing around (e.g. tests)."""
    default_per_page: int
    observation_batch_size: int
    dedup_bucket_minutes: int
    jwt_lifetime_hours: int


def get_engine_config() -> EngineConfig:
    return EngineConfig(
        default_per_page=DEFAULT_PER_PAGE,
        observation_batch_size=OBSERVATION_BATCH_SIZE,
        dedup_bucket_minutes=DEDUP_BUCKET_MINUTES,
        jwt_lifetime_hours=JWT_LIFETIME_HOURS,
    )
