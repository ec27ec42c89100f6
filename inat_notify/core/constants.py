"""
Centralized constants for sources, merging and enrichment.

Change ranks, markers or URL shapes here instead of scattering literals across
fetchers, store and enrichment.
"""
import re

# Merge trust: higher wins on a dedup-key collision. Unknown sources never win.
SOURCE_RANK: dict[str, int] = {"api_v1": 3, "json": 2, "html": 1}
UNKNOWN_SOURCE_RANK = 0

# observation_id placeholder for mentions whose link only points at a comment
PENDING_COMMENT_PREFIX = "comment_"

UNKNOWN_LOGIN = "unknown"
UNKNOWN_NAME = "Unknown"

OBSERVATION_ID_IN_URL = re.compile(r"observations/(\d+)")
COMMENT_ID_IN_URL = re.compile(r"comments/(\d+)")

# Both site endpoints take the same query: activity + mention, and do not mark as read
SITE_UPDATES_PARAMS = {"notification": "activity,mention", "skip_view": "1"}


def observation_url(site_base_url: str, observation_id: str, comment_id: str | None = None) -> str:
    """Observation page URL; with comment_id, deep-links to the comment anchor."""
    url = f"{site_base_url}/observations/{observation_id}"
    if comment_id:
        url += f"#activity_comment_{comment_id}"
    return url


def observation_id_from_url(url: str | None) -> str | None:
    """Numeric observation id embedded in a URL, or None."""
    if not url:
        return None
    m = OBSERVATION_ID_IN_URL.search(url)
    return m.group(1) if m else None
