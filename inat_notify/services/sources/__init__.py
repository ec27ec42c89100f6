"""
Notification sources: API v1, session JSON, HTML page.
Each source fetches data in its own way but returns the same normalized shape
so the store and controller stay source-agnostic apart from rank and capabilities.
"""
from inat_notify.services.sources.base import NotificationFetcher
from inat_notify.services.sources.registry import default_fetchers
from inat_notify.services.sources.types import FetcherCapabilities, FetchResult

__all__ = [
    "FetchResult",
    "FetcherCapabilities",
    "NotificationFetcher",
    "default_fetchers",
]
