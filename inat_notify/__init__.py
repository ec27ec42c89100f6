"""
Multi-source iNaturalist notification aggregation.

Typical use: build a NotificationController, await load(), read its store, and
re-render on on_update (called after the merge and again after enrichment).
"""
from inat_notify.controller import LoadResult, LoadState, NotificationController
from inat_notify.models import Category, Notification, Source
from inat_notify.services.store import NotificationStore

__all__ = [
    "Category",
    "LoadResult",
    "LoadState",
    "Notification",
    "NotificationController",
    "NotificationStore",
    "Source",
]
