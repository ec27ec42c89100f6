"""
NotificationController: one load cycle across all sources, shared by every UI consumer.

load() fires every source concurrently, merges the settled results into the store by
rank (primary source: all categories it can report; supplements: mentions only),
tells consumers, then enriches in the background and tells them again.
"""
import asyncio
import inspect
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Sequence

from inat_notify.core.engine_config import DEFAULT_PER_PAGE
from inat_notify.core.errors import (
    ERROR_KIND_AUTH,
    NotificationEngineError,
    classify_fetch_error,
    error_message,
)
from inat_notify.models import Category, Notification
from inat_notify.services.enrichment import enrich
from inat_notify.services.inat import CredentialProvider, INatClient, default_credentials
from inat_notify.services.sources import FetcherCapabilities, FetchResult, NotificationFetcher, default_fetchers
from inat_notify.services.store import NotificationStore

logger = logging.getLogger(__name__)

# Supplement sources only ever contribute mentions
SUPPLEMENT_CATEGORIES = frozenset({Category.MENTION})


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    AUTH_REQUIRED = "auth_required"
    ERROR = "error"


@dataclass
class LoadResult:
    needs_auth: bool = False


def reported_categories(capabilities: FetcherCapabilities) -> set[Category]:
    """Categories a source claims to report."""
    flags = {
        Category.MENTION: capabilities.mentions,
        Category.COMMENT: capabilities.comments,
        Category.IDENTIFICATION: capabilities.identifications,
    }
    return {c for c, ok in flags.items() if ok}


class NotificationController:
    """Owns one store per UI session. At most one load is in flight at a time."""

    def __init__(
        self,
        *,
        fetchers: Sequence[NotificationFetcher] | None = None,
        client: INatClient | None = None,
        credentials: CredentialProvider | None = None,
        store: NotificationStore | None = None,
        on_update: Callable[[], Any] | None = None,
        on_error: Callable[[str], Any] | None = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or INatClient()
        self.credentials = credentials or default_credentials(self.client)
        # Primary first, then supplements in merge order
        self.fetchers: list[NotificationFetcher] = list(fetchers or default_fetchers(self.client, self.credentials))
        self.store = store if store is not None else NotificationStore(self.client.site_base_url)
        self.on_update = on_update or (lambda: None)
        self.on_error = on_error or (lambda kind: None)
        self.state = LoadState.IDLE
        self.error: str | None = None
        self.debug_data: dict[str, FetchResult | BaseException] | None = None
        self.total = 0
        self.total_pages = 1
        self.enrichment_task: asyncio.Task | None = None
        # Strong refs so a superseded enrichment is not collected mid-flight
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def is_loading(self) -> bool:
        return self.state is LoadState.LOADING

    @property
    def pending_enrichments(self) -> int:
        """Enrichment runs still in flight, superseded ones included."""
        return len(self._background_tasks)

    async def _emit(self, callback: Callable[..., Any], *args: Any) -> None:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    def _accept(
        self,
        fetcher: NotificationFetcher,
        result: FetchResult | BaseException,
        categories: set[Category] | frozenset[Category],
    ) -> list[Notification]:
        if isinstance(result, BaseException):
            logger.warning("Source %s failed: %s", fetcher.name, result)
            return []
        allowed = reported_categories(fetcher.capabilities) & set(categories)
        accepted = [n for n in result.notifications if n.category in allowed]
        if not fetcher.capabilities.viewed_state:
            # Read state from such a source is never trusted
            for n in accepted:
                n.viewed = None
        return accepted

    async def load(self, page: int = 1, per_page: int | None = None) -> LoadResult:
        """
        Run one load cycle. A call while another is in flight is a no-op.
        Returns needs_auth=True only when nothing loaded and the primary source
        failed for lack of authentication.
        """
        if self.is_loading:
            logger.debug("Load already in flight; ignoring")
            return LoadResult()
        self.state = LoadState.LOADING
        self.error = None
        self.store.clear()
        self.total = 0
        self.total_pages = 1
        per_page = per_page or DEFAULT_PER_PAGE
        try:
            results = await asyncio.gather(
                *(f.fetch(page=page, per_page=per_page) for f in self.fetchers),
                return_exceptions=True,
            )
            self.debug_data = {f.name: r for f, r in zip(self.fetchers, results)}
            primary, *supplements = list(zip(self.fetchers, results))

            fetcher, result = primary
            self.store.add(self._accept(fetcher, result, set(Category)))
            if isinstance(result, FetchResult):
                self.total = result.total or 0
                self.total_pages = math.ceil(self.total / per_page) or 1
            for fetcher, result in supplements:
                self.store.add(self._accept(fetcher, result, SUPPLEMENT_CATEGORIES))

            primary_error = primary[1] if isinstance(primary[1], BaseException) else None
            if len(self.store) == 0 and classify_fetch_error(primary_error) == ERROR_KIND_AUTH:
                logger.info("Not authenticated and no source produced notifications")
                self.state = LoadState.AUTH_REQUIRED
                await self._emit(self.on_error, ERROR_KIND_AUTH)
                return LoadResult(needs_auth=True)

            self.state = LoadState.SUCCESS
            logger.info("Loaded notifications: %s", self.store.get_counts())
            await self._emit(self.on_update)
            # Fire-and-forget relative to the caller
            self.enrichment_task = asyncio.create_task(self._enrich())
            self._background_tasks.add(self.enrichment_task)
            self.enrichment_task.add_done_callback(self._background_tasks.discard)
            return LoadResult()
        except Exception as e:
            logger.exception("Failed to load notifications")
            self.state = LoadState.ERROR
            self.error = error_message(e)
            await self._emit(self.on_update)
            return LoadResult()
        finally:
            if self.state is LoadState.LOADING:
                self.state = LoadState.IDLE

    async def _enrich(self) -> None:
        try:
            changed = await enrich(self.store, self.client, self.credentials)
        except Exception as e:
            logger.warning("Enrichment failed: %s", e, exc_info=True)
            return
        if changed:
            await self._emit(self.on_update)

    def _viewed_marker(self) -> Any:
        for f in self.fetchers:
            if f.capabilities.viewed_state and hasattr(f, "mark_viewed") and hasattr(f, "mark_all_viewed"):
                return f
        raise NotificationEngineError("No source supports marking notifications as viewed")

    async def mark_viewed(self, notification: Notification) -> None:
        """Mark the updates on this notification's observation as read, then reflect it in the store."""
        if notification.is_pending_comment or not notification.observation_id:
            raise NotificationEngineError("Notification has no resolved observation to mark as viewed")
        await self._viewed_marker().mark_viewed(notification.observation_id)
        for n in self.store.get_all():
            if n.observation_id == notification.observation_id and n.viewed is False:
                n.viewed = True
        await self._emit(self.on_update)

    async def mark_all_viewed(self) -> None:
        await self._viewed_marker().mark_all_viewed()
        for n in self.store.get_unread():
            n.viewed = True
        await self._emit(self.on_update)

    async def close(self) -> None:
        """End of the UI session: drop the store and release an owned HTTP client."""
        self.store.clear()
        self.state = LoadState.IDLE
        if self._owns_client:
            await self.client.aclose()
