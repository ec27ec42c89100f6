"""Load cycle: merge policy, auth escalation, single-flight, enrichment callbacks."""
import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import (
    API_CAPS,
    HTML_CAPS,
    JSON_CAPS,
    FakeFetcher,
    at,
    empty_api_handler,
    make_client,
    make_notification,
)

from inat_notify.controller import LoadState, NotificationController
from inat_notify.core.errors import NotAuthenticatedError, SourceFetchError
from inat_notify.models import Category, Source


def _controller(api, site_json, html, *, handler=empty_api_handler, credentials=None, **kwargs):
    return NotificationController(
        fetchers=[api, site_json, html],
        client=make_client(handler),
        credentials=credentials,
        **kwargs,
    )


def _api(notifications=None, **kw):
    return FakeFetcher("api_v1", API_CAPS, notifications, **kw)


def _json(notifications=None, **kw):
    return FakeFetcher("json", JSON_CAPS, notifications, **kw)


def _html(notifications=None, **kw):
    return FakeFetcher("html", HTML_CAPS, notifications, **kw)


@pytest.mark.asyncio
async def test_three_source_scenario(credentials):
    comment = make_notification("api_v1_c1", category=Category.COMMENT, created_at=at(12, 0))
    json_mention = make_notification("json_m1", source=Source.JSON, category=Category.MENTION,
                                     login="bob", created_at=at(12, 3))
    html_mention = make_notification("html_0_100", source=Source.HTML, category=Category.MENTION,
                                     login="bob", created_at=at(12, 4), viewed=None)
    updates = []
    controller = _controller(_api([comment], total=45), _json([json_mention]), _html([html_mention]),
                             credentials=credentials, on_update=lambda: updates.append(len(controller.store)))

    result = await controller.load(page=1, per_page=20)

    assert result.needs_auth is False
    assert controller.state is LoadState.SUCCESS
    assert len(controller.store) == 2
    assert {n.id for n in controller.store.get_all()} == {"api_v1_c1", "json_m1"}
    assert controller.total == 45
    assert controller.total_pages == 3
    assert updates == [2]
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_supplements_only_contribute_mentions(credentials):
    html_comment = make_notification("html_1_300", source=Source.HTML, category=Category.COMMENT,
                                     observation_id="300", viewed=None)
    json_ident = make_notification("json_5", source=Source.JSON, category=Category.IDENTIFICATION,
                                   observation_id="301")
    html_mention = make_notification("html_2_302", source=Source.HTML, category=Category.MENTION,
                                     observation_id="302", viewed=True)
    controller = _controller(_api([]), _json([json_ident]), _html([html_comment, html_mention]),
                             credentials=credentials)

    await controller.load()

    stored = controller.store.get_all()
    assert [n.id for n in stored] == ["html_2_302"]
    # HTML cannot report read state, so whatever it claimed is dropped
    assert stored[0].viewed is None
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_primary_never_contributes_mentions(credentials):
    stray = make_notification("api_v1_9", category=Category.MENTION, observation_id="400")
    controller = _controller(_api([stray]), _json([]), _html([]), credentials=credentials)
    await controller.load()
    assert len(controller.store) == 0
    assert controller.state is LoadState.SUCCESS
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_auth_required_when_nothing_loaded(credentials):
    errors, updates = [], []
    controller = _controller(
        _api(error=NotAuthenticatedError("api_v1", "Not authenticated")),
        _json([]),
        _html(error=SourceFetchError("html", "down")),
        credentials=credentials,
        on_update=lambda: updates.append(1),
        on_error=errors.append,
    )

    result = await controller.load()

    assert result.needs_auth is True
    assert controller.state is LoadState.AUTH_REQUIRED
    assert errors == ["auth"]
    assert updates == []
    assert controller.enrichment_task is None


@pytest.mark.asyncio
async def test_auth_failure_with_partial_data_is_success(credentials):
    mention = make_notification("json_1", source=Source.JSON, category=Category.MENTION, created_at=at(10))
    errors = []
    controller = _controller(
        _api(error=NotAuthenticatedError("api_v1", "Not authenticated")),
        _json([mention]),
        _html([]),
        credentials=credentials,
        on_error=errors.append,
    )

    result = await controller.load()

    assert result.needs_auth is False
    assert controller.state is LoadState.SUCCESS
    assert [n.id for n in controller.store.get_all()] == ["json_1"]
    assert errors == []
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_generic_primary_failure_with_empty_store_is_not_auth(credentials):
    controller = _controller(_api(error=SourceFetchError("api_v1", "503")), _json([]), _html([]),
                             credentials=credentials)
    result = await controller.load()
    assert result.needs_auth is False
    assert controller.state is LoadState.SUCCESS
    assert isinstance(controller.debug_data["api_v1"], SourceFetchError)
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_single_flight(credentials):
    gate = asyncio.Event()
    api = _api([make_notification("api_v1_1", created_at=at(12))], gate=gate)
    controller = _controller(api, _json([]), _html([]), credentials=credentials)

    first = asyncio.create_task(controller.load())
    for _ in range(3):
        await asyncio.sleep(0)
    assert controller.is_loading
    assert api.calls == 1

    second = await controller.load()
    assert second.needs_auth is False
    assert api.calls == 1

    gate.set()
    await first
    assert len(controller.store) == 1
    assert controller.state is LoadState.SUCCESS
    await controller.enrichment_task


@pytest.mark.asyncio
async def test_reload_clears_previous_results(credentials):
    controller = _controller(_api([make_notification("api_v1_1", created_at=at(12))]), _json([]), _html([]),
                             credentials=credentials)
    await controller.load()
    await controller.enrichment_task
    await controller.load()
    await controller.enrichment_task
    assert len(controller.store) == 1


@pytest.mark.asyncio
async def test_unexpected_error_is_surfaced_and_releases_loading(credentials):
    class Broken(FakeFetcher):
        async def fetch(self, page=1, per_page=None):
            return None  # not a FetchResult

    updates = []
    controller = _controller(Broken("api_v1", API_CAPS), _json([]), _html([]), credentials=credentials,
                             on_update=lambda: updates.append(controller.state))

    result = await controller.load()

    assert result.needs_auth is False
    assert controller.state is LoadState.ERROR
    assert controller.error
    assert not controller.is_loading
    assert updates == [LoadState.ERROR]


@pytest.mark.asyncio
async def test_enrichment_triggers_second_update(credentials):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/observations":
            return httpx.Response(200, json={"results": [{"id": 100, "quality_grade": "research"}]})
        return httpx.Response(404)

    updates = []
    controller = _controller(_api([make_notification("api_v1_1", observation_id="100", created_at=at(12))]),
                             _json([]), _html([]), handler=handler, credentials=credentials,
                             on_update=lambda: updates.append(1))

    await controller.load()
    await controller.enrichment_task

    assert updates == [1, 1]
    assert controller.store.get_all()[0].observation.quality_grade == "research"


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited(credentials):
    on_update, on_error = AsyncMock(), AsyncMock()
    controller = _controller(_api([]), _json([]), _html([]), credentials=credentials,
                             on_update=on_update, on_error=on_error)
    await controller.load()
    await controller.enrichment_task
    on_update.assert_awaited_once()
    on_error.assert_not_called()


@pytest.mark.asyncio
async def test_mark_viewed_updates_store(credentials):
    api = _api([
        make_notification("api_v1_1", observation_id="100", created_at=at(12), viewed=False),
        make_notification("api_v1_2", observation_id="200", created_at=at(11), viewed=False),
    ])
    controller = _controller(api, _json([]), _html([]), credentials=credentials)
    await controller.load()
    await controller.enrichment_task

    target = controller.store.get_all()[0]
    await controller.mark_viewed(target)
    assert api.viewed_calls == ["100"]
    assert [n.id for n in controller.store.get_unread()] == ["api_v1_2"]

    await controller.mark_all_viewed()
    assert api.viewed_calls == ["100", "*"]
    assert controller.store.get_unread() == []


@pytest.mark.asyncio
async def test_close_clears_store(credentials):
    controller = _controller(_api([make_notification("api_v1_1", created_at=at(12))]), _json([]), _html([]),
                             credentials=credentials)
    await controller.load()
    await controller.enrichment_task
    await controller.close()
    assert len(controller.store) == 0
    assert controller.state is LoadState.IDLE


@pytest.mark.asyncio
async def test_reload_resets_paging_when_primary_fails(credentials):
    api = _api([make_notification("api_v1_1", created_at=at(12))], total=45)
    controller = _controller(api, _json([]), _html([]), credentials=credentials)
    await controller.load(per_page=20)
    await controller.enrichment_task
    assert controller.total_pages == 3

    api._error = SourceFetchError("api_v1", "503", status_code=503)
    await controller.load(per_page=20)
    await controller.enrichment_task

    assert len(controller.store) == 0
    assert controller.total == 0
    assert controller.total_pages == 1


@pytest.mark.asyncio
async def test_superseded_enrichment_is_tracked_until_done(credentials):
    controller = _controller(_api([make_notification("api_v1_1", created_at=at(12))]), _json([]), _html([]),
                             credentials=credentials)
    await controller.load()
    first = controller.enrichment_task
    await controller.load()
    second = controller.enrichment_task
    assert first is not second
    assert controller.pending_enrichments >= 1

    await asyncio.gather(first, second)
    await asyncio.sleep(0)
    assert controller.pending_enrichments == 0
