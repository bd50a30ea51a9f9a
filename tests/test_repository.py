import asyncio

import httpx

from fakes import FakeApi, FakeStore, make_show
from radio_player.errors import NetworkError, NotFoundError, UpstreamError
from radio_player.models.generation import GenerateShowRequest
from radio_player.models.search import ShowFilters, ShowSearchParams
from radio_player.models.show import PLACEHOLDER_ID
from radio_player.services.repository import (
    MSG_DEMO_FALLBACK,
    MSG_DETAILS_UNAVAILABLE,
    MSG_EMPTY_CATALOG,
    MSG_SUPABASE_FALLBACK,
    SOURCE_API,
    SOURCE_DEMO,
    SOURCE_SUPABASE,
    ShowRepository,
    describe_error,
    format_duration_minutes,
    format_file_size,
)
from radio_player.tools.show_api import ShowApiClient
from radio_player.tools.supabase_store import SupabaseShowStore


def _ids(shows):
    return [s.id for s in shows]


# ---------------------------------------------------------------------------
# fetch_shows
# ---------------------------------------------------------------------------


async def test_fetch_from_healthy_api_is_newest_first_and_capped(repository, api):
    api.shows = [make_show(f"s{i}", minutes_ago=(i * 7) % 13) for i in range(12)]

    page = await repository.fetch_shows(10, 0)

    assert len(repository.shows) == 10
    created = [s.created_at for s in repository.shows]
    assert created == sorted(created, reverse=True)
    assert repository.is_online
    assert repository.source == SOURCE_API
    assert repository.error is None
    assert page.source == SOURCE_API
    assert api.list_calls == [(10, 0)]


async def test_total_outage_falls_back_to_demo():
    repository = ShowRepository(FakeApi(error=NetworkError("down")), FakeStore(error=UpstreamError(500)))

    page = await repository.fetch_shows()

    assert repository.shows
    assert not repository.is_online
    assert repository.source == SOURCE_DEMO
    assert repository.error == MSG_DEMO_FALLBACK
    assert page.source == SOURCE_DEMO
    assert not repository.is_loading


async def test_outage_without_supabase_credentials_falls_back_to_demo():
    repository = ShowRepository(FakeApi(error=UpstreamError(502)), FakeStore(configured=False))
    await repository.fetch_shows()
    assert _ids(repository.shows) == ["demo-1", "demo-2", "demo-3"]
    assert not repository.is_online


async def test_api_failure_uses_supabase():
    store = FakeStore(shows=[make_show("db-1", minutes_ago=5), make_show("db-2")])
    repository = ShowRepository(FakeApi(error=NetworkError("down")), store)

    await repository.fetch_shows()

    assert _ids(repository.shows) == ["db-2", "db-1"]
    assert repository.source == SOURCE_SUPABASE
    assert repository.is_online
    assert repository.status_message == MSG_SUPABASE_FALLBACK


async def test_empty_api_catalog_shows_demo_but_stays_online(repository, store):
    store.shows = [make_show("db-1")]

    await repository.fetch_shows()

    assert repository.source == SOURCE_DEMO
    assert repository.is_online
    assert repository.status_message == MSG_EMPTY_CATALOG
    assert repository.shows[0].id == "demo-1"


async def test_failed_refresh_keeps_last_known_good_list(repository, api):
    api.shows = [make_show("a"), make_show("b", minutes_ago=1)]
    await repository.fetch_shows()

    api.error = NetworkError("down")
    repository.store.error = NetworkError("down")
    page = await repository.fetch_shows()

    assert _ids(repository.shows) == ["a", "b"]
    assert not repository.is_online
    assert repository.error == MSG_DEMO_FALLBACK
    assert _ids(page.shows) == ["a", "b"]


async def test_stale_response_is_dropped(repository, api):
    slow, fast = asyncio.Event(), asyncio.Event()
    queue = [(slow, [make_show("old")]), (fast, [make_show("new")])]

    async def gated_list_shows(limit=10, offset=0):
        gate, shows = queue.pop(0)
        await gate.wait()
        return shows

    api.list_shows = gated_list_shows

    first = asyncio.create_task(repository.fetch_shows())
    await asyncio.sleep(0)
    second = asyncio.create_task(repository.fetch_shows())
    await asyncio.sleep(0)
    assert repository.is_loading

    fast.set()
    await second
    assert _ids(repository.shows) == ["new"]

    slow.set()
    await first
    assert _ids(repository.shows) == ["new"]
    assert not repository.is_loading


async def test_refresh_keeps_pending_placeholder_on_top(repository, api):
    repository.insert_placeholder(GenerateShowRequest())
    api.shows = [make_show("a")]

    await repository.fetch_shows()

    assert _ids(repository.shows) == [PLACEHOLDER_ID, "a"]


async def test_get_recent_shows_uses_larger_page(repository, api):
    api.shows = [make_show("a")]
    await repository.get_recent_shows()
    await repository.refetch()
    assert api.list_calls == [(20, 0), (20, 0)]


# ---------------------------------------------------------------------------
# search
# ---------------------------------------------------------------------------


async def test_search_filters_api_page_locally(repository, api):
    api.shows = [
        make_show("zh-1", title="Zürich am Morgen", channel="zurich"),
        make_show("bs-1", title="Basel am Abend", channel="basel"),
        make_show("zh-2", title="Wetter Zürich", channel="zurich", minutes_ago=10),
    ]

    await repository.search_shows(ShowSearchParams(channel="zurich", query="zürich", sort_by="title", sort_order="asc"))

    assert _ids(repository.shows) == ["zh-2", "zh-1"]
    assert repository.source == SOURCE_API


async def test_search_falls_back_to_supabase(store):
    store.shows = [make_show("db-1")]
    repository = ShowRepository(FakeApi(error=NetworkError("down")), store)

    await repository.search_shows(ShowSearchParams(channel="zurich"))

    assert store.search_calls == 1
    assert _ids(repository.shows) == ["db-1"]


async def test_search_demo_floor_applies_filters():
    repository = ShowRepository(FakeApi(error=NetworkError("down")), FakeStore(configured=False))

    await repository.search_shows(ShowSearchParams(query="midday"))

    assert _ids(repository.shows) == ["demo-2"]
    assert not repository.is_online


def test_filter_shows_by_audio(repository):
    repository.shows = [make_show("a"), make_show("b", audio_url=None)]
    assert _ids(repository.filter_shows(ShowFilters(has_audio=False))) == ["b"]
    assert _ids(repository.filter_shows(ShowFilters(has_audio=True))) == ["a"]


# ---------------------------------------------------------------------------
# single show
# ---------------------------------------------------------------------------


async def test_get_show_by_id_prefers_supabase(repository, store, api):
    store.shows = [make_show("x", title="from db")]
    api.details["x"] = make_show("x", title="from api")
    show = await repository.get_show_by_id("x")
    assert show.title == "from db"


async def test_get_show_by_id_falls_back_to_api():
    api = FakeApi()
    api.details["x"] = make_show("x", title="from api")
    repository = ShowRepository(api, FakeStore(configured=False))
    assert (await repository.get_show_by_id("x")).title == "from api"
    assert await repository.get_show_by_id("missing") is None


async def test_get_show_by_id_reports_unavailable_details():
    repository = ShowRepository(FakeApi(error=NetworkError("down")), FakeStore(error=UpstreamError(500)))
    assert await repository.get_show_by_id("x") is None
    assert repository.error == MSG_DETAILS_UNAVAILABLE


def test_selection_pointers_resolve_by_id(repository):
    show = make_show("a")
    repository.shows = [show]
    repository.select_show(show)
    repository.set_currently_playing(show)
    assert repository.selected_show is show
    assert repository.currently_playing is show

    repository.shows = []
    assert repository.selected_show is None


# ---------------------------------------------------------------------------
# formatting
# ---------------------------------------------------------------------------


def test_format_show(repository):
    show = make_show("a", estimated_duration_minutes=125, audio_file_size_bytes=1536)
    formatted = repository.format_show(show)
    # 12:00 UTC is 13:00 in Zurich before the March DST switch.
    assert formatted.formatted_date == "14.03.2025, 13:00"
    assert formatted.formatted_duration == "2h 5min"
    assert formatted.audio_file_size == "1.5 KB"
    assert formatted.has_audio
    assert formatted.show is show


def test_duration_and_size_formatting():
    assert format_duration_minutes(3) == "3 Min"
    assert format_duration_minutes(60) == "1h 0min"
    assert format_file_size(None) is None
    assert format_file_size(512) == "512.0 B"
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"
    assert format_file_size(3 * 1024**4) == "3072.0 GB"


def test_describe_error_is_user_facing():
    assert describe_error(NotFoundError("x"), "Laden") == "Keine Daten gefunden"
    assert describe_error(NetworkError("x"), "Laden") == "Netzwerkfehler - Bitte versuchen Sie es erneut"
    assert describe_error(UpstreamError(403), "Laden") == "Zugriff verweigert"
    assert describe_error(UpstreamError(500), "Laden") == "Fehler beim Laden"


# ---------------------------------------------------------------------------
# real-time upserts and the placeholder
# ---------------------------------------------------------------------------


def test_same_update_twice_is_idempotent(repository):
    repository.shows = [make_show("a"), make_show("b", minutes_ago=1)]
    updated = make_show("b", minutes_ago=1, title="Neu")

    repository.apply_change("UPDATE", updated)
    once = [s.model_dump() for s in repository.shows]
    repository.apply_change("UPDATE", updated)

    assert [s.model_dump() for s in repository.shows] == once
    assert _ids(repository.shows) == ["a", "b"]
    assert repository.shows[1].title == "Neu"


def test_insert_then_update_leaves_one_entry(repository):
    repository.shows = [make_show("a")]
    repository.apply_change("INSERT", make_show("c", title="v1"))
    repository.apply_change("UPDATE", make_show("c", title="v2"))

    assert _ids(repository.shows) == ["c", "a"]
    assert repository.shows[0].title == "v2"


def test_realtime_insert_lands_behind_placeholder(repository):
    repository.shows = [make_show("a")]
    repository.insert_placeholder(GenerateShowRequest())
    repository.apply_change("INSERT", make_show("c"))
    assert _ids(repository.shows) == [PLACEHOLDER_ID, "c", "a"]


def test_placeholder_is_unique(repository):
    request = GenerateShowRequest(channel="basel", language="en", duration_minutes=5)
    placeholder = repository.insert_placeholder(request)
    assert placeholder.channel == "basel"
    assert placeholder.language == "en"
    assert placeholder.estimated_duration_minutes == 5
    assert repository.insert_placeholder(request) is None
    assert _ids(repository.shows).count(PLACEHOLDER_ID) == 1


def test_replace_placeholder_dedups_realtime_copy(repository):
    repository.shows = [make_show("a")]
    repository.insert_placeholder(GenerateShowRequest())
    repository.apply_change("INSERT", make_show("new"))

    repository.replace_placeholder(make_show("new", title="final"))

    assert _ids(repository.shows) == ["new", "a"]
    assert repository.shows[0].title == "final"


# ---------------------------------------------------------------------------
# malformed upstream data and empty datastore answers
# ---------------------------------------------------------------------------


def _api_replying(payload, status=200):
    transport = httpx.MockTransport(lambda request: httpx.Response(status, json=payload))
    return ShowApiClient("http://radiox.test", via_proxy=False, client=httpx.AsyncClient(transport=transport))


async def test_malformed_api_row_falls_through_to_demo():
    api = _api_replying({"shows": [{"id": "x", "created_at": "not-a-date"}]})
    repository = ShowRepository(api, FakeStore(configured=False))

    page = await repository.fetch_shows()

    assert page.source == SOURCE_DEMO
    assert _ids(repository.shows) == ["demo-1", "demo-2", "demo-3"]
    assert not repository.is_online


async def test_invalid_supabase_url_falls_through_to_demo():
    api = _api_replying({"detail": "boom"}, status=500)
    repository = ShowRepository(api, SupabaseShowStore("not a url", "anon"))

    await repository.fetch_shows()
    assert repository.source == SOURCE_DEMO
    assert repository.shows

    await repository.search_shows(ShowSearchParams(query="midday"))
    assert _ids(repository.shows) == ["demo-2"]


async def test_empty_supabase_answer_is_not_an_outage():
    repository = ShowRepository(FakeApi(error=NetworkError("down")), FakeStore())

    page = await repository.fetch_shows()

    assert page.source == SOURCE_DEMO
    assert repository.is_online
    assert repository.error is None
    assert repository.status_message == MSG_EMPTY_CATALOG
    assert repository.shows


async def test_search_with_no_supabase_matches_returns_empty_result():
    store = FakeStore(shows=[make_show("s1")])
    repository = ShowRepository(FakeApi(error=NetworkError("down")), store)
    await repository.fetch_shows()
    assert repository.source == SOURCE_SUPABASE

    store.shows = []
    page = await repository.search_shows(ShowSearchParams(channel="basel"))

    assert page.source == SOURCE_SUPABASE
    assert page.shows == []
    assert repository.shows == []
    assert repository.is_online
    assert repository.error is None


async def test_malformed_show_details_report_unavailable():
    api = _api_replying({"session_id": "x", "created_at": "not-a-date"})
    repository = ShowRepository(api, FakeStore(configured=False))

    assert await repository.get_show_by_id("x") is None
    assert repository.error == MSG_DETAILS_UNAVAILABLE
