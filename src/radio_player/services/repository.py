"""Show Repository: one ordered show collection reconciled from every data source."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

import structlog

from radio_player.errors import (
    NetworkError,
    NotConfiguredError,
    NotFoundError,
    RadioPlayerError,
    UpstreamError,
)
from radio_player.models.generation import GenerateShowRequest
from radio_player.models.search import ShowFilters, ShowSearchParams
from radio_player.models.show import PLACEHOLDER_ID, FormattedShow, Show, ShowsPage
from radio_player.services.demo import demo_shows
from radio_player.tools.show_api import ShowApiClient
from radio_player.tools.supabase_store import SupabaseShowStore

logger = structlog.get_logger()

SOURCE_API = "api"
SOURCE_SUPABASE = "supabase"
SOURCE_DEMO = "demo"

MSG_SUPABASE_FALLBACK = "RadioX API offline - Supabase Daten werden verwendet"
MSG_DEMO_FALLBACK = (
    "Backend wird gerade aktualisiert - Demo-Shows werden angezeigt. "
    "Das System bleibt voll funktional!"
)
MSG_EMPTY_CATALOG = "Noch keine Shows verfügbar - Demo-Shows werden angezeigt"
MSG_DETAILS_UNAVAILABLE = "Show details temporarily unavailable"


def describe_error(exc: BaseException, operation: str) -> str:
    """Non-technical, user-facing message for an adapter failure."""
    if isinstance(exc, NotFoundError):
        return "Keine Daten gefunden"
    if isinstance(exc, NetworkError):
        return "Netzwerkfehler - Bitte versuchen Sie es erneut"
    if isinstance(exc, UpstreamError) and exc.status_code in (401, 403):
        return "Zugriff verweigert"
    return f"Fehler beim {operation}"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def matches_filters(show: Show, filters: ShowFilters) -> bool:
    if filters.channel and show.channel != filters.channel:
        return False
    if filters.broadcast_style and show.broadcast_style != filters.broadcast_style:
        return False
    if filters.language and show.language != filters.language:
        return False
    if filters.preset_name and show.preset_name != filters.preset_name:
        return False
    if filters.has_audio is not None and show.has_audio != filters.has_audio:
        return False
    if filters.date_from and show.created_at < _as_utc(filters.date_from):
        return False
    if filters.date_to and show.created_at > _as_utc(filters.date_to):
        return False
    return True


def matches_query(show: Show, query: Optional[str]) -> bool:
    if not query:
        return True
    needle = query.casefold()
    return needle in show.title.casefold() or needle in show.script_preview.casefold()


def sort_shows(shows: list[Show], sort_by: str = "created_at", sort_order: str = "desc") -> list[Show]:
    def _key(show: Show):
        value = getattr(show, sort_by)
        return value.casefold() if isinstance(value, str) else value

    return sorted(shows, key=_key, reverse=sort_order == "desc")


def search_locally(shows: list[Show], params: ShowSearchParams) -> list[Show]:
    filters = params.filters()
    hits = [s for s in shows if matches_filters(s, filters) and matches_query(s, params.query)]
    hits = sort_shows(hits, params.sort_by, params.sort_order)
    start = params.offset or 0
    if params.limit:
        return hits[start:start + params.limit]
    return hits[start:]


def format_duration_minutes(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} Min"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h {remaining}min"


def format_file_size(size_bytes: Optional[int]) -> Optional[str]:
    if not size_bytes:
        return None
    units = ["B", "KB", "MB", "GB"]
    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.1f} {units[unit_index]}"


def placeholder_for(request: GenerateShowRequest) -> Show:
    return Show(
        id=PLACEHOLDER_ID,
        session_id=PLACEHOLDER_ID,
        title="KI generiert Show...",
        script_preview="KI arbeitet an deiner personalisierten Radio Show...",
        broadcast_style="Generating",
        channel=request.channel or "zurich",
        language=request.language or "de",
        news_count=request.news_count or 2,
        preset_name=request.preset,
        estimated_duration_minutes=request.duration_minutes,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ShowRepository:
    """Owns the in-memory show list and the selected / currently-playing pointers.

    Sources are tried in a fixed order (proxy API, Supabase, demo fixtures)
    and every public coroutine resolves: failures become ``error`` /
    ``status_message`` instead of exceptions. List operations are sequenced;
    a response older than the last applied one is dropped.
    """

    def __init__(
        self,
        api: ShowApiClient,
        store: SupabaseShowStore,
        *,
        demo_factory: Callable[[], list[Show]] = demo_shows,
        slow_query_ms: float = 1000.0,
        display_timezone: str = "Europe/Zurich",
    ):
        self.api = api
        self.store = store
        self._demo_factory = demo_factory
        self._slow_query_ms = slow_query_ms
        self._tz = ZoneInfo(display_timezone)

        self.shows: list[Show] = []
        self.selected_show_id: Optional[str] = None
        self.currently_playing_id: Optional[str] = None
        self.error: Optional[str] = None
        self.status_message: Optional[str] = None
        self.is_online = True
        self.source: Optional[str] = None
        self.last_query_ms: Optional[float] = None

        self._pending = 0
        self._issued_ticket = 0
        self._applied_ticket = 0

    # -- state ---------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    @property
    def selected_show(self) -> Optional[Show]:
        return self._find(self.selected_show_id)

    @property
    def currently_playing(self) -> Optional[Show]:
        return self._find(self.currently_playing_id)

    def _find(self, show_id: Optional[str]) -> Optional[Show]:
        if show_id is None:
            return None
        return next((s for s in self.shows if s.id == show_id), None)

    def index_of(self, show_id: str) -> int:
        return next((i for i, s in enumerate(self.shows) if s.id == show_id), -1)

    def select_show(self, show: Optional[Show]) -> None:
        self.selected_show_id = show.id if show else None

    def set_currently_playing(self, show: Optional[Show]) -> None:
        self.currently_playing_id = show.id if show else None

    def clear_error(self) -> None:
        self.error = None

    # -- instrumentation -----------------------------------------------------

    async def _timed(self, operation: str, awaitable: Awaitable[Any]) -> Any:
        start = time.perf_counter()
        try:
            return await awaitable
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.last_query_ms = elapsed_ms
            if elapsed_ms > self._slow_query_ms:
                logger.warning("show_repository.slow_query", operation=operation, elapsed_ms=round(elapsed_ms, 2))

    def _next_ticket(self) -> int:
        self._issued_ticket += 1
        return self._issued_ticket

    # -- list operations -----------------------------------------------------

    async def fetch_shows(self, limit: int = 10, offset: int = 0) -> ShowsPage:
        """Load a page of shows through the fallback chain; never raises, never empty."""
        ticket = self._next_ticket()
        self._pending += 1
        try:
            page = await self._fetch_chain(limit, offset)
        finally:
            self._pending -= 1
        return self._apply(ticket, page)

    async def _fetch_chain(self, limit: int, offset: int) -> ShowsPage:
        try:
            shows = await self._timed("api.list_shows", self.api.list_shows(limit, offset))
        except RadioPlayerError as exc:
            logger.warning("show_repository.fetch.api_failed", error=str(exc))
        else:
            shows = sort_shows(shows)[:limit]
            if shows:
                return self._page(shows, limit, offset, SOURCE_API, True, None)
            # Empty success is authoritative; only the display falls back to demo.
            logger.info("show_repository.fetch.api_empty")
            return self._page(self._demo_factory()[:limit], limit, offset, SOURCE_DEMO, True, MSG_EMPTY_CATALOG)

        try:
            shows = await self._timed("supabase.list_shows", self.store.list_shows(limit, offset))
        except NotConfiguredError:
            logger.info("show_repository.fetch.supabase_skipped", reason="not configured")
        except RadioPlayerError as exc:
            logger.warning("show_repository.fetch.supabase_failed", error=str(exc))
        else:
            if shows:
                return self._page(sort_shows(shows)[:limit], limit, offset, SOURCE_SUPABASE, True, MSG_SUPABASE_FALLBACK)
            # Supabase answered with nothing: show demo data without going offline.
            logger.info("show_repository.fetch.supabase_empty")
            return self._page(self._demo_factory()[:limit], limit, offset, SOURCE_DEMO, True, MSG_EMPTY_CATALOG)

        logger.warning("show_repository.fetch.demo_fallback")
        return self._page(self._demo_factory()[:limit], limit, offset, SOURCE_DEMO, False, MSG_DEMO_FALLBACK)

    async def search_shows(self, params: ShowSearchParams) -> ShowsPage:
        """Re-query with filters; same fallback order as :meth:`fetch_shows`."""
        ticket = self._next_ticket()
        limit = params.limit or 20
        offset = params.offset or 0
        self._pending += 1
        try:
            page = await self._search_chain(params, limit, offset)
        finally:
            self._pending -= 1
        return self._apply(ticket, page)

    async def _search_chain(self, params: ShowSearchParams, limit: int, offset: int) -> ShowsPage:
        try:
            # The public API has no filters: fetch the page, filter it here.
            raw = await self._timed("api.list_shows", self.api.list_shows(limit, offset))
        except RadioPlayerError as exc:
            logger.warning("show_repository.search.api_failed", error=str(exc))
        else:
            local = params.model_copy(update={"offset": None, "limit": None})
            return self._page(search_locally(raw, local), limit, offset, SOURCE_API, True, None)

        try:
            shows = await self._timed("supabase.search_shows", self.store.search_shows(params))
        except NotConfiguredError:
            logger.info("show_repository.search.supabase_skipped", reason="not configured")
        except RadioPlayerError as exc:
            logger.warning("show_repository.search.supabase_failed", error=str(exc))
        else:
            # Zero matches is a valid answer.
            return self._page(shows, limit, offset, SOURCE_SUPABASE, True, MSG_SUPABASE_FALLBACK)

        return self._page(
            search_locally(self._demo_factory(), params), limit, offset, SOURCE_DEMO, False, MSG_DEMO_FALLBACK
        )

    async def get_recent_shows(self, limit: int = 20) -> ShowsPage:
        return await self.fetch_shows(limit=limit, offset=0)

    async def refetch(self) -> ShowsPage:
        return await self.get_recent_shows()

    def _page(
        self,
        shows: list[Show],
        limit: int,
        offset: int,
        source: str,
        is_online: bool,
        message: Optional[str],
    ) -> ShowsPage:
        return ShowsPage(
            shows=shows,
            total=len(shows),
            limit=limit,
            offset=offset,
            has_more=len(shows) >= limit,
            source=source,
            is_online=is_online,
            message=message,
        )

    def _apply(self, ticket: int, page: ShowsPage) -> ShowsPage:
        if ticket < self._applied_ticket:
            logger.info("show_repository.stale_response_dropped", ticket=ticket, applied=self._applied_ticket)
            return page
        self._applied_ticket = ticket

        shows = list(page.shows)
        if not page.is_online and self.source in (SOURCE_API, SOURCE_SUPABASE):
            # Total outage: keep the last-known-good list instead of demo data.
            known = [s for s in self.shows if not s.is_placeholder]
            if known:
                shows = known
                page = page.model_copy(update={"shows": known, "total": len(known)})
        else:
            self.source = page.source

        self.is_online = page.is_online
        self.status_message = page.message
        self.error = page.message if not page.is_online else None

        placeholder = self._find(PLACEHOLDER_ID)
        if placeholder is not None:
            shows = [placeholder] + [s for s in shows if s.id != PLACEHOLDER_ID]
        self.shows = shows
        logger.info(
            "show_repository.applied",
            source=page.source,
            count=len(self.shows),
            is_online=self.is_online,
        )
        return page

    # -- single show ---------------------------------------------------------

    async def get_show_by_id(self, show_id: str) -> Optional[Show]:
        """Full-detail lookup: Supabase first, then the API. None if neither has it."""
        try:
            show = await self._timed("supabase.get_show", self.store.get_show(show_id))
            if show is not None:
                return show
        except NotConfiguredError:
            pass
        except RadioPlayerError as exc:
            logger.warning("show_repository.get.supabase_failed", show_id=show_id, error=str(exc))

        try:
            show = await self._timed("api.get_show", self.api.get_show(show_id))
        except RadioPlayerError as exc:
            logger.warning("show_repository.get.api_failed", show_id=show_id, error=str(exc))
            self.error = MSG_DETAILS_UNAVAILABLE
            return None
        if show is None:
            logger.info("show_repository.get.not_found", show_id=show_id)
        return show

    # -- pure views ----------------------------------------------------------

    def format_show(self, show: Show) -> FormattedShow:
        try:
            formatted_date = show.created_at.astimezone(self._tz).strftime("%d.%m.%Y, %H:%M")
        except (ValueError, OverflowError):
            formatted_date = "Unbekannt"
        return FormattedShow(
            show=show,
            formatted_date=formatted_date,
            formatted_duration=format_duration_minutes(show.estimated_duration_minutes),
            has_audio=show.has_audio,
            audio_file_size=format_file_size(show.audio_file_size_bytes),
        )

    def filter_shows(self, filters: ShowFilters) -> list[Show]:
        return [s for s in self.shows if matches_filters(s, filters)]

    # -- real-time reconciliation ---------------------------------------------

    def apply_change(self, event: str, show: Show) -> None:
        """Upsert by id: known ids are replaced in place, unknown ids go to the head.

        The head slot belongs to a pending generation placeholder, so new rows
        land right behind it while one exists.
        """
        idx = self.index_of(show.id)
        if idx >= 0:
            self.shows[idx] = show
            logger.info("show_repository.change.replaced", change_event=event, show_id=show.id, index=idx)
            return
        head = 1 if self.has_placeholder else 0
        self.shows.insert(head, show)
        logger.info("show_repository.change.inserted", change_event=event, show_id=show.id, index=head)

    # -- generation placeholder ----------------------------------------------

    @property
    def has_placeholder(self) -> bool:
        return self.index_of(PLACEHOLDER_ID) >= 0

    def insert_placeholder(self, request: GenerateShowRequest) -> Optional[Show]:
        if self.has_placeholder:
            return None
        placeholder = placeholder_for(request)
        self.shows.insert(0, placeholder)
        return placeholder

    def replace_placeholder(self, show: Show) -> None:
        idx = self.index_of(PLACEHOLDER_ID)
        if idx < 0:
            self.apply_change("GENERATED", show)
            return
        # A real-time INSERT may have delivered the same row already.
        others = [s for s in self.shows if s.id != show.id]
        idx = next(i for i, s in enumerate(others) if s.id == PLACEHOLDER_ID)
        others[idx] = show
        self.shows = others

    def remove_placeholder(self) -> None:
        self.shows = [s for s in self.shows if s.id != PLACEHOLDER_ID]
