"""Supabase datastore access (shows, presets, voices) and the real-time show feed."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import SupabaseException, acreate_client, create_client

from radio_player.errors import NetworkError, NotConfiguredError, NotFoundError, UpstreamError
from radio_player.models.preset import ShowPreset, VoiceConfiguration
from radio_player.models.search import ShowSearchParams
from radio_player.models.show import Show
from radio_player.tools.show_api import parse_segments, preview_of

logger = structlog.get_logger()

_NO_ROWS = "PGRST116"
_LATEST_SHOW_SELECT = (
    "*, show_presets!inner(display_name, description, city_focus, "
    "primary_speaker, secondary_speaker, gpt_selection_instructions)"
)

ChangeCallback = Callable[[str, Show], Any]

_ROW_ERRORS = (ValidationError, KeyError, TypeError, AttributeError)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def show_from_row(row: dict) -> Show:
    """Map a ``shows`` table row onto :class:`Show`."""
    metadata = dict(row.get("metadata") or {})
    show_id = str(row["id"])
    script = row.get("script_content") or ""
    fields: dict[str, Any] = {
        "id": show_id,
        "session_id": row.get("session_id") or show_id,
        "title": row.get("title") or "",
        "script_preview": row.get("script_preview") or preview_of(script),
        "script_content": script or None,
        "broadcast_style": row.get("broadcast_style") or "",
        "channel": row.get("channel") or "",
        "language": row.get("language") or "",
        "preset_name": row.get("preset_name"),
        "audio_url": row.get("audio_url") or None,
        "audio_duration_seconds": row.get("audio_duration_seconds", row.get("audio_duration")),
        "audio_file_size_bytes": row.get("audio_file_size"),
        "estimated_duration_minutes": row.get("estimated_duration_minutes") or 0,
        "news_count": row.get("news_count") or 0,
        "segments": parse_segments(row.get("segments") or metadata.get("segments"), show_id),
        "metadata": metadata,
    }
    if row.get("created_at"):
        fields["created_at"] = row["created_at"]
    return Show(**fields)


def _map_rows(operation: str, mapper: Callable[[dict], Any], rows: Optional[list]) -> list:
    try:
        return [mapper(row) for row in rows or []]
    except _ROW_ERRORS as exc:
        logger.warning("supabase.row_invalid", operation=operation, error=str(exc))
        raise UpstreamError(502, f"malformed row in {operation}: {exc}") from exc


def quote_filter_value(value: str) -> str:
    """Double-quote a value for a PostgREST logic filter so reserved characters stay literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def show_to_row(show: Show) -> dict[str, Any]:
    """Inverse of :func:`show_from_row` for write-through upserts."""
    return {
        "id": show.id,
        "session_id": show.session_id or show.id,
        "title": show.title,
        "script_preview": show.script_preview,
        "script_content": show.script_content or "",
        "broadcast_style": show.broadcast_style,
        "channel": show.channel,
        "language": show.language,
        "preset_name": show.preset_name,
        "audio_url": show.audio_url,
        "audio_duration_seconds": show.audio_duration_seconds,
        "audio_file_size": show.audio_file_size_bytes,
        "estimated_duration_minutes": show.estimated_duration_minutes,
        "news_count": show.news_count,
        "created_at": show.created_at.isoformat(),
        "metadata": show.metadata,
    }


# ---------------------------------------------------------------------------
# Table access
# ---------------------------------------------------------------------------


class SupabaseShowStore:
    """Read/write access to the managed datastore.

    The sync Supabase SDK is used and every call runs in a worker thread via
    ``asyncio.to_thread`` so the event loop never blocks. Without credentials
    every method raises :class:`NotConfiguredError`.
    """

    def __init__(self, url: str = "", key: str = "", *, client: Any = None):
        self._url = url
        self._key = key
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._url and self._key)

    def _get_client(self):
        if self._client is None:
            if not (self._url and self._key):
                raise NotConfiguredError("Supabase URL/key missing")
            try:
                self._client = create_client(self._url, self._key)
            except SupabaseException as exc:
                logger.warning("supabase.client_invalid", error=str(exc))
                raise NotConfiguredError(f"Supabase client rejected its settings: {exc}") from exc
        return self._client

    async def _run(self, operation: str, build: Callable[[Any], Any]) -> Any:
        """Build a query against the client and execute it off the event loop."""
        client = self._get_client()

        def _execute():
            return build(client).execute()

        try:
            response = await asyncio.to_thread(_execute)
        except APIError as exc:
            if exc.code == _NO_ROWS:
                raise NotFoundError(operation) from exc
            logger.warning("supabase.query_failed", operation=operation, code=exc.code, message=exc.message)
            raise UpstreamError(502, f"{exc.code}: {exc.message}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"supabase {operation}: {exc}") from exc
        return response.data if response is not None else None

    # -- shows ---------------------------------------------------------------

    async def list_shows(self, limit: int = 10, offset: int = 0) -> list[Show]:
        rows = await self._run(
            "list_shows",
            lambda c: c.table("shows")
            .select("*")
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1),
        )
        return _map_rows("list_shows", show_from_row, rows)

    async def search_shows(self, params: ShowSearchParams) -> list[Show]:
        def _build(c):
            query = c.table("shows").select("*")
            if params.channel:
                query = query.eq("channel", params.channel)
            if params.broadcast_style:
                query = query.eq("broadcast_style", params.broadcast_style)
            if params.language:
                query = query.eq("language", params.language)
            if params.preset_name:
                query = query.eq("preset_name", params.preset_name)
            if params.date_from:
                query = query.gte("created_at", params.date_from.isoformat())
            if params.date_to:
                query = query.lte("created_at", params.date_to.isoformat())
            if params.has_audio is True:
                query = query.not_.is_("audio_url", "null")
            elif params.has_audio is False:
                query = query.is_("audio_url", "null")
            if params.query:
                pattern = quote_filter_value(f"%{params.query}%")
                query = query.or_(f"title.ilike.{pattern},script_preview.ilike.{pattern}")

            query = query.order(params.sort_by, desc=params.sort_order == "desc")
            if params.offset:
                limit = params.limit or 20
                query = query.range(params.offset, params.offset + limit - 1)
            elif params.limit:
                query = query.limit(params.limit)
            return query

        rows = await self._run("search_shows", _build)
        return _map_rows("search_shows", show_from_row, rows)

    async def get_show(self, show_id: str) -> Optional[Show]:
        try:
            row = await self._run(
                "get_show",
                lambda c: c.table("shows").select("*").eq("id", show_id).single(),
            )
        except NotFoundError:
            return None
        if not row:
            return None
        return _map_rows("get_show", show_from_row, [row])[0]

    async def upsert_show(self, show: Show) -> None:
        await self._run("upsert_show", lambda c: c.table("shows").upsert(show_to_row(show)))
        logger.info("supabase.show.upserted", show_id=show.id)

    # -- presets / voices ----------------------------------------------------

    async def list_presets(self) -> list[ShowPreset]:
        rows = await self._run(
            "list_presets",
            lambda c: c.table("show_presets")
            .select("*")
            .eq("is_active", True)
            .order("created_at", desc=True),
        )
        return _map_rows("list_presets", lambda row: ShowPreset(**{**row, "id": str(row["id"])}), rows)

    async def list_voices(self) -> list[VoiceConfiguration]:
        rows = await self._run(
            "list_voices",
            lambda c: c.table("voice_configurations")
            .select("*")
            .eq("is_active", True)
            .order("speaker_name"),
        )
        return _map_rows("list_voices", lambda row: VoiceConfiguration(**row), rows)

    async def latest_broadcast(self) -> Optional[dict]:
        """Newest ``broadcast_logs`` row with a script, joined to its preset."""
        rows = await self._run(
            "latest_broadcast",
            lambda c: c.table("broadcast_logs")
            .select(_LATEST_SHOW_SELECT)
            .not_.is_("script_content", "null")
            .order("timestamp", desc=True)
            .limit(1),
        )
        return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Real-time change feed
# ---------------------------------------------------------------------------


def _record_of(payload: Any) -> Optional[dict]:
    """Pull the new row out of a postgres_changes payload."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data", payload)
    record = data.get("record") or data.get("new")
    return record if isinstance(record, dict) else None


class ShowChangeFeed:
    """INSERT/UPDATE notifications on the ``shows`` table.

    ``start`` and ``stop`` are idempotent; ``stop`` is safe whether or not a
    subscription was ever established.
    """

    CHANNEL_NAME = "shows-realtime"

    def __init__(
        self,
        url: str = "",
        key: str = "",
        *,
        client_factory: Callable[[str, str], Awaitable[Any]] = acreate_client,
    ):
        self._url = url
        self._key = key
        self._client_factory = client_factory
        self._client: Any = None
        self._channel: Any = None
        self._callback: Optional[ChangeCallback] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._url and self._key)

    @property
    def is_subscribed(self) -> bool:
        return self._channel is not None

    def _dispatch(self, event: str, payload: Any) -> None:
        record = _record_of(payload)
        if record is None or self._callback is None:
            logger.warning("show_feed.payload_ignored", change_event=event)
            return
        try:
            show = show_from_row(record)
        except Exception:
            logger.exception("show_feed.normalize_failed", change_event=event)
            return
        logger.info("show_feed.change", change_event=event, show_id=show.id)
        self._callback(event, show)

    async def start(self, callback: ChangeCallback) -> bool:
        """Subscribe; returns True when a subscription is active afterwards."""
        if self._channel is not None:
            return True
        if not self.is_configured:
            logger.info("show_feed.skipped", reason="supabase not configured")
            return False

        self._callback = callback
        try:
            if self._client is None:
                self._client = await self._client_factory(self._url, self._key)
            channel = self._client.channel(self.CHANNEL_NAME)
            channel.on_postgres_changes(
                "INSERT", schema="public", table="shows",
                callback=lambda payload: self._dispatch("INSERT", payload),
            )
            channel.on_postgres_changes(
                "UPDATE", schema="public", table="shows",
                callback=lambda payload: self._dispatch("UPDATE", payload),
            )
            await channel.subscribe()
        except Exception:
            logger.warning("show_feed.subscribe_failed", exc_info=True)
            return False

        self._channel = channel
        logger.info("show_feed.subscribed", channel=self.CHANNEL_NAME)
        return True

    async def stop(self) -> None:
        channel, self._channel = self._channel, None
        self._callback = None
        if channel is None or self._client is None:
            return
        try:
            await self._client.remove_channel(channel)
            logger.info("show_feed.unsubscribed", channel=self.CHANNEL_NAME)
        except Exception:
            logger.warning("show_feed.unsubscribe_failed", exc_info=True)
