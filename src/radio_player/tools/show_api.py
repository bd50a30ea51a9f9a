"""Public show API client: direct or through the same-origin proxy."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from radio_player.errors import NotFoundError, UpstreamError
from radio_player.models.generation import GenerateShowRequest
from radio_player.models.show import Segment, Show, TranscriptLine
from radio_player.tools.http import get_json, send_json

logger = structlog.get_logger()

_USER_AGENT = "RadioX-Frontend/5.1"
_PREVIEW_CHARS = 200


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _pick(raw: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def preview_of(script: str) -> str:
    if len(script) <= _PREVIEW_CHARS:
        return script
    return script[:_PREVIEW_CHARS] + "..."


def parse_segments(raw_segments: list[dict] | None, show_id: str) -> list[Segment]:
    """Accept both chaptered segments and the flat speaker/text script blocks."""
    segments: list[Segment] = []
    for idx, raw in enumerate(raw_segments or []):
        if "transcript" in raw or "title" in raw or "startTime" in raw or "start_time" in raw:
            transcript = [
                TranscriptLine(
                    speaker=line.get("speaker", ""),
                    text=line.get("text", ""),
                    timestamp=line.get("timestamp", 0.0),
                )
                for line in raw.get("transcript") or []
            ]
            segments.append(
                Segment(
                    id=str(_pick(raw, "id", default=f"{show_id}-{idx}")),
                    title=_pick(raw, "title", default=""),
                    category=_pick(raw, "category", "type", default=""),
                    duration=_pick(raw, "duration", "estimated_duration", default=0.0),
                    start_time=_pick(raw, "startTime", "start_time"),
                    source_url=_pick(raw, "sourceUrl", "source_url"),
                    source_name=_pick(raw, "sourceName", "source_name"),
                    article_title=_pick(raw, "articleTitle", "article_title"),
                    article_description=_pick(raw, "articleDescription", "article_description"),
                    article_image_url=_pick(raw, "articleImageUrl", "article_image_url"),
                    article_emoji=_pick(raw, "articleEmoji", "article_emoji"),
                    source_published_at=_pick(raw, "sourcePublishedAt", "source_published_at"),
                    audio_url=_pick(raw, "audioUrl", "audio_url"),
                    transcript=transcript,
                )
            )
        else:
            # Script block: {type, speaker, text, estimated_duration}
            text = raw.get("text", "")
            segments.append(
                Segment(
                    id=f"{show_id}-{idx}",
                    title=raw.get("type", ""),
                    category=raw.get("type", ""),
                    duration=raw.get("estimated_duration", 0.0) or 0.0,
                    transcript=[TranscriptLine(speaker=raw.get("speaker", ""), text=text, timestamp=0.0)]
                    if text
                    else [],
                )
            )
    return segments


def show_from_api(raw: dict) -> Show:
    """Map a show-list entry or a ShowDetails payload onto :class:`Show`."""
    metadata = dict(raw.get("metadata") or {})
    show_id = str(_pick(raw, "id", "session_id"))
    script = raw.get("script_content") or ""
    channel = _pick(raw, "channel", default=metadata.get("channel", ""))
    broadcast_style = raw.get("broadcast_style", "")
    stats = metadata.get("content_stats") or {}

    created_at = _pick(raw, "created_at", "createdAt", default=metadata.get("generated_at"))
    fields: dict[str, Any] = {
        "id": show_id,
        "session_id": str(_pick(raw, "session_id", default=show_id)),
        "title": _pick(raw, "title", default=f"{broadcast_style} - {channel}"),
        "script_preview": _pick(raw, "script_preview", "description", default=preview_of(script)),
        "script_content": script or None,
        "broadcast_style": broadcast_style,
        "channel": channel,
        "language": _pick(raw, "language", default=metadata.get("language", "")),
        "preset_name": raw.get("preset_name"),
        "audio_url": _pick(raw, "audio_url", "audioUrl", default=metadata.get("audio_url")) or None,
        "audio_duration_seconds": _pick(
            raw, "audio_duration_seconds", "audio_duration", "totalDuration",
            default=metadata.get("audio_duration"),
        ),
        "audio_file_size_bytes": raw.get("audio_file_size"),
        "estimated_duration_minutes": raw.get("estimated_duration_minutes", 0),
        "news_count": _pick(raw, "news_count", default=stats.get("news_selected", 0)),
        "segments": parse_segments(raw.get("segments"), show_id),
        "metadata": metadata,
    }
    if created_at:
        fields["created_at"] = created_at
    return Show(**fields)


def _normalize(raw: Any, operation: str) -> Show:
    if not isinstance(raw, dict):
        raise UpstreamError(200, f"unexpected {operation} payload")
    try:
        return show_from_api(raw)
    except (ValidationError, TypeError, AttributeError) as exc:
        logger.warning("show_api.normalize_failed", operation=operation, show_id=raw.get("id"), error=str(exc))
        raise UpstreamError(200, f"malformed show in {operation}: {exc}") from exc


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class ShowApiClient:
    """Thin client for ``/api/v1/shows``.

    With ``via_proxy=True`` the calls go to this app's ``/api/radiox-proxy``
    route instead of the upstream host (the browser-side path in the original
    front end); otherwise ``base_url`` is the public API host itself.
    """

    def __init__(
        self,
        base_url: str,
        *,
        via_proxy: bool = True,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.via_proxy = via_proxy
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _get_request(self, endpoint: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if self.via_proxy:
            return f"{self.base_url}/api/radiox-proxy", {"endpoint": endpoint, **params}
        return f"{self.base_url}/api/v1/{endpoint}", params

    async def list_shows_raw(self, limit: int = 10, offset: int = 0, endpoint: str = "shows") -> dict:
        """Return the upstream JSON payload untouched (used by the proxy route)."""
        url, params = self._get_request(endpoint, {"limit": limit, "offset": offset})
        return await send_json(self._client, "GET", url, params=params, headers={"User-Agent": _USER_AGENT})

    async def list_shows(self, limit: int = 10, offset: int = 0) -> list[Show]:
        data = await self.list_shows_raw(limit, offset)
        raw_shows = data.get("shows") if isinstance(data, dict) else None
        if not isinstance(raw_shows, list):
            raw_shows = []
        shows = [_normalize(item, "list_shows") for item in raw_shows]
        logger.info("show_api.list.done", count=len(shows), via_proxy=self.via_proxy)
        return shows

    async def get_show(self, show_id: str) -> Optional[Show]:
        url, params = self._get_request(f"shows/{show_id}", {})
        try:
            data = await get_json(self._client, url, params=params, headers={"User-Agent": _USER_AGENT})
        except NotFoundError:
            return None
        return _normalize(data, "get_show")

    async def generate_show_raw(self, payload: dict) -> dict:
        if self.via_proxy:
            url = f"{self.base_url}/api/radiox-proxy"
        else:
            url = f"{self.base_url}/api/v1/shows/generate"
        return await send_json(self._client, "POST", url, json=payload, headers={"User-Agent": _USER_AGENT})

    async def generate_show(self, request: GenerateShowRequest) -> Show:
        data = await self.generate_show_raw(request.model_dump(exclude_none=True))
        return _normalize(data, "generate_show")
