"""Generation Orchestrator: script → audio with an optimistic placeholder."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog

from radio_player.errors import UpstreamError
from radio_player.models.generation import (
    AudioSynthesisRequest,
    AudioSynthesisResult,
    GenerateShowRequest,
    ScriptResult,
    VoiceQuality,
)
from radio_player.models.show import Show
from radio_player.services.repository import ShowRepository
from radio_player.tools.generation import GenerationClient
from radio_player.tools.show_api import parse_segments, preview_of
from radio_player.tools.supabase_store import SupabaseShowStore

logger = structlog.get_logger()

MSG_GENERATION_FAILED = "Backend wird gerade aktualisiert. Versuche es in ein paar Minuten nochmal!"


class GenerationPhase(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SYNTHESIZING = "synthesizing"
    SUCCESS = "success"
    FAILURE = "failure"


def merge_show(request: GenerateShowRequest, script: ScriptResult, audio: AudioSynthesisResult) -> Show:
    """Build the persisted show record from the two backend responses."""
    metadata = dict(script.metadata)
    metadata["audio_filename"] = audio.audio_filename
    if audio.segments_count is not None:
        metadata["audio_segments_count"] = audio.segments_count

    channel = script.channel or metadata.get("channel") or request.channel or "zurich"
    fields = {
        "id": script.session_id,
        "session_id": script.session_id,
        "title": script.title or f"{script.broadcast_style} - {channel}",
        "script_preview": preview_of(script.script_content),
        "script_content": script.script_content,
        "broadcast_style": script.broadcast_style,
        "channel": channel,
        "language": script.language or metadata.get("language") or request.language or "de",
        "preset_name": script.preset_name or request.preset,
        "audio_url": audio.audio_url,
        "audio_duration_seconds": audio.duration_seconds,
        "audio_file_size_bytes": audio.file_size_bytes,
        "estimated_duration_minutes": script.estimated_duration_minutes or request.duration_minutes,
        "news_count": script.news_count,
        "created_at": script.generated_at or datetime.now(timezone.utc),
        "segments": parse_segments(script.segments, script.session_id),
        "metadata": metadata,
    }
    return Show(**fields)


class GenerationOrchestrator:
    """Drives ``Idle → Requesting → Synthesizing → Settled`` for one request at a time.

    Overlapping triggers are rejected, not queued. :meth:`generate` never
    raises; a failure removes the placeholder and leaves a message in
    ``error``.
    """

    def __init__(
        self,
        client: GenerationClient,
        repository: ShowRepository,
        store: SupabaseShowStore,
        *,
        voice_quality: VoiceQuality = "ultra",
        include_music: bool = True,
    ):
        self.client = client
        self.repository = repository
        self.store = store
        self.voice_quality = voice_quality
        self.include_music = include_music

        self.phase = GenerationPhase.IDLE
        self.error: Optional[str] = None
        self.last_result: Optional[Show] = None
        self._sync_tasks: set[asyncio.Task] = set()

    @property
    def is_generating(self) -> bool:
        return self.phase in (GenerationPhase.REQUESTING, GenerationPhase.SYNTHESIZING)

    def clear_error(self) -> None:
        self.error = None

    async def generate(self, request: GenerateShowRequest) -> Optional[Show]:
        if self.is_generating or self.repository.has_placeholder:
            logger.info("generation.rejected", reason="generation already in flight")
            return None

        self.error = None
        self.repository.insert_placeholder(request)
        self.phase = GenerationPhase.REQUESTING
        logger.info("generation.start", preset=request.preset, duration_minutes=request.duration_minutes)

        try:
            script = await self.client.generate_script(request)
            if not script.script_content.strip():
                raise UpstreamError(200, "backend returned an empty script")

            self.phase = GenerationPhase.SYNTHESIZING
            audio = await self.client.synthesize_audio(
                AudioSynthesisRequest(
                    script_content=script.script_content,
                    session_id=script.session_id,
                    voice_quality=self.voice_quality,
                    include_music=self.include_music,
                )
            )
            show = merge_show(request, script, audio)
        except asyncio.CancelledError:
            self._settle_failure()
            raise
        except Exception:
            logger.exception("generation.failed", phase=self.phase.value)
            self._settle_failure()
            self.error = MSG_GENERATION_FAILED
            return None

        self.repository.replace_placeholder(show)
        self.phase = GenerationPhase.SUCCESS
        self.last_result = show
        logger.info("generation.completed", show_id=show.id, audio_url=show.audio_url)
        self._sync_in_background(show)
        return show

    def _settle_failure(self) -> None:
        self.repository.remove_placeholder()
        self.phase = GenerationPhase.FAILURE

    # -- write-through cache sync ----------------------------------------------

    def _sync_in_background(self, show: Show) -> None:
        if not self.store.is_configured:
            logger.info("generation.sync.skipped", reason="supabase not configured")
            return
        task = asyncio.create_task(self.store.upsert_show(show), name=f"sync-show-{show.id}")
        self._sync_tasks.add(task)
        task.add_done_callback(self._on_sync_done)

    def _on_sync_done(self, task: asyncio.Task) -> None:
        self._sync_tasks.discard(task)
        if task.cancelled():
            logger.info("generation.sync.cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("generation.sync.failed", task=task.get_name(), error=str(exc))

    async def aclose(self) -> None:
        """Wait for pending sync writes at shutdown."""
        if self._sync_tasks:
            await asyncio.gather(*self._sync_tasks, return_exceptions=True)
