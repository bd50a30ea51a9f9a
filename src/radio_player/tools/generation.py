"""Show-generation and audio-synthesis backends: async httpx helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import quote

import httpx
import structlog

from radio_player.errors import NotFoundError, UpstreamError
from radio_player.models.generation import (
    AudioSynthesisRequest,
    AudioSynthesisResult,
    GenerateShowRequest,
    ScriptResult,
)
from radio_player.tools.http import send, send_json

logger = structlog.get_logger()

_AUDIO_ROUTE = "/api/audio"


def audio_url_for(filename: str) -> str:
    """Same-origin URL under which the audio proxy route serves a file."""
    return f"{_AUDIO_ROUTE}/{quote(filename)}"


class GenerationClient:
    """Client for the show backend (``POST /generate``) and the audio backend (``POST /script``)."""

    def __init__(
        self,
        backend_url: str,
        audio_service_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 300.0,
    ):
        self.backend_url = backend_url.rstrip("/")
        self.audio_service_url = audio_service_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def generate_script(self, request: GenerateShowRequest) -> ScriptResult:
        """Ask the show backend for a new script.

        Args:
            request: Preset and target duration for the show.

        Returns:
            The parsed backend payload; ``script_content`` may be empty.

        Raises:
            NetworkError: Backend unreachable.
            UpstreamError: Backend answered with a non-2xx status or bad payload.
        """
        payload = {
            "preset": request.preset,
            "duration_minutes": request.duration_minutes,
            "target_hour": datetime.now().strftime("%H:%M"),
        }
        logger.info("generation.script.start", preset=request.preset, duration_minutes=request.duration_minutes)

        data = await send_json(self._client, "POST", f"{self.backend_url}/generate", json=payload)
        # Some backend versions wrap the script in {"success": ..., "data": {...}}
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        if not isinstance(data, dict) or not data.get("session_id"):
            raise UpstreamError(200, "script response without session_id")

        result = ScriptResult(**data)
        logger.info(
            "generation.script.done",
            session_id=result.session_id,
            script_len=len(result.script_content),
        )
        return result

    async def synthesize_audio(self, request: AudioSynthesisRequest) -> AudioSynthesisResult:
        """Turn a script into an audio file on the audio backend.

        Raises:
            NetworkError: Audio service unreachable.
            UpstreamError: Non-2xx status, or the service reports no audio file.
        """
        logger.info(
            "generation.audio.start",
            session_id=request.session_id,
            voice_quality=request.voice_quality,
            include_music=request.include_music,
            text_len=len(request.script_content),
        )
        data = await send_json(
            self._client,
            "POST",
            f"{self.audio_service_url}/script",
            json=request.model_dump(),
        )
        if not isinstance(data, dict) or not data.get("success", True) or not data.get("audio_file"):
            raise UpstreamError(200, "audio generation failed")

        filename = str(data["audio_file"]).split("/")[-1]
        result = AudioSynthesisResult(
            audio_filename=filename,
            audio_url=audio_url_for(filename),
            session_id=data.get("session_id") or request.session_id,
            duration_seconds=data.get("duration_seconds"),
            file_size_bytes=data.get("file_size_bytes"),
            segments_count=data.get("segments_count"),
        )
        logger.info(
            "generation.audio.done",
            session_id=result.session_id,
            audio_filename=filename,
            duration_seconds=result.duration_seconds,
        )
        return result

    async def fetch_audio(self, filename: str) -> bytes:
        """Download a generated audio file.

        Raises:
            NotFoundError: The audio service has no such file.
        """
        url = f"{self.audio_service_url}/temp-files/{quote(filename)}"
        try:
            response = await send(self._client, "GET", url)
        except UpstreamError as exc:
            if exc.status_code == 404:
                raise NotFoundError(filename) from exc
            raise
        logger.info("generation.audio.fetched", audio_filename=filename, bytes=len(response.content))
        return response.content
