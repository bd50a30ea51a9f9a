"""Request/response shapes of the generation and audio backends."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

VoiceQuality = Literal["low", "high", "ultra"]


class GenerateShowRequest(BaseModel):
    preset: str = "zurich"
    duration_minutes: int = Field(default=3, gt=0)
    channel: Optional[str] = None
    news_count: Optional[int] = None
    language: Optional[str] = None
    primary_speaker: Optional[str] = None
    secondary_speaker: Optional[str] = None


class ScriptResult(BaseModel):
    """Response of the show-generation backend's ``/generate``."""

    model_config = {"extra": "allow"}

    session_id: str
    script_content: str = ""
    broadcast_style: str = ""
    estimated_duration_minutes: int = 0
    channel: str = ""
    language: str = ""
    preset_name: Optional[str] = None
    title: Optional[str] = None
    news_count: int = 0
    generated_at: Optional[str] = None
    segments: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AudioSynthesisRequest(BaseModel):
    script_content: str
    session_id: str
    voice_quality: VoiceQuality = "high"
    export_format: str = "mp3"
    include_music: bool = False


class AudioSynthesisResult(BaseModel):
    audio_filename: str
    audio_url: str
    session_id: Optional[str] = None
    duration_seconds: Optional[float] = None
    file_size_bytes: Optional[int] = None
    segments_count: Optional[int] = None
