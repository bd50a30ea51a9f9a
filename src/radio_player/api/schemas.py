"""Request/Response schemas for the proxy endpoints."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from radio_player.models.generation import VoiceQuality
from radio_player.models.show import FormattedShow, Show


class GenerateAudioRequest(BaseModel):
    script_content: Optional[str] = None
    session_id: Optional[str] = None
    voice_quality: VoiceQuality = "high"


class GenerateAudioResponse(BaseModel):
    success: bool = True
    audio_filename: str
    session_id: Optional[str] = None
    duration_seconds: Optional[float] = None
    file_size_bytes: Optional[int] = None
    segments_count: Optional[int] = None


class GenerateShowResponse(BaseModel):
    success: bool = True
    data: dict[str, Any] = Field(default_factory=dict)


class ShowListResponse(BaseModel):
    shows: list[FormattedShow]
    total: int
    limit: int
    offset: int
    has_more: bool
    source: str
    is_online: bool
    message: Optional[str] = None
    query_ms: Optional[float] = None


class GenerationResponse(BaseModel):
    status: str  # "completed" | "rejected" | "failed"
    show: Optional[Show] = None
    error: Optional[str] = None
