"""Pydantic models for shows, segments and transcripts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

PLACEHOLDER_ID = "generating"

CHANNELS = ("zurich", "basel", "bern", "global")
LANGUAGES = ("de", "en")
BROADCAST_STYLES = (
    "Professional Afternoon",
    "Chill Evening",
    "Morning Briefing",
    "Weekend Special",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TranscriptLine(BaseModel):
    speaker: str
    text: str
    timestamp: float = Field(ge=0, description="Seconds relative to the segment start")


class Speaker(BaseModel):
    name: str
    avatar_url: Optional[str] = None


class Segment(BaseModel):
    id: str
    title: str = ""
    category: str = ""
    duration: float = Field(default=0.0, ge=0)
    start_time: Optional[float] = Field(
        default=None, description="Offset into the full-show audio; None = back-to-back"
    )
    source_url: Optional[str] = None
    source_name: Optional[str] = None
    article_title: Optional[str] = None
    article_description: Optional[str] = None
    article_image_url: Optional[str] = None
    article_emoji: Optional[str] = None
    source_published_at: Optional[str] = None
    audio_url: Optional[str] = None
    transcript: list[TranscriptLine] = Field(default_factory=list)


class Show(BaseModel):
    id: str
    session_id: str = ""
    title: str = ""
    script_preview: str = ""
    script_content: Optional[str] = None
    broadcast_style: str = ""
    channel: str = ""
    language: str = ""
    preset_name: Optional[str] = None

    audio_url: Optional[str] = None
    audio_duration_seconds: Optional[float] = None
    audio_file_size_bytes: Optional[int] = None

    estimated_duration_minutes: int = 0
    news_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    segments: list[Segment] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Rows from different sources mix naive and aware timestamps.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("estimated_duration_minutes", "news_count", mode="before")
    @classmethod
    def _round_counts(cls, value: Any) -> Any:
        if value is None:
            return 0
        if isinstance(value, float):
            return round(value)
        return value

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_url)

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_ID

    @property
    def total_duration(self) -> float:
        """Full-show length in seconds.

        Prefers the synthesized audio duration, then the last segment's end,
        then the sum of segment durations.
        """
        if self.audio_duration_seconds:
            return float(self.audio_duration_seconds)
        if not self.segments:
            return 0.0
        last = self.segments[-1]
        if last.start_time is not None:
            return last.start_time + last.duration
        return sum(s.duration for s in self.segments)


class FormattedShow(BaseModel):
    """Display-only view of a show; the wrapped show is never mutated."""

    show: Show
    formatted_date: str
    formatted_duration: str
    has_audio: bool
    audio_file_size: Optional[str] = None


class ShowsPage(BaseModel):
    """Result of a repository list operation."""

    shows: list[Show]
    total: int
    limit: int
    offset: int
    has_more: bool = False
    source: str
    is_online: bool
    message: Optional[str] = None
