"""Pydantic models for show presets and voice configurations (read-only)."""

from typing import Optional

from pydantic import BaseModel


class ShowPreset(BaseModel):
    id: str
    preset_name: str
    display_name: str
    description: Optional[str] = None
    city_focus: Optional[str] = None
    primary_speaker: str
    secondary_speaker: Optional[str] = None
    weather_speaker: Optional[str] = None
    rss_feed_filter: Optional[str] = None
    gpt_selection_instructions: Optional[str] = None
    is_active: bool = True


class VoiceConfiguration(BaseModel):
    id: int
    speaker_name: str
    voice_id: str
    voice_name: str
    language: str
    model: str = ""
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True
    is_primary: bool = False
    is_active: bool = True
