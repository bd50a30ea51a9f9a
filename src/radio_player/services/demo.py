"""Built-in demo content shown when every data source is unavailable."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from radio_player.models.preset import ShowPreset
from radio_player.models.show import Show

DEMO_AUDIO_URL = "https://www.soundjay.com/misc/bell-ringing-05.wav"


def demo_shows(now: datetime | None = None) -> list[Show]:
    """Three Zurich demo shows, newest first, stamped relative to *now*."""
    now = now or datetime.now(timezone.utc)
    return [
        Show(
            id="demo-1",
            session_id="demo-1",
            title="Demo Show - Zürich Morning News",
            created_at=now,
            channel="zurich",
            language="de",
            news_count=3,
            broadcast_style="Morning Energy",
            script_preview=(
                "Guten Morgen Zürich! Dies ist eine Demo-Show die zeigt wie das System "
                "auch offline funktioniert. Mit lokalen News und Wetterinfos..."
            ),
            audio_url=DEMO_AUDIO_URL,
            audio_duration_seconds=180,
            estimated_duration_minutes=3,
        ),
        Show(
            id="demo-2",
            session_id="demo-2",
            title="Demo Show - Zürich Midday Update",
            created_at=now - timedelta(hours=1),
            channel="zurich",
            language="de",
            news_count=2,
            broadcast_style="Informative Midday",
            script_preview=(
                "Mittagsupdate für Zürich - auch wenn das Backend offline ist, bleibt "
                "das Frontend funktional und benutzerfreundlich..."
            ),
            audio_url=DEMO_AUDIO_URL,
            audio_duration_seconds=120,
            estimated_duration_minutes=2,
        ),
        Show(
            id="demo-3",
            session_id="demo-3",
            title="Demo Show - Zürich Evening Wrap",
            created_at=now - timedelta(hours=2),
            channel="zurich",
            language="de",
            news_count=4,
            broadcast_style="Evening Summary",
            script_preview=(
                "Abendliche Zusammenfassung für Zürich - das Frontend zeigt immer "
                "Inhalte, egal ob Backend verfügbar ist oder nicht..."
            ),
            audio_url=DEMO_AUDIO_URL,
            audio_duration_seconds=240,
            estimated_duration_minutes=4,
        ),
    ]


MOCK_PRESETS: list[ShowPreset] = [
    ShowPreset(
        id="1",
        preset_name="zurich",
        display_name="Zurich Local News",
        description="Latest local news from Zurich and surrounding areas",
        city_focus="zurich",
        primary_speaker="marcel",
        secondary_speaker="jarvis",
        weather_speaker="lucy",
        gpt_selection_instructions="Focus on Zurich local news, politics, and culture.",
        rss_feed_filter="schweiz, zuerich, wetter, finanzen",
    ),
    ShowPreset(
        id="2",
        preset_name="news",
        display_name="Global News Hot",
        description="International breaking news from all perspectives",
        city_focus="global",
        primary_speaker="brad",
        secondary_speaker="lucy",
        gpt_selection_instructions="Focus on breaking international news and tech.",
        rss_feed_filter="international, wirtschaft, bitcoin, crypto, tech",
    ),
]
