"""Preset catalog: active show presets and voice configurations."""

from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from radio_player.errors import NotConfiguredError, RadioPlayerError
from radio_player.models.preset import ShowPreset, VoiceConfiguration
from radio_player.services.demo import MOCK_PRESETS
from radio_player.services.repository import describe_error
from radio_player.tools.supabase_store import SupabaseShowStore

logger = structlog.get_logger()


class PresetCatalog:
    """Cached view of ``show_presets`` and ``voice_configurations``.

    A failed reload keeps whatever the last successful load returned.
    """

    def __init__(self, store: SupabaseShowStore):
        self.store = store
        self.presets: list[ShowPreset] = []
        self.voices: list[VoiceConfiguration] = []
        self.is_mock = False
        self.error: Optional[str] = None

    async def load(self) -> list[ShowPreset]:
        try:
            presets, voices = await asyncio.gather(self.store.list_presets(), self.store.list_voices())
        except NotConfiguredError:
            logger.info("presets.mock", reason="supabase not configured")
            self.presets = list(MOCK_PRESETS)
            self.voices = []
            self.is_mock = True
            self.error = None
            return self.presets
        except RadioPlayerError as exc:
            logger.warning("presets.load_failed", error=str(exc))
            self.error = describe_error(exc, "Laden der Presets")
            return self.presets

        self.presets = presets
        self.voices = voices
        self.is_mock = False
        self.error = None
        logger.info("presets.loaded", presets=len(presets), voices=len(voices))
        return self.presets

    def get(self, preset_name: str) -> Optional[ShowPreset]:
        name = preset_name.casefold()
        return next((p for p in self.presets if p.preset_name.casefold() == name), None)

    def voice_for(self, speaker_name: str) -> Optional[VoiceConfiguration]:
        name = speaker_name.casefold()
        return next((v for v in self.voices if v.speaker_name.casefold() == name), None)
