"""Playback/Transcript Synchronizer: binds one audio element to the now-playing show."""

from __future__ import annotations

from typing import Optional, Protocol

import structlog
from pydantic import BaseModel

from radio_player.config import Settings, settings
from radio_player.models.show import Show
from radio_player.playback.transcript import (
    DEFAULT_LEAD_IN,
    DEFAULT_TAIL_SEC,
    WordProgress,
    active_segment_index,
    relative_time_in,
    resolve_active_line,
    segment_start_time,
    total_show_duration,
    word_progress,
)
from radio_player.services.repository import ShowRepository

logger = structlog.get_logger()

MSG_PLAY_FAILED = "Wiedergabe fehlgeschlagen"
MSG_MEDIA_ERROR = "Audio konnte nicht geladen werden"


class AudioElement(Protocol):
    """The single audio-playback primitive (an HTML audio element or a native player)."""

    src: Optional[str]
    current_time: float
    volume: float

    async def play(self) -> None: ...

    def pause(self) -> None: ...


class PlaybackState(BaseModel):
    show_id: Optional[str] = None
    current_time: float = 0.0
    display_time: float = 0.0
    duration: float = 0.0
    progress_percent: float = 0.0
    is_playing: bool = False
    is_dragging: bool = False
    volume: float = 1.0
    is_muted: bool = False
    error: Optional[str] = None
    segment_index: int = -1


class PlaybackSynchronizer:
    """Mirrors media events into playback state and resolves the teleprompter position.

    ``is_playing`` only changes in response to media events (``on_play``,
    ``on_pause``, ``on_ended``, ``on_error``); :meth:`play` and :meth:`pause`
    ask the element and wait for it to report back.
    """

    def __init__(
        self,
        audio: AudioElement,
        repository: Optional[ShowRepository] = None,
        *,
        lead_in: float = DEFAULT_LEAD_IN,
        tail_sec: float = DEFAULT_TAIL_SEC,
    ):
        self.audio = audio
        self.repository = repository
        self.lead_in = lead_in
        self.tail_sec = tail_sec

        self.show: Optional[Show] = None
        self.current_time = 0.0
        self.media_duration: Optional[float] = None
        self.is_playing = False
        self.volume = 1.0
        self.is_muted = False
        self.error: Optional[str] = None
        self.is_dragging = False
        self.drag_value = 0.0

    # -- loading ---------------------------------------------------------------

    def load_show(self, show: Show) -> None:
        """Make *show* the loaded show without starting playback."""
        if self.show is not None and self.show.id == show.id:
            self.show = show
            return

        self.show = show
        self.current_time = 0.0
        self.media_duration = None
        self.error = None
        self.is_playing = False
        self.is_dragging = False
        if show.has_audio:
            if self.audio.src != show.audio_url:
                self.audio.src = show.audio_url
            self.audio.current_time = 0.0
        logger.info("playback.loaded", show_id=show.id, has_audio=show.has_audio)

    @property
    def is_playable(self) -> bool:
        return self.show is not None and self.show.has_audio

    # -- media events ----------------------------------------------------------

    def on_loaded_metadata(self, duration: float) -> None:
        if duration and duration > 0 and duration != float("inf"):
            self.media_duration = duration

    def on_time_update(self, current_time: float) -> None:
        self.current_time = current_time

    def on_play(self) -> None:
        self.is_playing = True
        self.error = None
        if self.repository is not None:
            self.repository.set_currently_playing(self.show)

    def on_pause(self) -> None:
        self.is_playing = False

    def on_ended(self) -> None:
        self.is_playing = False
        self.current_time = 0.0
        self.audio.current_time = 0.0
        if self.repository is not None:
            self.repository.set_currently_playing(None)

    def on_error(self, detail: str = "") -> None:
        logger.warning("playback.media_error", show_id=self.show.id if self.show else None, detail=detail)
        self.error = MSG_MEDIA_ERROR
        self.is_playing = False

    # -- transport -------------------------------------------------------------

    async def play(self) -> bool:
        if not self.is_playable:
            return False
        try:
            await self.audio.play()
        except Exception as exc:
            logger.warning("playback.play_failed", show_id=self.show.id, error=str(exc))
            self.error = MSG_PLAY_FAILED
            self.is_playing = False
            return False
        return True

    def pause(self) -> None:
        self.audio.pause()

    async def toggle(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            await self.play()

    # -- seeking ---------------------------------------------------------------

    @property
    def duration(self) -> float:
        if self.media_duration:
            return self.media_duration
        if self.show is None:
            return 0.0
        return total_show_duration(self.show, max(self.current_segment_index, 0))

    def _clamp(self, time: float) -> float:
        duration = self.duration
        if duration > 0:
            return min(max(time, 0.0), duration)
        return max(time, 0.0)

    def seek(self, time: float) -> float:
        position = self._clamp(time)
        self.current_time = position
        self.audio.current_time = position
        return position

    def begin_drag(self) -> None:
        self.is_dragging = True
        self.drag_value = self.current_time

    def drag_to(self, value: float) -> None:
        self.drag_value = self._clamp(value)

    def end_drag(self) -> float:
        self.is_dragging = False
        return self.seek(self.drag_value)

    def jump_to_segment(self, index: int, show: Optional[Show] = None) -> Optional[float]:
        """Seek to the start of segment *index*, loading *show* first when it differs."""
        target = show or self.show
        if target is None or not 0 <= index < len(target.segments):
            logger.warning("playback.jump_ignored", segment_index=index)
            return None
        if self.show is None or self.show.id != target.id:
            self.load_show(target)
            if self.repository is not None:
                self.repository.set_currently_playing(target)
        return self.seek(segment_start_time(target.segments, index))

    def seek_to_line(self, segment_index: int, line_index: int) -> Optional[float]:
        if self.show is None or not 0 <= segment_index < len(self.show.segments):
            return None
        lines = self.show.segments[segment_index].transcript
        if not 0 <= line_index < len(lines):
            return None
        start = segment_start_time(self.show.segments, segment_index)
        return self.seek(start + lines[line_index].timestamp)

    # -- volume ----------------------------------------------------------------

    def set_volume(self, volume: float) -> None:
        self.volume = min(max(volume, 0.0), 1.0)
        self.audio.volume = self.volume
        self.is_muted = self.volume == 0

    def toggle_mute(self) -> None:
        """Mute silences the element only; the chosen volume is kept for unmuting."""
        if self.is_muted:
            if self.volume == 0:
                self.volume = 1.0
            self.audio.volume = self.volume
            self.is_muted = False
        else:
            self.audio.volume = 0.0
            self.is_muted = True

    # -- views -----------------------------------------------------------------

    @property
    def display_time(self) -> float:
        return self.drag_value if self.is_dragging else self.current_time

    @property
    def progress_percent(self) -> float:
        duration = self.duration
        if duration <= 0:
            return 0.0
        return min(self.display_time / duration * 100, 100.0)

    @property
    def current_segment_index(self) -> int:
        if self.show is None:
            return -1
        return active_segment_index(self.show.segments, self.display_time)

    def active_line(self, segment_index: Optional[int] = None) -> int:
        """Teleprompter line for a segment; line 0 unless that segment is the one playing."""
        if self.show is None:
            return 0
        current = self.current_segment_index
        index = current if segment_index is None else segment_index
        if not 0 <= index < len(self.show.segments):
            return 0
        relative = relative_time_in(self.show.segments, index, self.display_time)
        return resolve_active_line(
            self.show.segments[index].transcript,
            relative,
            is_active_segment=index == current,
            tail_sec=self.tail_sec,
        )

    def word_progress(self, segment_index: Optional[int] = None) -> Optional[WordProgress]:
        if self.show is None:
            return None
        index = self.current_segment_index if segment_index is None else segment_index
        if not 0 <= index < len(self.show.segments):
            return None
        lines = self.show.segments[index].transcript
        if not lines:
            return None
        line = self.active_line(index)
        relative = relative_time_in(self.show.segments, index, self.display_time)
        return word_progress(lines, line, relative, lead_in=self.lead_in, tail_sec=self.tail_sec)

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            show_id=self.show.id if self.show else None,
            current_time=self.current_time,
            display_time=self.display_time,
            duration=self.duration,
            progress_percent=self.progress_percent,
            is_playing=self.is_playing,
            is_dragging=self.is_dragging,
            volume=self.volume,
            is_muted=self.is_muted,
            error=self.error,
            segment_index=self.current_segment_index,
        )


def build_synchronizer(
    audio: AudioElement,
    repository: Optional[ShowRepository] = None,
    config: Settings = settings,
) -> PlaybackSynchronizer:
    """Synchronizer with the teleprompter tuning taken from settings."""
    return PlaybackSynchronizer(
        audio,
        repository,
        lead_in=config.word_highlight_lead_in,
        tail_sec=config.transcript_tail_sec,
    )
