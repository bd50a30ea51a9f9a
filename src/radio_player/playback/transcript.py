"""Transcript timing: pure functions behind the playback synchronizer."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from pydantic import BaseModel

from radio_player.models.show import Segment, Show, Speaker, TranscriptLine

DEFAULT_LEAD_IN = 0.12
DEFAULT_TAIL_SEC = 10.0
MIN_LINE_SPAN = 0.1


class WordProgress(BaseModel):
    fraction: float
    spoken_words: int
    words: list[str]

    @property
    def spoken(self) -> list[str]:
        return self.words[: self.spoken_words]

    @property
    def remaining(self) -> list[str]:
        return self.words[self.spoken_words :]


def segment_start_time(segments: Sequence[Segment], index: int) -> float:
    """Absolute offset of a segment; back-to-back when it has no explicit start."""
    segment = segments[index]
    if segment.start_time is not None:
        return segment.start_time
    return sum(s.duration for s in segments[:index])


def total_show_duration(show: Show, segment_index: int = 0) -> float:
    """Seek-bar length: the show's total, or the current segment's when that is unknown."""
    total = show.total_duration
    if total > 0:
        return total
    if 0 <= segment_index < len(show.segments):
        return show.segments[segment_index].duration
    return 0.0


def active_segment_index(segments: Sequence[Segment], time: float) -> int:
    """Index of the segment playing at absolute *time*, or -1 without segments."""
    if not segments:
        return -1
    active = 0
    for index in range(len(segments)):
        if segment_start_time(segments, index) <= time:
            active = index
    return active


def line_window(lines: Sequence[TranscriptLine], index: int, tail_sec: float = DEFAULT_TAIL_SEC) -> tuple[float, float]:
    line = lines[index]
    if index + 1 < len(lines):
        return line.timestamp, lines[index + 1].timestamp
    return line.timestamp, line.timestamp + tail_sec


def resolve_active_line(
    lines: Sequence[TranscriptLine],
    relative_time: float,
    is_active_segment: bool = True,
    tail_sec: float = DEFAULT_TAIL_SEC,
) -> int:
    """Index of the line being spoken at segment-relative *relative_time*.

    Inactive segments always report line 0. Past the last window the last
    line stays active; before the first line, line 0 is.
    """
    if not lines or not is_active_segment:
        return 0
    for index in range(len(lines)):
        start, end = line_window(lines, index, tail_sec)
        if start <= relative_time < end:
            return index
    if relative_time >= lines[-1].timestamp:
        return len(lines) - 1
    return 0


def word_progress(
    lines: Sequence[TranscriptLine],
    index: int,
    relative_time: float,
    lead_in: float = DEFAULT_LEAD_IN,
    tail_sec: float = DEFAULT_TAIL_SEC,
) -> WordProgress:
    """How many words of line *index* are highlighted at *relative_time*."""
    start, end = line_window(lines, index, tail_sec)
    span = max(end - start, MIN_LINE_SPAN)
    raw = min(max((relative_time - start) / span, 0.0), 1.0)
    fraction = min(raw + lead_in, 1.0)

    words = lines[index].text.split()
    # Half-up rounding; round() would round 2.5 down to 2.
    spoken = max(1, math.floor(fraction * len(words) + 0.5))
    return WordProgress(fraction=fraction, spoken_words=min(spoken, len(words)), words=words)


def visible_line_indices(line_count: int, active: int) -> list[int]:
    """Teleprompter window: previous, current and next line."""
    if line_count <= 0:
        return []
    active = min(max(active, 0), line_count - 1)
    return sorted({max(active - 1, 0), active, min(active + 1, line_count - 1)})


def relative_time_in(segments: Sequence[Segment], index: int, time: float) -> float:
    return max(0.0, time - segment_start_time(segments, index))


def speaker_avatar(speakers: Sequence[Speaker], name: str) -> Optional[str]:
    wanted = name.casefold()
    for speaker in speakers:
        if speaker.name.casefold() == wanted:
            return speaker.avatar_url
    return None
