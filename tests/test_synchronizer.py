import pytest

from fakes import FakeAudio, make_show
from radio_player.config import Settings
from radio_player.playback.synchronizer import (
    MSG_MEDIA_ERROR,
    MSG_PLAY_FAILED,
    PlaybackSynchronizer,
    build_synchronizer,
)


@pytest.fixture
def player(audio, repository):
    return PlaybackSynchronizer(audio, repository)


def test_seek_is_clamped_to_show_duration(player, audio):
    player.load_show(make_show("s1", audio_duration_seconds=180))
    assert player.seek(-5) == 0
    assert audio.current_time == 0
    assert player.seek(500) == 180
    assert audio.current_time == 180
    assert player.seek(42.5) == 42.5


def test_metadata_duration_overrides_show_duration(player):
    player.load_show(make_show("s1", audio_duration_seconds=180))
    player.on_loaded_metadata(200.0)
    assert player.duration == 200.0
    player.on_loaded_metadata(float("inf"))
    assert player.duration == 200.0


def test_load_show_resets_without_autoplay(player, audio):
    first = make_show("s1", audio_duration_seconds=180)
    player.load_show(first)
    player.on_time_update(90)
    player.on_error("decode")

    second = make_show("s2", audio_duration_seconds=120)
    player.load_show(second)
    assert audio.src == second.audio_url
    assert player.current_time == 0
    assert audio.current_time == 0
    assert player.error is None
    assert audio.play_calls == 0


def test_reloading_same_show_keeps_position(player):
    show = make_show("s1", audio_duration_seconds=180)
    player.load_show(show)
    player.on_time_update(33)
    player.load_show(show)
    assert player.current_time == 33


def test_switching_shows_sharing_a_file_rewinds(player, audio):
    player.load_show(make_show("s1", audio_url="/shared.mp3", audio_duration_seconds=60))
    player.seek(40)
    player.load_show(make_show("s2", audio_url="/shared.mp3", audio_duration_seconds=60))
    assert audio.current_time == 0


def test_jump_to_segment_without_start_time(player, chaptered_show, repository, audio):
    assert player.jump_to_segment(2, chaptered_show) == 75
    assert audio.current_time == 75
    assert player.show.id == "chaptered"
    assert repository.currently_playing_id == "chaptered"


def test_jump_to_segment_loads_target_show(player, repository, chaptered_show):
    repository.shows = [chaptered_show]
    player.load_show(make_show("other", audio_duration_seconds=10))
    player.jump_to_segment(1, chaptered_show)
    assert player.show.id == "chaptered"
    assert repository.currently_playing is chaptered_show
    assert player.current_time == 30


def test_jump_to_unknown_segment_is_ignored(player, chaptered_show):
    player.load_show(chaptered_show)
    player.seek(10)
    assert player.jump_to_segment(7) is None
    assert player.current_time == 10


def test_seek_to_transcript_line(player, chaptered_show):
    player.load_show(chaptered_show)
    assert player.seek_to_line(0, 2) == 12
    assert player.seek_to_line(0, 9) is None


def test_drag_holds_display_time_until_release(player, audio):
    player.load_show(make_show("s1", audio_duration_seconds=100))
    player.on_time_update(10)
    player.begin_drag()
    player.drag_to(60)
    player.on_time_update(11)

    assert player.display_time == 60
    assert player.progress_percent == 60
    assert audio.current_time == 0

    assert player.end_drag() == 60
    assert player.display_time == 60
    assert audio.current_time == 60


def test_media_events_drive_is_playing(player, repository):
    show = make_show("s1", audio_duration_seconds=100)
    repository.shows = [show]
    player.load_show(show)

    player.on_play()
    assert player.is_playing
    assert repository.currently_playing is show

    player.on_pause()
    assert not player.is_playing

    player.on_play()
    player.on_time_update(99)
    player.on_ended()
    assert not player.is_playing
    assert player.current_time == 0
    assert repository.currently_playing is None


async def test_play_requests_but_does_not_set_playing(player, audio):
    player.load_show(make_show("s1", audio_duration_seconds=100))
    assert await player.play() is True
    assert audio.play_calls == 1
    assert not player.is_playing


async def test_rejected_play_surfaces_error(repository):
    audio = FakeAudio(fail_play=True)
    player = PlaybackSynchronizer(audio, repository)
    player.load_show(make_show("s1", audio_duration_seconds=100))
    player.on_play()

    assert await player.play() is False
    assert player.error == MSG_PLAY_FAILED
    assert not player.is_playing


def test_media_error_is_terminal(player):
    player.load_show(make_show("s1", audio_duration_seconds=100))
    player.on_play()
    player.on_error("MEDIA_ERR_SRC_NOT_SUPPORTED")
    assert player.error == MSG_MEDIA_ERROR
    assert not player.is_playing
    assert player.state.error == MSG_MEDIA_ERROR


async def test_show_without_audio_is_not_playable(player, audio):
    player.load_show(make_show("s1", audio_url=None))
    assert audio.src is None
    assert await player.play() is False
    assert audio.play_calls == 0


async def test_toggle(player, audio):
    player.load_show(make_show("s1", audio_duration_seconds=100))
    await player.toggle()
    assert audio.play_calls == 1
    player.on_play()
    await player.toggle()
    assert audio.pause_calls == 1


def test_volume_and_mute(player, audio):
    player.set_volume(1.7)
    assert player.volume == 1.0
    player.set_volume(0.4)
    assert audio.volume == 0.4
    assert not player.is_muted

    player.toggle_mute()
    assert player.is_muted
    assert audio.volume == 0
    assert player.volume == 0.4
    assert player.state.volume == 0.4

    player.toggle_mute()
    assert not player.is_muted
    assert audio.volume == 0.4
    assert player.volume == 0.4

    player.set_volume(-1)
    assert player.is_muted


def test_active_line_and_word_progress(player, chaptered_show):
    player.load_show(chaptered_show)
    player.on_time_update(6)
    assert player.current_segment_index == 0
    assert player.active_line() == 1
    progress = player.word_progress()
    assert progress is not None
    assert progress.words == ["Heute", "gibt", "es", "spannende", "News"]

    # Segment 0 is not playing any more: its teleprompter rests on line 0.
    player.on_time_update(40)
    assert player.current_segment_index == 1
    assert player.active_line(0) == 0
    assert player.word_progress() is None


def test_state_snapshot(player):
    player.load_show(make_show("s1", audio_duration_seconds=200))
    player.on_time_update(50)
    state = player.state
    assert state.show_id == "s1"
    assert state.progress_percent == 25
    assert state.duration == 200


def test_build_synchronizer_uses_settings(audio):
    config = Settings(_env_file=None, word_highlight_lead_in=0.2, transcript_tail_sec=4.0)
    player = build_synchronizer(audio, config=config)
    assert player.lead_in == 0.2
    assert player.tail_sec == 4.0


def test_setting_volume_while_muted_unmutes(player, audio):
    player.set_volume(0.6)
    player.toggle_mute()

    player.set_volume(0.3)

    assert not player.is_muted
    assert audio.volume == 0.3


def test_unmute_from_zero_volume_restores_full_volume(player, audio):
    player.set_volume(0)
    assert player.is_muted

    player.toggle_mute()

    assert not player.is_muted
    assert player.volume == 1.0
    assert audio.volume == 1.0
