import pytest

from fakes import FakeApi, FakeAudio, FakeStore, make_segment, make_show
from radio_player.services.repository import ShowRepository


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def repository(api, store):
    return ShowRepository(api, store)


@pytest.fixture
def audio():
    return FakeAudio()


@pytest.fixture
def chaptered_show():
    """Three segments; the first two back-to-back, the third without a start time."""
    segments = [
        make_segment(
            "intro",
            30,
            start_time=0,
            lines=[
                ("Marcel", "Guten Morgen Zürich", 0),
                ("Jarvis", "Heute gibt es spannende News", 5),
                ("Marcel", "Los geht es mit dem Wetter", 12),
            ],
        ),
        make_segment("news", 45),
        make_segment("weather", 60),
    ]
    return make_show("chaptered", segments=segments, audio_duration_seconds=None)
