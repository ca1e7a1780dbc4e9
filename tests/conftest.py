from __future__ import annotations

import os

# keep the import-time log file out of the working tree
os.environ.setdefault("CADENCE_LOG_FILE", os.devnull)

import pytest

from adapters.audio_backend import AudioBackend
from core.clock import ManualClock
from core.event_bus import EventBus
from domain.models.song import Track
from domain.playback_engine import PlaybackEngine


def make_track(track_id: str, duration: int = 5, **kwargs) -> Track:
    return Track(id=track_id, title=f"Song {track_id}", artist="Artist", album="Album",
                 duration=duration, **kwargs)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def engine(bus: EventBus, clock: ManualClock) -> PlaybackEngine:
    return PlaybackEngine(bus, clock=clock)


@pytest.fixture
def tracks() -> list[Track]:
    return [make_track("a", 5), make_track("b", 5), make_track("c", 10)]


@pytest.fixture
def states(engine: PlaybackEngine) -> list:
    """Every snapshot the engine publishes, in order."""
    received: list = []
    engine.subscribe(received.append)
    return received


class RecordingBackend(AudioBackend):
    """In-memory backend that records the transport calls it receives."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.fail_on = None

    def _record(self, name, *args):
        if name == self.fail_on:
            raise RuntimeError(f"{name} failed")
        self.calls.append((name, *args))

    def load(self, track):
        self._record("load", track.id)

    def play(self):
        self._record("play")

    def pause(self):
        self._record("pause")

    def seek_to(self, seconds):
        self._record("seek_to", seconds)

    def set_volume(self, volume):
        self._record("set_volume", volume)

    # playback thread side
    def report_position(self, elapsed, total):
        self._report_position(elapsed, total)

    def report_end(self):
        self._report_end()

    def report_error(self, code, message):
        self._report_error(code, message)
