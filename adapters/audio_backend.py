from enum import Enum
from typing import Callable, List, Optional

from core import logger
from core.event_bus import EventBus
from core.constants.events import PlayerEvent, AudioBackendEvent
from domain.models.player_state import PlayerState
from domain.models.song import Track
from domain.playback_engine import PlaybackEngine


class AudioBackendError(Enum):
    LOAD_ERROR = "backend.load.error"
    PLAYBACK_ERROR = "backend.play.error"
    SEEK_ERROR = "backend.seek.error"
    VOLUME_ERROR = "backend.volume.error"


class AudioBackend:
    """
    Contract for a real audio output. Subclasses implement the transport
    methods and call the _report_* helpers from their playback thread.
    """

    def __init__(self):
        self._position_callbacks: List[Callable] = []
        self._end_callbacks: List[Callable] = []
        self._error_callbacks: List[Callable] = []

    def load(self, track: Track):
        raise NotImplementedError

    def play(self):
        raise NotImplementedError

    def pause(self):
        raise NotImplementedError

    def seek_to(self, seconds: int):
        raise NotImplementedError

    def set_volume(self, volume: float):
        raise NotImplementedError

    def register_position_event(self, callback: Callable[[float, float], None]):
        self._position_callbacks.append(callback)

    def register_end_event(self, callback: Callable[[bool], None]):
        self._end_callbacks.append(callback)

    def register_error_event(self, callback: Callable[[list], None]):
        self._error_callbacks.append(callback)

    def _report_position(self, elapsed: float, total: float):
        for callback in self._position_callbacks:
            callback(elapsed, total)

    def _report_end(self):
        for callback in self._end_callbacks:
            callback(True)

    def _report_error(self, error: AudioBackendError, message: str):
        for callback in self._error_callbacks:
            callback([error, message])


class AudioBackendBridge:
    """
    Keeps an AudioBackend in step with the engine and feeds backend progress
    back into it. The engine should run with a ManualClock while bridged, the
    backend's position reports take the place of the logical ticks.
    """

    def __init__(self, engine: PlaybackEngine, backend: AudioBackend, event_bus: EventBus):
        """
        :param engine:
        :param backend:
        :param event_bus:
        """
        self._engine = engine
        self._backend = backend
        self.bus = event_bus
        self._last_state: PlayerState = engine.state
        self._reported_position: Optional[int] = None
        self._stream_ended = False

        self._backend.register_position_event(self.receive_playback_pos)
        self._backend.register_end_event(self.handle_track_end_event)
        self._backend.register_error_event(self.handle_error_event)

        # the backend has to follow a transition before view models render it
        self.bus.subscribe(PlayerEvent.STATE_CHANGED, self.on_state_changed, priority=5)

    def on_state_changed(self, state: PlayerState):
        """
        Replay the difference between the last seen state and this one on the backend
        :param state:
        :return:
        """
        previous, self._last_state = self._last_state, state
        track = state.current_track
        previous_track = previous.current_track
        # a backend that reached the end of its stream needs the track again
        replay = self._stream_ended and state.is_playing
        reload = track is not None and (state.switched_track(previous) or replay)

        if reload:
            self._load(track)

        if state.volume != previous.volume:
            self._call(AudioBackendError.VOLUME_ERROR, self._backend.set_volume, state.volume)

        if track is not None and (reload or state.is_playing != previous.is_playing):
            if state.is_playing:
                self._call(AudioBackendError.PLAYBACK_ERROR, self._backend.play)
            else:
                self._call(AudioBackendError.PLAYBACK_ERROR, self._backend.pause)
        elif track is None and previous_track is not None:
            self._call(AudioBackendError.PLAYBACK_ERROR, self._backend.pause)

        if (track is not None and not reload and state.position != previous.position
                and state.position != self._reported_position):
            self._call(AudioBackendError.SEEK_ERROR, self._backend.seek_to, state.position)
            self._reported_position = state.position

    def receive_playback_pos(self, elapsed, total):
        """
        :param elapsed:
        :param total:
        :return:
        """
        self._reported_position = int(elapsed)
        self._engine.sync_position(elapsed)

    def handle_track_end_event(self, event: bool):
        """
        Apply the end of track policy and restart the backend when the policy keeps playing
        :param event:
        :return:
        """
        self._stream_ended = True
        try:
            self._engine.track_ended()
        finally:
            pending, self._stream_ended = self._stream_ended, False

        state = self._engine.state
        # the policy left the state untouched, so no transition carried the restart
        if pending and state.is_playing and state.current_track is not None:
            self._load(state.current_track)
            self._call(AudioBackendError.PLAYBACK_ERROR, self._backend.play)

    def handle_error_event(self, error: list):
        """
        Handle errors
        :param error: [AudioBackendError, error string]
        :return:
        """
        code, message = error[0], error[1]
        logger.error(f"[AudioBridge] {code.value}: {message}")
        self.bus.publish(AudioBackendEvent.ERROR, {"code": code, "message": message})

    def _load(self, track: Track):
        self._stream_ended = False
        self._reported_position = 0
        self._call(AudioBackendError.LOAD_ERROR, self._backend.load, track)
        logger.info(f"[AudioBridge] Loaded '{track.title}'")

    def _call(self, code: AudioBackendError, method: Callable, *args):
        try:
            method(*args)
        except Exception as e:
            self.handle_error_event([code, str(e)])
