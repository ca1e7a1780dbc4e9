from core import logger
from core.event_bus import EventBus
from core.constants.events import PlaybackCommandEvent
from domain.playback_engine import PlaybackEngine


class RemoteControlService:
    """
    Routes transport commands published on the bus (media keys, notification
    buttons, other processes) to the playback engine.
    """

    def __init__(self, event_bus: EventBus, engine: PlaybackEngine):
        self.bus = event_bus
        self._engine = engine

        self.bus.subscribe(PlaybackCommandEvent.PLAY, self.on_play)
        self.bus.subscribe(PlaybackCommandEvent.PAUSE, self.on_pause)
        self.bus.subscribe(PlaybackCommandEvent.TOGGLE, self.on_toggle)
        self.bus.subscribe(PlaybackCommandEvent.STOP, self.on_stop)
        self.bus.subscribe(PlaybackCommandEvent.NEXT, self.on_next)
        self.bus.subscribe(PlaybackCommandEvent.PREVIOUS, self.on_previous)
        self.bus.subscribe(PlaybackCommandEvent.SEEK, self.on_seek)
        self.bus.subscribe(PlaybackCommandEvent.SET_VOLUME, self.on_volume)

    def on_play(self, *_):
        self._engine.play()

    def on_pause(self, *_):
        self._engine.pause()

    def on_toggle(self, *_):
        self._engine.toggle_play_pause()

    def on_stop(self, *_):
        self._engine.stop()

    def on_next(self, *_):
        self._engine.next()

    def on_previous(self, *_):
        self._engine.previous()

    def on_seek(self, position):
        """
        :param position: seconds
        :return:
        """
        logger.debug(f"[RemoteControl] Seek to {position}")
        self._engine.seek(position)

    def on_volume(self, volume):
        """
        :param volume: 0..1
        :return:
        """
        self._engine.set_volume(volume)
