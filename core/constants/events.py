from enum import Enum


class EventType(Enum):
    pass


class PlaybackCommandEvent(EventType):
    PLAY = "playback.play"  # Data: None
    PAUSE = "playback.pause"  # Data: None
    TOGGLE = "playback.toggle"  # Data: None
    STOP = "playback.stop"  # Data: None
    NEXT = "playback.next"  # Data: None
    PREVIOUS = "playback.previous"  # Data: None
    SEEK = "playback.seek"  # Data: int seconds
    SET_VOLUME = "playback.volume"  # Data: float 0..1


class PlayerEvent(EventType):
    STATE_CHANGED = "player.state_changed"  # Data: PlayerState snapshot
    TRACK_CHANGED = "player.track_changed"  # Data: Track | None
    PLAYBACK_PROGRESS = "player.progress"  # Data: dict {"elapsed": int, "total": int, "track_id": str}
    QUEUE_UPDATED = "player.queue_updated"  # Data: tuple[Track, ...]
    QUEUE_ENDED = "player.queue_ended"  # Data: Track (last played)
    SHUFFLE_TOGGLED = "player.shuffle_toggled"  # Data: bool
    REPEAT_MODE_CHANGED = "player.repeat_mode"  # Data: RepeatMode


class AudioBackendEvent(EventType):
    ERROR = "backend.error"  # Data: dict {"code": AudioBackendError, "message": str}


class MediaScannerEvent(EventType):
    SCANNER_STARTED = "scanner.started"  # Payload: str (path)
    SCANNER_PROGRESS = "scanner.progress"  # Payload: dict {"file": str, "count": int}
    SCANNER_FINISHED = "scanner.finished"  # Payload: int (count)
    SCANNER_ERROR = "scanner.error"  # Payload: Exception object
