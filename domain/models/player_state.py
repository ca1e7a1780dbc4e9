from dataclasses import dataclass, field
from typing import Optional, Tuple

from domain.enums.playback import RepeatMode, PlaybackStatus
from domain.models.song import Track


@dataclass(frozen=True)
class PlayerState:
    """
    Immutable view of the player. The engine publishes a fresh instance after
    every transition, readers never see a half applied change.
    """
    queue: Tuple[Track, ...] = field(default_factory=tuple)
    current_index: int = -1
    is_playing: bool = False
    position: int = 0
    repeat_mode: RepeatMode = RepeatMode.OFF
    shuffle_enabled: bool = False
    volume: float = 1.0

    @property
    def current_track(self) -> Optional[Track]:
        if 0 <= self.current_index < len(self.queue):
            return self.queue[self.current_index]
        return None

    @property
    def duration(self) -> int:
        track = self.current_track
        return track.duration if track else 0

    @property
    def progress(self) -> float:
        """Elapsed share of the current track in percent"""
        if self.duration <= 0:
            return 0.0
        return self.position / self.duration * 100

    @property
    def status(self) -> PlaybackStatus:
        if self.current_track is None:
            return PlaybackStatus.EMPTY
        return PlaybackStatus.PLAYING if self.is_playing else PlaybackStatus.PAUSED

    def switched_track(self, previous: "PlayerState") -> bool:
        """
        True when this state points at another queue entry than previous. A move
        within an unchanged queue counts even if both entries hold the same track,
        an index shift caused by editing the queue does not.
        :param previous:
        :return:
        """
        track, previous_track = self.current_track, previous.current_track
        if (track.id if track else None) != (previous_track.id if previous_track else None):
            return True
        return (track is not None and self.queue == previous.queue
                and self.current_index != previous.current_index)

    def up_next(self, count: int = 3) -> Tuple[Track, ...]:
        if self.current_index < 0:
            return ()
        start = self.current_index + 1
        return self.queue[start:start + count]

    def to_dict(self):
        track = self.current_track
        return {
            "queue": [t.to_dict() for t in self.queue],
            "current_index": self.current_index,
            "current_track": track.to_dict() if track else None,
            "is_playing": self.is_playing,
            "position": self.position,
            "duration": self.duration,
            "repeat_mode": self.repeat_mode.value,
            "shuffle_enabled": self.shuffle_enabled,
            "volume": self.volume,
            "status": self.status.value,
        }
