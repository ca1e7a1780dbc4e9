from dataclasses import dataclass
from typing import Dict, Any, Optional

from core.utility.utils import format_time


@dataclass(frozen=True)
class Track:
    id: str
    title: str
    artist: str = "Unknown artist"
    album: str = "Unknown album"
    duration: int = 0
    artwork: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        # durations coming from tag readers are float seconds
        object.__setattr__(self, "duration", max(0, int(self.duration or 0)))

    @property
    def duration_human(self) -> str:
        return format_time(self.duration)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "duration": self.duration,
            "artwork": self.artwork,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        return cls(
            id=str(data['id']),
            title=data.get('title', ''),
            artist=data.get('artist', cls.artist),
            album=data.get('album', cls.album),
            duration=data.get('duration', 0),
            artwork=data.get('artwork'),
            source=data.get('source') or data.get('url'),
        )
