from enum import Enum


class RepeatMode(Enum):
    OFF = "off"
    ALL = "all"
    ONE = "one"

    def cycled(self) -> "RepeatMode":
        """Next mode in the OFF -> ALL -> ONE -> OFF rotation"""
        order = list(RepeatMode)
        return order[(order.index(self) + 1) % len(order)]


class PlaybackStatus(Enum):
    EMPTY = "empty"
    PAUSED = "paused"
    PLAYING = "playing"
