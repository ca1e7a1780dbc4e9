"""
Playback clocks.

The engine owns exactly one clock and arms it whenever playback should advance
on its own. A clock only ever holds one pending callback: arming again replaces
the previous arming and cancel() drops it.
"""
import itertools
from typing import Callable, Optional

from core import logger
from core.scheduler import Scheduler


class PlaybackClock:
    """Cancellable repeating timer contract"""

    interval: float = 1

    def arm(self, callback: Callable[[], None]):
        raise NotImplementedError

    def cancel(self):
        raise NotImplementedError

    @property
    def armed(self) -> bool:
        raise NotImplementedError


class SchedulerClock(PlaybackClock):
    """
    Repeating timer backed by the application Scheduler
    """
    _ids = itertools.count(1)

    def __init__(self, scheduler: Scheduler, interval: float = 1, name: Optional[str] = None):
        self._scheduler = scheduler
        self.interval = interval
        self._job_name = name or f"playback_clock_{next(self._ids)}"
        self._armed = False

    def arm(self, callback: Callable[[], None]):
        self._scheduler.add_interval_job(self._job_name, callback, self.interval, unique=True)
        self._armed = True
        logger.debug(f"[Clock] Armed {self._job_name} every {self.interval}s")

    def cancel(self):
        if self._armed:
            self._scheduler.remove_job_by_name(self._job_name)
            self._armed = False
            logger.debug(f"[Clock] Cancelled {self._job_name}")

    @property
    def armed(self) -> bool:
        return self._armed


class ManualClock(PlaybackClock):
    """
    Clock that never fires by itself. Used when a real audio backend reports
    progress, and in tests where fire() stands in for a second passing.
    """

    def __init__(self):
        self._callback: Optional[Callable[[], None]] = None
        self.arm_count = 0

    def arm(self, callback: Callable[[], None]):
        self._callback = callback
        self.arm_count += 1

    def cancel(self):
        self._callback = None

    @property
    def armed(self) -> bool:
        return self._callback is not None

    def fire(self, times: int = 1):
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()
