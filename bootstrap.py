import os
from typing import Optional

from adapters.audio_backend import AudioBackend, AudioBackendBridge
from adapters.media_scanner import MediaScanner
from adapters.remote_control import RemoteControlService
from core import logger
from core.clock import ManualClock, SchedulerClock
from core.event_bus import EventBus
from core.event_debugger import EventDebugger
from core.scheduler import Scheduler
from domain.playback_engine import PlaybackEngine


def bootstrap(backend: Optional[AudioBackend] = None, artwork_dir: Optional[str] = None,
              debug_events: bool = False):
    """
    Build the application context.

    Without a backend the engine advances on a one second scheduler clock;
    with one, the backend's position and end events drive it instead.
    """
    scheduler = Scheduler()
    # Infrastructure
    bus = EventBus()
    if debug_events:
        bus.add_event_debugger(EventDebugger())

    clock = ManualClock() if backend else SchedulerClock(scheduler, interval=1, name="playback_tick")

    # Domain
    engine = PlaybackEngine(bus, clock=clock)

    # Adapters
    remote = RemoteControlService(bus, engine)
    bridge = AudioBackendBridge(engine, backend, bus) if backend else None
    scanner = MediaScanner(
        bus, artwork_dir=artwork_dir or os.path.join(os.environ.get('WORKING_DIR', os.getcwd()), 'assets', 'artwork')
    )

    logger.info("[Bootstrap] Context ready")

    return {
        "bus": bus,
        "scheduler": scheduler,
        "engine": engine,
        "remote": remote,
        "bridge": bridge,
        "scanner": scanner,
    }
