import os
import sys
import time

from bootstrap import bootstrap
from core.constants.events import PlayerEvent
from core.utility.utils import format_time


# set env
os.environ.setdefault('WORKING_DIR', os.getcwd())


def print_progress(payload):
    print(f"\r{format_time(payload['elapsed'])} / {format_time(payload['total'])}", end="", flush=True)


def print_track(track):
    if track is not None:
        print(f"\nNow playing: {track.artist} - {track.title}")


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("usage: main.py DIRECTORY [DIRECTORY ...]")
        return 2

    context = bootstrap()
    engine = context['engine']
    bus = context['bus']
    bus.subscribe(PlayerEvent.PLAYBACK_PROGRESS, print_progress)
    bus.subscribe(PlayerEvent.TRACK_CHANGED, print_track)

    tracks = context['scanner'].scan(*argv)
    if not engine.set_queue(tracks):
        print("No playable files found")
        return 1

    context['scheduler'].start_loop()
    # Keep the main thread alive while the scheduler ticks
    try:
        while engine.state.is_playing:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        engine.shutdown()
        context['scheduler'].stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
