from core import logger
from core.constants.events import MediaScannerEvent, PlayerEvent


class EventDebugger:
    _skip = [MediaScannerEvent.SCANNER_PROGRESS, PlayerEvent.PLAYBACK_PROGRESS,
             PlayerEvent.STATE_CHANGED]

    def __init__(self, print_console=False):
        self.print_console = print_console

    def print_event_log(self, context, event_type, *args, **kwargs):
        if event_type not in self._skip:
            msg = f"[Event Debug] Context: {context} Event type: {event_type.value}"
            logger.info(msg)
            if self.print_console:
                print(msg)
