import threading
from dataclasses import replace
from typing import Callable, Iterable, Optional, Union

from core import logger
from core.clock import PlaybackClock, ManualClock
from core.event_bus import EventBus
from core.constants.events import PlayerEvent
from core.utility.utils import clamp
from domain.enums.playback import RepeatMode
from domain.models.player_state import PlayerState
from domain.models.song import Track


class PlaybackEngine:
    """
    Owns the player state and every rule that changes it.

    Each operation and each clock tick is applied under one lock and replaces
    the published PlayerState with a new immutable snapshot. Invalid requests
    (bad index, empty queue) are ignored and reported through the boolean
    result, out of range seek and volume values are clamped.
    """

    def __init__(self, event_bus: EventBus, clock: Optional[PlaybackClock] = None, restart_threshold: int = 3):
        """
        :param event_bus: bus the state notifications are published on
        :param clock: repeating timer driving playback progress, a ManualClock when omitted
        :param restart_threshold: seconds after which previous() restarts the current track
        """
        self._bus = event_bus
        self._clock = clock or ManualClock()
        self._lock = threading.RLock()
        self._state = PlayerState()
        self._clock_generation = 0
        self.restart_threshold = restart_threshold

    # Region state access
    @property
    def state(self) -> PlayerState:
        with self._lock:
            return self._state

    def snapshot(self) -> PlayerState:
        return self.state

    @property
    def clock(self) -> PlaybackClock:
        return self._clock

    def subscribe(self, callback: Callable[[PlayerState], None], priority: int = 0):
        """
        Notify callback with the new snapshot after every state change
        :param callback:
        :param priority:
        :return:
        """
        self._bus.subscribe(PlayerEvent.STATE_CHANGED, callback, priority=priority)

    def unsubscribe(self, callback: Callable[[PlayerState], None]) -> bool:
        return self._bus.unsubscribe(PlayerEvent.STATE_CHANGED, callback)

    # EndRegion

    # Region playback controls
    def play(self) -> bool:
        with self._lock:
            if self._state.current_track is None:
                logger.debug("[PlaybackEngine] play ignored, nothing loaded")
                return False
            self._commit(replace(self._state, is_playing=True))
            return True

    def pause(self) -> bool:
        with self._lock:
            self._commit(replace(self._state, is_playing=False))
            return True

    def toggle_play_pause(self) -> bool:
        with self._lock:
            if self._state.is_playing:
                return self.pause()
            return self.play()

    def stop(self) -> bool:
        with self._lock:
            self._commit(replace(self._state, is_playing=False, position=0))
            return True

    def seek(self, position) -> bool:
        with self._lock:
            state = self._state
            target = int(clamp(position, 0, state.duration))
            self._commit(replace(state, position=target), restart_clock=True)
            return True

    def set_volume(self, volume) -> bool:
        with self._lock:
            self._commit(replace(self._state, volume=float(clamp(volume, 0.0, 1.0))))
            return True

    # EndRegion

    # Region track navigation
    def next(self) -> bool:
        """
        Manual skip. Unlike the end of track policy this leaves the state
        untouched at the end of the queue when repeat is off.
        :return:
        """
        with self._lock:
            state = self._state
            if state.current_index < len(state.queue) - 1:
                return self._load(state.current_index + 1)
            if state.repeat_mode == RepeatMode.ALL and state.queue:
                return self._load(0)
            logger.debug("[PlaybackEngine] next ignored, end of queue")
            return False

    def previous(self) -> bool:
        with self._lock:
            state = self._state
            if state.current_track is None:
                return False
            if state.position > self.restart_threshold:
                self._commit(replace(state, position=0), restart_clock=True)
                return True
            if state.current_index > 0:
                return self._load(state.current_index - 1)
            self._commit(replace(state, position=0), restart_clock=True)
            return True

    def skip_to_track(self, index: int) -> bool:
        with self._lock:
            if not 0 <= index < len(self._state.queue):
                logger.debug(f"[PlaybackEngine] skip_to_track ignored, index {index} out of range")
                return False
            return self._load(index)

    # EndRegion

    # Region queue management
    def set_queue(self, tracks: Iterable[Track], start_index: int = 0) -> bool:
        """
        Replace the queue and start playing from start_index
        :param tracks:
        :param start_index:
        :return:
        """
        tracks = tuple(tracks)
        with self._lock:
            if not tracks:
                logger.debug("[PlaybackEngine] set_queue ignored, empty track list")
                return False
            if not 0 <= start_index < len(tracks):
                logger.debug(f"[PlaybackEngine] set_queue ignored, start index {start_index} out of range")
                return False
            self._commit(replace(self._state, queue=tracks, current_index=start_index,
                                 position=0, is_playing=True), restart_clock=True)
            return True

    def add_to_queue(self, track: Track) -> bool:
        with self._lock:
            self._commit(replace(self._state, queue=self._state.queue + (track,)))
            return True

    def remove_from_queue(self, index: int) -> bool:
        """
        Removes an item from the queue and repairs the current index.
        Removing the current track loads its successor (or the new last track)
        without touching the playing flag.
        :param index:
        :return:
        """
        with self._lock:
            state = self._state
            if not 0 <= index < len(state.queue):
                logger.debug(f"[PlaybackEngine] remove_from_queue ignored, index {index} out of range")
                return False

            queue = state.queue[:index] + state.queue[index + 1:]
            current = state.current_index

            if index < current:
                new_state = replace(state, queue=queue, current_index=current - 1)
            elif index == current:
                if queue:
                    new_state = replace(state, queue=queue, current_index=min(current, len(queue) - 1),
                                        position=0)
                else:
                    new_state = replace(state, queue=queue, current_index=-1, position=0, is_playing=False)
            else:
                new_state = replace(state, queue=queue)

            self._commit(new_state, restart_clock=index == current)
            return True

    def clear_queue(self) -> bool:
        with self._lock:
            self._commit(replace(self._state, queue=(), current_index=-1, position=0, is_playing=False))
            return True

    def play_song(self, track: Track, queue: Optional[Iterable[Track]] = None) -> bool:
        """
        Play a single track, optionally as part of a queue
        :param track:
        :param queue: when given, playback starts at track's position in it (first item if absent)
        :return:
        """
        if queue is not None:
            queue = tuple(queue)
            index = next((i for i, item in enumerate(queue) if item.id == track.id), 0)
            return self.set_queue(queue, index)

        with self._lock:
            self._commit(replace(self._state, queue=(track,), current_index=0, position=0, is_playing=True),
                         restart_clock=True)
            return True

    # EndRegion

    # Region modes
    def toggle_shuffle(self) -> bool:
        with self._lock:
            self._commit(replace(self._state, shuffle_enabled=not self._state.shuffle_enabled))
            return True

    def toggle_repeat(self) -> bool:
        with self._lock:
            self._commit(replace(self._state, repeat_mode=self._state.repeat_mode.cycled()))
            return True

    def set_repeat_mode(self, mode: Union[RepeatMode, str]) -> bool:
        try:
            mode = RepeatMode(mode)
        except ValueError:
            logger.debug(f"[PlaybackEngine] set_repeat_mode ignored, unknown mode {mode!r}")
            return False
        with self._lock:
            self._commit(replace(self._state, repeat_mode=mode))
            return True

    # EndRegion

    # Region clock
    def tick(self) -> bool:
        """
        Advance playback by one second, applying the end of track policy at the boundary
        :return: False when playback is not advancing
        """
        with self._lock:
            state = self._state
            if not state.is_playing or state.current_track is None or state.position >= state.duration:
                return False
            if state.position + 1 < state.duration:
                self._commit(replace(state, position=state.position + 1))
                return True
            self._end_of_track(state)
            return True

    def track_ended(self) -> bool:
        """
        Apply the end of track policy immediately, used when an audio backend reports the end
        :return:
        """
        with self._lock:
            state = self._state
            if not state.is_playing or state.current_track is None:
                return False
            self._end_of_track(state)
            return True

    def sync_position(self, seconds) -> bool:
        """
        Adopt the position reported by an audio backend
        :param seconds:
        :return:
        """
        with self._lock:
            state = self._state
            if state.current_track is None:
                return False
            self._commit(replace(state, position=int(clamp(seconds, 0, state.duration))))
            return True

    def shutdown(self):
        with self._lock:
            self._clock_generation += 1
            self._clock.cancel()
        logger.info("[PlaybackEngine] Shut down")

    def _end_of_track(self, state: PlayerState):
        last_index = len(state.queue) - 1
        if state.repeat_mode == RepeatMode.ONE:
            self._commit(replace(state, position=0))
        elif state.repeat_mode == RepeatMode.ALL and state.current_index == last_index:
            self._commit(replace(state, current_index=0, position=0), restart_clock=True)
        elif state.current_index < last_index:
            self._commit(replace(state, current_index=state.current_index + 1, position=0), restart_clock=True)
        else:
            self._commit(replace(state, is_playing=False, position=0))
            logger.info(f"[PlaybackEngine] Queue finished on '{state.current_track.title}'")
            self._bus.publish(PlayerEvent.QUEUE_ENDED, state.current_track)

    def _on_clock(self, generation: int):
        with self._lock:
            if generation != self._clock_generation:
                logger.debug("[PlaybackEngine] Dropped stale clock tick")
                return
            self.tick()

    def _sync_clock(self, old: PlayerState, new: PlayerState, restart: bool):
        should_run = new.is_playing and new.current_track is not None and new.position < new.duration
        if not should_run:
            if self._clock.armed:
                self._clock_generation += 1
                self._clock.cancel()
            return

        changed = (
            old.is_playing != new.is_playing
            or _track_id(old) != _track_id(new)
            or bool(old.queue) != bool(new.queue)
        )
        if restart or changed or not self._clock.armed:
            self._clock_generation += 1
            generation = self._clock_generation
            self._clock.arm(lambda: self._on_clock(generation))

    # EndRegion

    # Helpers
    def _load(self, index: int) -> bool:
        self._commit(replace(self._state, current_index=index, position=0, is_playing=True), restart_clock=True)
        return True

    def _commit(self, new_state: PlayerState, restart_clock: bool = False) -> bool:
        """
        Publish new_state if it differs from the current one and keep the clock in step
        :param new_state:
        :param restart_clock: re-arm even if the clock relevant fields did not change
        :return: True if the state changed
        """
        old_state = self._state
        if new_state == old_state:
            return False
        self._state = new_state
        self._sync_clock(old_state, new_state, restart_clock)
        self._notify(old_state, new_state)
        return True

    def _notify(self, old: PlayerState, new: PlayerState):
        track_changed = new.switched_track(old)
        if track_changed:
            if new.current_track is not None:
                logger.info(f"[PlaybackEngine] Now playing '{new.current_track.title}' "
                            f"({new.current_index + 1}/{len(new.queue)})")
            self._bus.publish(PlayerEvent.TRACK_CHANGED, new.current_track)
        if old.queue != new.queue:
            self._bus.publish(PlayerEvent.QUEUE_UPDATED, new.queue)
        if track_changed or old.position != new.position:
            self._bus.publish(PlayerEvent.PLAYBACK_PROGRESS, {
                'elapsed': new.position,
                'total': new.duration,
                'track_id': _track_id(new),
            })
        if old.shuffle_enabled != new.shuffle_enabled:
            self._bus.publish(PlayerEvent.SHUFFLE_TOGGLED, new.shuffle_enabled)
        if old.repeat_mode != new.repeat_mode:
            self._bus.publish(PlayerEvent.REPEAT_MODE_CHANGED, new.repeat_mode)
        self._bus.publish(PlayerEvent.STATE_CHANGED, new)


def _track_id(state: PlayerState) -> Optional[str]:
    track = state.current_track
    return track.id if track else None
