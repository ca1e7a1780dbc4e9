"""Tests for the playback state machine: operations, tick policy and clock handling."""

from __future__ import annotations

import pytest

from conftest import make_track
from core.constants.events import PlayerEvent
from domain.enums.playback import PlaybackStatus, RepeatMode
from domain.models.player_state import PlayerState


def assert_invariants(state: PlayerState):
    assert state.current_index == -1 or 0 <= state.current_index < len(state.queue)
    assert (state.current_track is None) == (state.current_index == -1)
    assert 0 <= state.position <= state.duration
    if state.current_track is None:
        assert not state.is_playing


class TestInitialState:

    def test_starts_empty(self, engine):
        state = engine.state
        assert state.queue == ()
        assert state.current_index == -1
        assert state.current_track is None
        assert not state.is_playing
        assert state.position == 0
        assert state.repeat_mode == RepeatMode.OFF
        assert not state.shuffle_enabled
        assert state.volume == 1.0
        assert state.status == PlaybackStatus.EMPTY

    def test_snapshot_is_same_object_as_state(self, engine):
        assert engine.snapshot() is engine.state


class TestPlaybackControls:

    def test_play_without_track_is_ignored(self, engine, clock, states):
        assert engine.play() is False
        assert not engine.state.is_playing
        assert not clock.armed
        assert states == []

    def test_pause_twice_equals_once(self, engine, tracks):
        engine.set_queue(tracks)
        engine.pause()
        once = engine.state
        engine.pause()
        assert engine.state == once
        assert engine.state.status == PlaybackStatus.PAUSED

    def test_pause_then_play(self, engine, tracks, clock):
        engine.set_queue(tracks)
        engine.pause()
        assert not clock.armed
        assert engine.play() is True
        assert engine.state.is_playing
        assert clock.armed

    def test_toggle_play_pause(self, engine, tracks):
        engine.set_queue(tracks)
        engine.toggle_play_pause()
        assert not engine.state.is_playing
        engine.toggle_play_pause()
        assert engine.state.is_playing

    def test_toggle_without_track_stays_stopped(self, engine):
        assert engine.toggle_play_pause() is False
        assert not engine.state.is_playing

    def test_stop_resets_position(self, engine, tracks, clock):
        engine.set_queue(tracks, 2)
        clock.fire(4)
        engine.stop()
        state = engine.state
        assert not state.is_playing
        assert state.position == 0
        assert state.current_index == 2
        assert not clock.armed

    @pytest.mark.parametrize("requested, expected", [(-5, 0), (3, 3), (99, 10), (4.7, 4)])
    def test_seek_clamps(self, engine, tracks, requested, expected):
        engine.set_queue(tracks, 2)
        assert engine.seek(requested) is True
        assert engine.state.position == expected

    def test_seek_without_track_stays_at_zero(self, engine):
        engine.seek(30)
        assert engine.state.position == 0

    @pytest.mark.parametrize("requested, expected", [(-1, 0.0), (0.4, 0.4), (3, 1.0)])
    def test_set_volume_clamps(self, engine, requested, expected):
        engine.set_volume(requested)
        assert engine.state.volume == expected


class TestNext:

    def test_advances_and_plays(self, engine, tracks):
        engine.set_queue(tracks)
        engine.pause()
        engine.seek(3)
        assert engine.next() is True
        state = engine.state
        assert state.current_index == 1
        assert state.current_track.id == "b"
        assert state.position == 0
        assert state.is_playing

    def test_end_of_queue_without_repeat_is_noop(self, engine, tracks, states):
        engine.set_queue(tracks, 2)
        engine.seek(4)
        before = engine.state
        published = len(states)
        assert engine.next() is False
        assert engine.state == before
        assert len(states) == published

    def test_end_of_queue_with_repeat_all_wraps(self, engine, tracks):
        engine.set_queue(tracks, 2)
        engine.set_repeat_mode(RepeatMode.ALL)
        engine.pause()
        assert engine.next() is True
        assert engine.state.current_index == 0
        assert engine.state.is_playing

    def test_repeat_all_on_empty_queue_is_noop(self, engine):
        engine.set_repeat_mode(RepeatMode.ALL)
        assert engine.next() is False
        assert engine.state.current_index == -1

    def test_next_after_add_to_empty_queue_loads_first(self, engine, tracks):
        engine.add_to_queue(tracks[0])
        assert engine.state.current_track is None
        engine.next()
        assert engine.state.current_track.id == "a"
        assert engine.state.is_playing


class TestPrevious:

    def test_restarts_after_threshold(self, engine, tracks):
        engine.set_queue(tracks, 1)
        engine.seek(4)
        engine.previous()
        assert engine.state.current_index == 1
        assert engine.state.position == 0

    def test_goes_back_within_threshold(self, engine, tracks):
        engine.set_queue(tracks, 1)
        engine.pause()
        engine.seek(3)
        engine.previous()
        state = engine.state
        assert state.current_index == 0
        assert state.position == 0
        assert state.is_playing

    def test_first_track_only_resets_position(self, engine, tracks):
        engine.set_queue(tracks)
        engine.seek(1)
        engine.previous()
        assert engine.state.current_index == 0
        assert engine.state.position == 0

    def test_without_track_is_ignored(self, engine):
        assert engine.previous() is False

    def test_custom_threshold(self, bus, clock, tracks):
        from domain.playback_engine import PlaybackEngine

        engine = PlaybackEngine(bus, clock=clock, restart_threshold=0)
        engine.set_queue(tracks, 1)
        engine.seek(1)
        engine.previous()
        assert engine.state.current_index == 1


class TestSkipToTrack:

    def test_jumps_and_plays(self, engine, tracks):
        engine.set_queue(tracks)
        engine.pause()
        assert engine.skip_to_track(2) is True
        assert engine.state.current_track.id == "c"
        assert engine.state.is_playing

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_out_of_range_is_noop(self, engine, tracks, index):
        engine.set_queue(tracks, 1)
        engine.seek(2)
        before = engine.state
        assert engine.skip_to_track(index) is False
        assert engine.state == before

    def test_round_trip_with_set_queue(self, engine, tracks):
        engine.set_queue(tracks, 1)
        after_set = engine.state
        engine.skip_to_track(1)
        assert engine.state == after_set


class TestSetQueue:

    def test_replaces_queue_and_plays(self, engine, tracks):
        engine.play_song(make_track("z"))
        assert engine.set_queue(tracks, 1) is True
        state = engine.state
        assert state.queue == tuple(tracks)
        assert state.current_index == 1
        assert state.position == 0
        assert state.is_playing

    def test_empty_list_is_noop(self, engine, tracks):
        engine.set_queue(tracks)
        before = engine.state
        assert engine.set_queue([]) is False
        assert engine.state == before

    def test_out_of_range_start_is_noop(self, engine, tracks):
        assert engine.set_queue(tracks, 3) is False
        assert engine.state.current_index == -1

    def test_accepts_any_iterable(self, engine, tracks):
        engine.set_queue(iter(tracks))
        assert len(engine.state.queue) == 3


class TestAddToQueue:

    def test_appends_without_touching_playback(self, engine, tracks):
        engine.set_queue(tracks[:2], 1)
        engine.seek(2)
        engine.add_to_queue(tracks[2])
        state = engine.state
        assert [t.id for t in state.queue] == ["a", "b", "c"]
        assert state.current_index == 1
        assert state.position == 2
        assert state.is_playing


class TestRemoveFromQueue:

    def test_before_current_shifts_index(self, engine, tracks):
        engine.set_queue(tracks, 2)
        engine.seek(6)
        engine.remove_from_queue(0)
        state = engine.state
        assert state.current_index == 1
        assert state.current_track.id == "c"
        assert state.position == 6

    def test_after_current_only_removes(self, engine, tracks):
        engine.set_queue(tracks, 0)
        engine.remove_from_queue(2)
        assert [t.id for t in engine.state.queue] == ["a", "b"]
        assert engine.state.current_index == 0

    def test_current_loads_successor_and_keeps_playing_flag(self, engine, tracks):
        engine.set_queue(tracks, 1)
        engine.pause()
        engine.seek(3)
        engine.remove_from_queue(1)
        state = engine.state
        assert state.current_index == 1
        assert state.current_track.id == "c"
        assert state.duration == 10
        assert state.position == 0
        assert not state.is_playing

    def test_current_last_falls_back_to_new_last(self, engine, tracks):
        engine.set_queue(tracks, 2)
        engine.remove_from_queue(2)
        state = engine.state
        assert state.current_index == 1
        assert state.current_track.id == "b"
        assert state.is_playing

    def test_only_track_empties_player(self, engine, tracks, clock):
        engine.set_queue(tracks[:1])
        engine.remove_from_queue(0)
        state = engine.state
        assert state.current_index == -1
        assert state.current_track is None
        assert not state.is_playing
        assert state.position == 0
        assert not clock.armed

    @pytest.mark.parametrize("index", [-1, 3])
    def test_out_of_range_is_noop(self, engine, tracks, index):
        engine.set_queue(tracks)
        before = engine.state
        assert engine.remove_from_queue(index) is False
        assert engine.state == before


class TestClearQueue:

    def test_resets_everything_but_modes(self, engine, tracks, clock):
        engine.set_queue(tracks, 1)
        engine.set_repeat_mode(RepeatMode.ONE)
        engine.set_volume(0.5)
        engine.clear_queue()
        state = engine.state
        assert state.queue == ()
        assert state.current_index == -1
        assert not state.is_playing
        assert state.position == 0
        assert state.repeat_mode == RepeatMode.ONE
        assert state.volume == 0.5
        assert not clock.armed


class TestPlaySong:

    def test_single_track_becomes_queue(self, engine, tracks):
        engine.set_queue(tracks)
        song = make_track("solo", 30)
        engine.play_song(song)
        state = engine.state
        assert state.queue == (song,)
        assert state.current_index == 0
        assert state.is_playing

    def test_with_queue_starts_at_track(self, engine, tracks):
        engine.play_song(tracks[2], tracks)
        assert engine.state.current_index == 2

    def test_matches_by_id(self, engine, tracks):
        engine.play_song(make_track("b", 99), tracks)
        assert engine.state.current_index == 1

    def test_unknown_track_falls_back_to_first(self, engine, tracks):
        engine.play_song(make_track("missing"), tracks)
        assert engine.state.current_index == 0

    def test_empty_queue_is_noop(self, engine, tracks):
        assert engine.play_song(tracks[0], []) is False
        assert engine.state.current_track is None


class TestModes:

    def test_toggle_repeat_cycle(self, engine):
        seen = []
        for _ in range(3):
            engine.toggle_repeat()
            seen.append(engine.state.repeat_mode)
        assert seen == [RepeatMode.ALL, RepeatMode.ONE, RepeatMode.OFF]

    def test_set_repeat_mode_accepts_value_string(self, engine):
        assert engine.set_repeat_mode("one") is True
        assert engine.state.repeat_mode == RepeatMode.ONE

    def test_set_repeat_mode_rejects_unknown(self, engine):
        assert engine.set_repeat_mode("sometimes") is False
        assert engine.state.repeat_mode == RepeatMode.OFF

    def test_toggle_shuffle_only_flips_flag(self, engine, tracks):
        engine.set_queue(tracks, 1)
        engine.toggle_shuffle()
        state = engine.state
        assert state.shuffle_enabled
        assert state.queue == tuple(tracks)
        assert state.current_index == 1
        engine.toggle_shuffle()
        assert not engine.state.shuffle_enabled


class TestTick:

    def test_advances_one_second(self, engine, tracks, clock):
        engine.set_queue(tracks)
        clock.fire()
        assert engine.state.position == 1

    def test_repeat_one_restarts_track(self, engine):
        engine.set_queue([make_track("a", 10)])
        engine.set_repeat_mode(RepeatMode.ONE)
        engine.seek(9)
        engine.tick()
        state = engine.state
        assert state.position == 0
        assert state.current_track.id == "a"
        assert state.is_playing

    def test_repeat_all_wraps_from_last(self, engine):
        queue = [make_track("a", 5), make_track("b", 5)]
        engine.set_queue(queue, 1)
        engine.set_repeat_mode(RepeatMode.ALL)
        engine.seek(4)
        engine.tick()
        state = engine.state
        assert state.current_index == 0
        assert state.current_track.id == "a"
        assert state.position == 0
        assert state.is_playing

    def test_moves_to_next_track(self, engine, tracks):
        engine.set_queue(tracks)
        engine.seek(4)
        engine.tick()
        assert engine.state.current_index == 1
        assert engine.state.position == 0
        assert engine.state.is_playing

    def test_end_of_queue_stops(self, engine, bus, clock):
        ended = []
        bus.subscribe(PlayerEvent.QUEUE_ENDED, ended.append)
        track = make_track("a", 5)
        engine.set_queue([track])
        engine.seek(4)
        engine.tick()
        state = engine.state
        assert not state.is_playing
        assert state.position == 0
        assert state.current_track.id == "a"
        assert ended == [track]
        assert not clock.armed

    def test_ignored_while_paused(self, engine, tracks):
        engine.set_queue(tracks)
        engine.pause()
        assert engine.tick() is False
        assert engine.state.position == 0

    def test_ignored_without_track(self, engine):
        assert engine.tick() is False

    def test_zero_length_track_never_arms_clock(self, engine, clock):
        engine.set_queue([make_track("silence", 0)])
        assert engine.state.is_playing
        assert not clock.armed
        assert engine.tick() is False

    def test_plays_whole_queue(self, engine, tracks, clock):
        engine.set_queue(tracks)
        clock.fire(30)
        state = engine.state
        assert not state.is_playing
        assert state.current_index == 2
        assert state.position == 0

    def test_invariants_hold_through_a_session(self, engine, tracks, clock, states):
        engine.set_queue(tracks)
        clock.fire(7)
        engine.toggle_repeat()
        engine.remove_from_queue(0)
        engine.add_to_queue(make_track("d", 3))
        clock.fire(12)
        engine.seek(100)
        engine.previous()
        engine.skip_to_track(2)
        clock.fire(5)
        engine.remove_from_queue(engine.state.current_index)
        engine.clear_queue()
        assert states
        for state in states:
            assert_invariants(state)


class TestTrackEnded:

    def test_applies_policy_immediately(self, engine, tracks):
        engine.set_queue(tracks)
        engine.seek(1)
        assert engine.track_ended() is True
        assert engine.state.current_index == 1

    def test_ignored_when_paused(self, engine, tracks):
        engine.set_queue(tracks)
        engine.pause()
        assert engine.track_ended() is False
        assert engine.state.current_index == 0


class TestSyncPosition:

    def test_clamps_reported_position(self, engine, tracks):
        engine.set_queue(tracks)
        engine.sync_position(3.9)
        assert engine.state.position == 3
        engine.sync_position(42)
        assert engine.state.position == 5

    def test_ignored_without_track(self, engine):
        assert engine.sync_position(3) is False


class TestClock:

    def test_armed_only_while_playing(self, engine, tracks, clock):
        assert not clock.armed
        engine.set_queue(tracks)
        assert clock.armed
        engine.pause()
        assert not clock.armed

    def test_rearmed_on_track_change(self, engine, tracks, clock):
        engine.set_queue(tracks)
        arms = clock.arm_count
        engine.next()
        assert clock.arm_count == arms + 1

    def test_not_rearmed_by_plain_tick(self, engine, tracks, clock):
        engine.set_queue(tracks)
        arms = clock.arm_count
        clock.fire(2)
        assert clock.arm_count == arms

    def test_stale_callback_is_dropped(self, engine, tracks, clock):
        engine.set_queue(tracks)
        stale = clock._callback
        engine.next()
        stale()
        assert engine.state.current_index == 1
        assert engine.state.position == 0

    def test_callback_after_clear_is_dropped(self, engine, tracks, clock):
        engine.set_queue(tracks)
        stale = clock._callback
        engine.clear_queue()
        stale()
        assert engine.state.position == 0
        assert engine.state.current_index == -1

    def test_shutdown_cancels(self, engine, tracks, clock):
        engine.set_queue(tracks)
        stale = clock._callback
        engine.shutdown()
        assert not clock.armed
        stale()
        assert engine.state.position == 0


class TestNotifications:

    def test_one_snapshot_per_change(self, engine, tracks, states):
        engine.set_queue(tracks)
        engine.pause()
        engine.pause()
        assert len(states) == 2
        assert states[-1] is engine.state

    def test_published_snapshots_are_not_mutated_later(self, engine, tracks, states):
        engine.set_queue(tracks)
        first = states[0]
        engine.next()
        assert first.current_index == 0
        assert states[-1].current_index == 1

    def test_unsubscribe(self, engine, tracks, states):
        assert engine.unsubscribe(states.append) is True
        engine.set_queue(tracks)
        assert states == []

    def test_side_events(self, engine, bus, tracks):
        received = {}
        for event in (PlayerEvent.TRACK_CHANGED, PlayerEvent.QUEUE_UPDATED,
                      PlayerEvent.SHUFFLE_TOGGLED, PlayerEvent.REPEAT_MODE_CHANGED,
                      PlayerEvent.PLAYBACK_PROGRESS):
            bus.subscribe(event, lambda payload, event=event: received.setdefault(event, []).append(payload))

        engine.set_queue(tracks)
        engine.tick()
        engine.toggle_shuffle()
        engine.toggle_repeat()

        assert received[PlayerEvent.TRACK_CHANGED] == [tracks[0]]
        assert received[PlayerEvent.QUEUE_UPDATED] == [tuple(tracks)]
        assert received[PlayerEvent.SHUFFLE_TOGGLED] == [True]
        assert received[PlayerEvent.REPEAT_MODE_CHANGED] == [RepeatMode.ALL]
        assert received[PlayerEvent.PLAYBACK_PROGRESS][-1] == {"elapsed": 1, "total": 5, "track_id": "a"}

    def test_failing_subscriber_does_not_break_transition(self, engine, tracks):
        def broken(_state):
            raise RuntimeError("view crashed")

        engine.subscribe(broken)
        assert engine.set_queue(tracks) is True
        assert engine.state.is_playing

    def test_subscriber_may_call_back_into_engine(self, engine, tracks):
        def auto_pause(state):
            if state.current_index == 1 and state.is_playing:
                engine.pause()

        engine.subscribe(auto_pause)
        engine.set_queue(tracks)
        engine.next()
        assert engine.state.current_index == 1
        assert not engine.state.is_playing

    def test_duplicate_entries_announce_the_move(self, engine, bus, tracks):
        changed = []
        bus.subscribe(PlayerEvent.TRACK_CHANGED, changed.append)
        engine.set_queue([tracks[0], tracks[0]])
        engine.next()
        assert changed == [tracks[0], tracks[0]]

    def test_queue_edit_before_current_is_not_a_track_change(self, engine, bus, tracks):
        engine.set_queue(tracks, 2)
        changed = []
        bus.subscribe(PlayerEvent.TRACK_CHANGED, changed.append)
        engine.remove_from_queue(0)
        assert engine.state.current_index == 1
        assert changed == []
