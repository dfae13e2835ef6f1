"""Tests for core/chord_state.py: locked/transient modifier semantics."""
import random

import pytest

from audio.playback import SafePlayback
from conftest import RecordingPlayback
from core.chord_state import ChordModifierEngine
from core.modifiers import CATEGORY_CONFLICTS, category_of, get_modifier, modifier_labels
from core.settings import AudioSettings
from core.theory import get_chord_frequencies, get_scale_chords


@pytest.fixture
def c_major():
    return get_scale_chords("C", "major")[0]


@pytest.fixture
def selections():
    return []


@pytest.fixture
def engine(c_major, playback, selections):
    return ChordModifierEngine(c_major, playback, on_chord_selected=selections.append)


class TestTap:
    def test_tap_sets_transient_and_plays(self, engine, device):
        engine.on_tap("7")
        assert engine.transient_modifier == "7"
        assert engine.locked_modifiers == frozenset()
        assert engine.current_intervals == (0, 4, 7, 10)
        assert list(device.chords[-1]) == pytest.approx(get_chord_frequencies("C", (0, 4, 7, 10)))

    def test_tap_transient_again_clears_it(self, engine, device):
        engine.on_tap("7")
        engine.on_tap("7")
        assert engine.transient_modifier is None
        assert engine.current_intervals == (0, 4, 7)
        assert len(device.chords) == 2

    def test_tap_other_replaces_transient(self, engine):
        engine.on_tap("7")
        engine.on_tap("sus4")
        assert engine.transient_modifier == "sus4"
        assert engine.current_intervals == (0, 5, 7)

    def test_tap_locked_replays_without_change(self, engine, device):
        engine.on_long_press("maj7")
        engine.on_tap("maj7")
        assert engine.locked_modifiers == {"maj7"}
        assert engine.transient_modifier is None
        assert device.chords[-1] == device.chords[-2]

    def test_transient_combines_with_locked(self, engine):
        engine.on_long_press("sus4")
        engine.on_tap("7")
        assert engine.active_modifiers == {"sus4", "7"}
        assert engine.current_intervals == (0, 5, 7, 10)

    def test_unknown_label_ignored(self, engine, device):
        engine.on_tap("flat5")
        engine.on_long_press("flat5")
        assert engine.active_modifiers == frozenset()
        assert device.calls == []


class TestLongPress:
    def test_lock_and_unlock(self, engine):
        engine.on_long_press("7")
        assert engine.is_locked("7")
        assert engine.current_intervals == (0, 4, 7, 10)
        engine.on_long_press("7")
        assert not engine.is_locked("7")
        assert engine.current_intervals == (0, 4, 7)

    def test_suspensions_swap(self, engine):
        engine.on_long_press("sus2")
        engine.on_long_press("sus4")
        assert engine.locked_modifiers == {"sus4"}
        assert engine.current_intervals == (0, 5, 7)

    def test_extension_evicts_seventh(self, engine):
        engine.on_long_press("7")
        engine.on_long_press("9")
        assert engine.locked_modifiers == {"9"}
        assert engine.current_intervals == (0, 4, 7, 10, 14)

    def test_locking_transient_moves_it(self, engine):
        engine.on_tap("7")
        engine.on_long_press("7")
        assert engine.transient_modifier is None
        assert engine.locked_modifiers == {"7"}

    def test_conflicting_transient_cleared(self, engine):
        engine.on_tap("7")
        engine.on_long_press("9")
        assert engine.transient_modifier is None
        assert engine.locked_modifiers == {"9"}

    def test_compatible_transient_kept(self, engine):
        engine.on_tap("add9")
        engine.on_long_press("7")
        assert engine.transient_modifier == "add9"
        assert engine.current_intervals == (0, 4, 7, 10, 14)

    def test_locked_set_never_conflicts(self, engine):
        rng = random.Random(5)
        labels = modifier_labels()
        for _ in range(500):
            label = rng.choice(labels)
            if rng.random() < 0.5:
                engine.on_tap(label)
            else:
                engine.on_long_press(label)

            locked = sorted(engine.locked_modifiers)
            for a in locked:
                for b in locked:
                    if a != b:
                        assert category_of(b) not in CATEGORY_CONFLICTS[category_of(a)]
            assert sum(get_modifier(name).replaces for name in locked) <= 1
            assert engine.transient_modifier not in engine.locked_modifiers
            assert engine.current_intervals == engine.calculate_intervals()


class TestPlaybackAndEvents:
    def test_selection_event_per_interaction(self, engine, selections):
        engine.on_tap("7")
        engine.on_long_press("sus4")
        assert [s.intervals for s in selections] == [(0, 4, 7, 10), (0, 5, 7, 10)]
        assert selections[0].root_note == "C"
        assert selections[0].numeral == "I"

    def test_play_replays_current(self, engine, device, selections):
        engine.on_long_press("maj7")
        engine.play()
        assert device.chords[-1] == device.chords[-2]
        assert selections[-1].intervals == (0, 4, 7, 11)

    def test_audio_settings_used(self, c_major, playback, device):
        audio = AudioSettings(chord_duration=1.5, chord_gain=0.5, base_octave=3)
        engine = ChordModifierEngine(c_major, playback, audio=audio)
        engine.play()
        kind, freqs, duration, gain = device.calls[0]
        assert duration == 1.5
        assert gain == pytest.approx(0.5)
        assert freqs[0] == pytest.approx(130.81, abs=0.01)

    def test_failing_device_still_updates_state(self, c_major, selections):
        engine = ChordModifierEngine(
            c_major, SafePlayback(RecordingPlayback(fail=True)),
            on_chord_selected=selections.append,
        )
        engine.on_long_press("7")
        assert engine.locked_modifiers == {"7"}
        assert engine.current_intervals == (0, 4, 7, 10)
        assert len(selections) == 1

    def test_unready_device_is_silent(self, c_major):
        device = RecordingPlayback(ready=False)
        engine = ChordModifierEngine(c_major, SafePlayback(device))
        engine.on_tap("sus2")
        assert engine.current_intervals == (0, 2, 7)
        assert device.calls == []


class TestContext:
    def test_key_change_resets(self, engine):
        engine.on_long_press("7")
        engine.on_tap("add9")
        engine.update_context(chord=get_scale_chords("D", "major")[0], key="D")
        assert engine.active_modifiers == frozenset()
        assert engine.current_intervals == (0, 4, 7)
        assert engine.chord.root_note == "D"

    def test_context_change_reports_new_base_without_playing(self, engine, device, selections):
        engine.on_long_press("7")
        calls = len(device.calls)
        engine.update_context(chord=get_scale_chords("D", "major")[0], key="D")

        assert len(device.calls) == calls
        assert selections[-1].root_note == "D"
        assert selections[-1].intervals == (0, 4, 7)
        assert selections[-1].numeral == "I"

    def test_unchanged_context_emits_nothing(self, engine, c_major, selections):
        engine.on_long_press("7")
        engine.update_context(chord=c_major, key="C", mode="major")
        assert len(selections) == 1

    def test_mode_change_resets(self, engine):
        engine.on_long_press("7")
        engine.update_context(mode="minor")
        assert engine.locked_modifiers == frozenset()

    def test_same_context_keeps_state(self, engine, c_major):
        engine.on_long_press("7")
        engine.update_context(chord=c_major, key="C", mode="major")
        assert engine.locked_modifiers == {"7"}

    def test_flat_key_spelling_is_same_context(self, c_major, playback):
        engine = ChordModifierEngine(c_major, playback, key="C#")
        engine.on_long_press("7")
        engine.update_context(key="Db")
        assert engine.locked_modifiers == {"7"}

    def test_reset(self, engine):
        engine.on_tap("7")
        engine.reset()
        assert engine.transient_modifier is None
        assert engine.current_intervals == (0, 4, 7)


class TestGestureWiring:
    def test_quick_press_is_tap(self, engine, timers):
        engine.bind_gestures(timers)
        engine.pointer_down("7")
        timers.advance(0.1)
        engine.pointer_up()
        assert engine.transient_modifier == "7"

    def test_hold_locks(self, engine, timers):
        engine.bind_gestures(timers)
        engine.pointer_down("maj7")
        timers.advance(0.4)
        assert engine.is_locked("maj7")
        engine.pointer_up()
        assert engine.transient_modifier is None

    def test_teardown_cancels_pending_press(self, engine, timers, device):
        engine.bind_gestures(timers)
        engine.pointer_down("7")
        engine.teardown()
        timers.advance(1.0)
        assert timers.pending == 0
        assert engine.locked_modifiers == frozenset()
        assert device.calls == []
