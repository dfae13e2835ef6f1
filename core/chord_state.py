"""
Modifier state for a single chord card.

A chord instance carries locked modifiers (persist across plays until
unlocked with a long-press) and at most one transient modifier (set by a
tap, cleared by tapping it again or when a lock makes it redundant or
conflicting). Every interaction recomputes the interval set and plays it.
"""
import logging
from typing import Callable, FrozenSet, Hashable, Optional, Sequence, Set, Tuple

from audio.playback import SafePlayback
from core.constants import LONG_PRESS_MS, normalize_note
from core.gestures import GestureClassifier
from core.models import ChordDefinition, ChordSelection, Modifier
from core.modifiers import CHORD_MODIFIERS, calculate_intervals, resolve_conflicts
from core.settings import AudioSettings
from core.theory import get_chord_frequencies
from core.timers import TimerService

logger = logging.getLogger(__name__)

ChordSelectedCallback = Callable[[ChordSelection], None]


class ChordModifierEngine:
    """
    Locked/transient modifier state machine for one chord.

    Args:
        chord: Chord the modifiers apply to
        playback: Playback capability (failures are absorbed)
        key: Tonic of the current key
        mode: Current mode
        on_chord_selected: Receives a ChordSelection on every play
        audio: Voicing/gain settings
        catalog: Modifier catalog
    """

    def __init__(self, chord: ChordDefinition,
                 playback: SafePlayback,
                 key: str = "C",
                 mode: str = "major",
                 on_chord_selected: Optional[ChordSelectedCallback] = None,
                 audio: Optional[AudioSettings] = None,
                 catalog: Sequence[Modifier] = CHORD_MODIFIERS):
        self.chord = chord
        self.playback = playback
        self.key = normalize_note(key)
        self.mode = mode
        self.on_chord_selected = on_chord_selected
        self.audio = audio or AudioSettings()
        self.catalog = tuple(catalog)
        self._labels = {m.label for m in self.catalog}

        self._locked: Set[str] = set()
        self._transient: Optional[str] = None
        self._current: Tuple[int, ...] = chord.base_intervals
        self._gestures: Optional[GestureClassifier] = None

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def locked_modifiers(self) -> FrozenSet[str]:
        return frozenset(self._locked)

    @property
    def transient_modifier(self) -> Optional[str]:
        return self._transient

    @property
    def active_modifiers(self) -> FrozenSet[str]:
        """Locked modifiers plus the transient one, if any."""
        if self._transient is None:
            return frozenset(self._locked)
        return frozenset(self._locked | {self._transient})

    @property
    def current_intervals(self) -> Tuple[int, ...]:
        return self._current

    def is_locked(self, label: str) -> bool:
        return label in self._locked

    def is_active(self, label: str) -> bool:
        return label in self.active_modifiers

    # ------------------------------------------------------------------
    # Interval computation
    # ------------------------------------------------------------------

    def calculate_intervals(self, active: Optional[Sequence[str]] = None) -> Tuple[int, ...]:
        """Final intervals for an active set (defaults to the current one)."""
        if active is None:
            active = self.active_modifiers
        return calculate_intervals(self.chord.base_intervals, active, self.catalog)

    # ------------------------------------------------------------------
    # Gesture handlers
    # ------------------------------------------------------------------

    def on_tap(self, label: str):
        """
        Tap on a modifier button.

        - Tapping the transient modifier clears it.
        - Tapping a locked modifier replays the current combination.
        - Anything else becomes the transient modifier.
        """
        if not self._known(label):
            return

        if label == self._transient:
            self._transient = None
            self._recompute_and_play()
            return

        if label in self._locked:
            self._recompute_and_play()
            return

        self._transient = label
        self._recompute_and_play()

    def on_long_press(self, label: str):
        """
        Long-press on a modifier button: toggle its lock.

        Locking evicts conflicting locked modifiers first, then drops the
        transient modifier if the new lock makes it redundant or conflicting.
        """
        if not self._known(label):
            return

        if label in self._locked:
            self._locked.discard(label)
            logger.debug(f"{self.chord.roman_numeral}: unlocked {label}")
        else:
            evicted = resolve_conflicts(label, self._locked)
            for other in evicted:
                self._locked.discard(other)
            self._locked.add(label)
            logger.debug(f"{self.chord.roman_numeral}: locked {label}, evicted {evicted}")

        if self._transient is not None:
            if self._transient in self._locked:
                self._transient = None
            elif resolve_conflicts(self._transient, self._locked):
                self._transient = None

        self._recompute_and_play()

    def play(self):
        """Replay the current interval set (chord header click)."""
        self._play(self._current)

    # ------------------------------------------------------------------
    # Context changes
    # ------------------------------------------------------------------

    def update_context(self, chord: Optional[ChordDefinition] = None,
                       key: Optional[str] = None,
                       mode: Optional[str] = None):
        """
        Apply an external key/mode/chord change.

        Any change to the root note, key, mode or base intervals clears all
        modifier state, resets the intervals to the new base and emits a
        selection event for it. Nothing is played.
        """
        new_chord = chord if chord is not None else self.chord
        new_key = normalize_note(key) if key is not None else self.key
        new_mode = mode if mode is not None else self.mode

        changed = (
            new_chord.root_note != self.chord.root_note
            or new_chord.base_intervals != self.chord.base_intervals
            or new_key != self.key
            or new_mode != self.mode
        )

        self.chord = new_chord
        self.key = new_key
        self.mode = new_mode

        if changed:
            self.reset()
            if self.on_chord_selected is not None:
                self.on_chord_selected(self.chord.selection(self._current))

    def reset(self):
        """Clear all modifiers and return to the base chord."""
        self._locked.clear()
        self._transient = None
        self._current = self.chord.base_intervals

    # ------------------------------------------------------------------
    # Gesture wiring
    # ------------------------------------------------------------------

    def bind_gestures(self, timers: TimerService,
                      long_press_ms: int = LONG_PRESS_MS) -> GestureClassifier:
        """Create the gesture classifier feeding this engine's tap/long-press handlers."""
        if self._gestures is not None:
            self._gestures.teardown()
        self._gestures = GestureClassifier(
            timers,
            on_tap=self.on_tap,
            on_long_press=self.on_long_press,
            long_press_ms=long_press_ms,
        )
        return self._gestures

    def pointer_down(self, label: str, pointer_id: Hashable = 0):
        if self._gestures is not None:
            self._gestures.pointer_down(label, pointer_id)

    def pointer_up(self, pointer_id: Hashable = 0):
        if self._gestures is not None:
            self._gestures.pointer_up(pointer_id)

    def pointer_leave(self, pointer_id: Hashable = 0):
        if self._gestures is not None:
            self._gestures.pointer_leave(pointer_id)

    def teardown(self):
        """Unmount: cancel any pending gesture timer."""
        if self._gestures is not None:
            self._gestures.teardown()
            self._gestures = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _known(self, label: str) -> bool:
        if label in self._labels:
            return True
        logger.warning(f"Unknown modifier {label!r} ignored")
        return False

    def _recompute_and_play(self):
        self._current = self.calculate_intervals()
        self._play(self._current)

    def _play(self, intervals: Tuple[int, ...]):
        frequencies = get_chord_frequencies(
            self.chord.root_note, intervals, self.audio.base_octave
        )
        self.playback.play_chord(
            frequencies, self.audio.chord_duration, self.audio.chord_gain
        )

        if self.on_chord_selected is not None:
            self.on_chord_selected(self.chord.selection(intervals))
