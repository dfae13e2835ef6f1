"""
Data models for the chord engine.

Definitions handed between components are immutable dataclasses so a chord
instance, a progression and the scheduler can share them freely. The only
mutable model is PlayheadState, which belongs to exactly one scheduler.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Optional, Dict, Any, Iterable

from core.constants import NOTE_NAMES, MAX_INTERVAL, BPM_DEFAULT

logger = logging.getLogger(__name__)


class ModifierCategory(Enum):
    """Harmonic role of a modifier, used to decide mutual exclusion."""
    SEVENTH = "seventh"
    EXTENSION = "extension"
    ADDITION = "addition"
    SUSPENSION = "suspension"
    QUALITY = "quality"


class ModifierEffect(Enum):
    """How a modifier transforms the base interval set."""
    ADD_INTERVAL = "add_interval"
    ADD_INTERVALS = "add_intervals"
    REMOVE_INTERVAL = "remove_interval"
    REPLACE = "replace"


class ChordQuality(Enum):
    """Triad and seventh-chord qualities."""
    MAJOR = "major"
    MINOR = "minor"
    DIMINISHED = "diminished"
    AUGMENTED = "augmented"
    MAJOR7 = "maj7"
    MINOR7 = "min7"
    DOMINANT7 = "dom7"
    HALF_DIMINISHED7 = "half-dim7"
    DIMINISHED7 = "dim7"
    MINOR_MAJOR7 = "min-maj7"
    AUGMENTED_MAJOR7 = "aug-maj7"


class HarmonicFunction(Enum):
    """Role of a chord within its key."""
    TONIC = "tonic"
    SUBDOMINANT = "subdominant"
    DOMINANT = "dominant"
    MEDIANT = "mediant"
    BORROWED = "borrowed"


def _check_interval_range(intervals: Iterable[int], owner: str):
    for interval in intervals:
        if not 0 <= interval <= MAX_INTERVAL:
            raise ValueError(f"{owner}: interval must be 0-{MAX_INTERVAL}, got {interval}")


def normalize_intervals(intervals: Iterable[int]) -> Tuple[int, ...]:
    """
    Sort, deduplicate and range-filter an interval list from user input.

    Out-of-range or non-integer values are dropped with a warning rather than
    raising, so malformed input never reaches the playback path.

    Args:
        intervals: Semitone offsets from the chord root

    Returns:
        Sorted tuple of unique intervals within 0..MAX_INTERVAL
    """
    cleaned = set()
    for interval in intervals:
        if isinstance(interval, bool) or not isinstance(interval, int):
            logger.warning(f"Dropping non-integer interval {interval!r}")
            continue
        if not 0 <= interval <= MAX_INTERVAL:
            logger.warning(f"Dropping out-of-range interval {interval}")
            continue
        cleaned.add(interval)
    return tuple(sorted(cleaned))


@dataclass(frozen=True)
class Modifier:
    """
    Harmonic modifier applied to a chord (e.g. "7", "sus4", "add9").

    Attributes:
        label: Unique display label
        category: Harmonic category used for conflict resolution
        effect: How the intervals are applied
        intervals: Semitone offsets added, removed, or used as the new base
    """
    label: str
    category: ModifierCategory
    effect: ModifierEffect
    intervals: Tuple[int, ...]

    def __post_init__(self):
        """Validate modifier."""
        if not self.label:
            raise ValueError("Modifier label is required")
        if not self.intervals:
            raise ValueError(f"Modifier {self.label}: at least one interval required")
        if self.effect in (ModifierEffect.ADD_INTERVAL, ModifierEffect.REMOVE_INTERVAL):
            if len(self.intervals) != 1:
                raise ValueError(f"Modifier {self.label}: {self.effect.value} takes exactly one interval")
        _check_interval_range(self.intervals, f"Modifier {self.label}")

    @property
    def replaces(self) -> bool:
        return self.effect == ModifierEffect.REPLACE


@dataclass(frozen=True)
class ChordSelection:
    """Chord-selection event emitted for keyboard/UI highlighting."""
    root_note: str
    intervals: Tuple[int, ...]
    numeral: str


@dataclass(frozen=True)
class ChordDefinition:
    """
    Chord derived from a key and mode.

    Attributes:
        root_note: Root pitch class name (sharp spelling)
        base_intervals: Sorted, unique semitone offsets (0-23)
        roman_numeral: Scale-degree label, case/suffix encode quality
        harmonic_function: Role within the key (BORROWED for modal interchange)
        quality: Triad or seventh quality
        degree: Scale degree (1-7) relative to the tonic
        group: Emotional grouping for borrowed chords
    """
    root_note: str
    base_intervals: Tuple[int, ...]
    roman_numeral: str
    harmonic_function: HarmonicFunction
    quality: ChordQuality
    degree: int = 1
    group: Optional[str] = None

    def __post_init__(self):
        """Validate chord definition."""
        if self.root_note not in NOTE_NAMES:
            raise ValueError(f"Invalid root note: {self.root_note}")
        if not self.base_intervals:
            raise ValueError("Chord needs at least one interval")
        _check_interval_range(self.base_intervals, f"Chord {self.roman_numeral}")
        if list(self.base_intervals) != sorted(set(self.base_intervals)):
            raise ValueError(f"Chord {self.roman_numeral}: intervals must be sorted and unique")
        if not 1 <= self.degree <= 7:
            raise ValueError(f"Scale degree must be 1-7, got {self.degree}")

    @property
    def is_diatonic(self) -> bool:
        return self.harmonic_function != HarmonicFunction.BORROWED

    def selection(self, intervals: Optional[Tuple[int, ...]] = None) -> ChordSelection:
        """Build the selection event for this chord, optionally with modified intervals."""
        return ChordSelection(
            root_note=self.root_note,
            intervals=tuple(intervals) if intervals is not None else self.base_intervals,
            numeral=self.roman_numeral,
        )


@dataclass(frozen=True)
class ProgressionEntry:
    """
    Chord block placed on the progression timeline.

    Attributes:
        id: Unique entry id
        root_note: Root pitch class name
        intervals: Semitone offsets from the root
        numeral: Roman numeral shown on the block
        position: Start in beats from progression start
        duration: Length in beats (> 0)
    """
    id: str
    root_note: str
    intervals: Tuple[int, ...]
    numeral: str
    position: int
    duration: int

    def __post_init__(self):
        """Validate entry."""
        if not self.id:
            raise ValueError("Entry id is required")
        if self.root_note not in NOTE_NAMES:
            raise ValueError(f"Invalid root note: {self.root_note}")
        if self.position < 0:
            raise ValueError(f"Position must be non-negative, got {self.position}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        _check_interval_range(self.intervals, f"Entry {self.id}")

    @property
    def end(self) -> int:
        return self.position + self.duration

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "root_note": self.root_note,
            "intervals": list(self.intervals),
            "numeral": self.numeral,
            "position": self.position,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressionEntry":
        """Create ProgressionEntry from dictionary."""
        return cls(
            id=data["id"],
            root_note=data["root_note"],
            intervals=tuple(data.get("intervals", ())),
            numeral=data.get("numeral", ""),
            position=data["position"],
            duration=data["duration"],
        )


@dataclass
class PlayheadState:
    """
    Scheduler playhead. Owned and mutated by a single ProgressionScheduler.

    Attributes:
        is_playing: Whether playback is active
        current_index: Index of the sounding entry
        elapsed_within_entry: Beats elapsed inside the current entry
        tempo_bpm: Playback tempo
        loop: Wrap to the first entry at the end
        ticks: Beat ticks since playback started
    """
    is_playing: bool = False
    current_index: int = 0
    elapsed_within_entry: int = 0
    tempo_bpm: float = float(BPM_DEFAULT)
    loop: bool = False
    ticks: int = 0

    def reset(self):
        """Return to idle at the start of the progression."""
        self.is_playing = False
        self.current_index = 0
        self.elapsed_within_entry = 0
        self.ticks = 0


@dataclass(frozen=True)
class ScheduledEvent:
    """Bookkeeping record of a triggered entry playback."""
    entry_id: str
    index: int
    tick: int
    scheduled_time: float
    frequencies: Tuple[float, ...] = field(default_factory=tuple)
