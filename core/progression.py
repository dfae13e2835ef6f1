"""
Chord progression container.

Entries are kept sorted by position (beats from the start). New
chords are appended directly after the last entry.
"""
import logging
import uuid
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from core.constants import DEFAULT_BLOCK_BEATS, normalize_note
from core.models import (
    ChordDefinition,
    ChordSelection,
    ProgressionEntry,
    normalize_intervals,
)

logger = logging.getLogger(__name__)


class Progression:
    """Ordered sequence of ProgressionEntry blocks."""

    def __init__(self, entries: Sequence[ProgressionEntry] = ()):
        self._entries: List[ProgressionEntry] = []
        for entry in entries:
            self.insert(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProgressionEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> ProgressionEntry:
        return self._entries[index]

    @property
    def entries(self) -> Tuple[ProgressionEntry, ...]:
        """Snapshot of entries in position order."""
        return tuple(self._entries)

    @property
    def end(self) -> int:
        """First free position after the last entry."""
        return self._entries[-1].end if self._entries else 0

    @property
    def total_duration(self) -> int:
        """Sum of entry durations in beats."""
        return sum(entry.duration for entry in self._entries)

    def insert(self, entry: ProgressionEntry):
        """Insert an entry, keeping position order (stable for equal positions)."""
        if any(e.id == entry.id for e in self._entries):
            raise ValueError(f"Duplicate entry id: {entry.id}")

        index = len(self._entries)
        while index > 0 and self._entries[index - 1].position > entry.position:
            index -= 1
        self._entries.insert(index, entry)

    def append(self, chord: Union[ChordDefinition, ChordSelection],
               duration: int = DEFAULT_BLOCK_BEATS,
               intervals: Optional[Sequence[int]] = None) -> ProgressionEntry:
        """
        Add a chord right after the last entry.

        Args:
            chord: Chord definition or a selection event (with modified intervals)
            duration: Length in beats
            intervals: Override the chord's intervals

        Returns:
            The new entry
        """
        if isinstance(chord, ChordDefinition):
            root, numeral = chord.root_note, chord.roman_numeral
            source = chord.base_intervals
        else:
            root, numeral = chord.root_note, chord.numeral
            source = chord.intervals

        if duration <= 0:
            logger.warning(f"Invalid block duration {duration}, using {DEFAULT_BLOCK_BEATS}")
            duration = DEFAULT_BLOCK_BEATS

        entry = ProgressionEntry(
            id=uuid.uuid4().hex,
            root_note=normalize_note(root),
            intervals=normalize_intervals(intervals if intervals is not None else source),
            numeral=numeral,
            position=self.end,
            duration=int(duration),
        )
        self._entries.append(entry)
        return entry

    def remove(self, entry_id: str) -> Optional[ProgressionEntry]:
        """Remove an entry by id. Returns the removed entry (None if absent)."""
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return self._entries.pop(index)
        return None

    def clear(self):
        self._entries.clear()

    def index_of(self, entry_id: str) -> int:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return index
        return -1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"entries": [e.to_dict() for e in self._entries]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Progression":
        """Create Progression from dictionary."""
        return cls(ProgressionEntry.from_dict(e) for e in data.get("entries", []))
