"""
Chord modifier catalog and conflict rules.

Modifiers are tagged with a harmonic category. Adding a modifier evicts
every active modifier whose category appears in the conflict list of the
new modifier's category.
"""
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from core.models import Modifier, ModifierCategory, ModifierEffect

Category = ModifierCategory
Effect = ModifierEffect

# Intervals are in semitones from root (0=root, 12=octave)
CHORD_MODIFIERS: Tuple[Modifier, ...] = (
    # Seventh chords, suspended, diminished
    Modifier("7", Category.SEVENTH, Effect.ADD_INTERVAL, (10,)),
    Modifier("maj7", Category.SEVENTH, Effect.ADD_INTERVAL, (11,)),
    Modifier("6", Category.SEVENTH, Effect.ADD_INTERVAL, (9,)),
    Modifier("sus2", Category.SUSPENSION, Effect.REPLACE, (0, 2, 7)),
    Modifier("sus4", Category.SUSPENSION, Effect.REPLACE, (0, 5, 7)),
    Modifier("dim", Category.QUALITY, Effect.REPLACE, (0, 3, 6)),

    # Extended chords and augmented
    Modifier("9", Category.EXTENSION, Effect.ADD_INTERVALS, (10, 14)),
    Modifier("maj9", Category.EXTENSION, Effect.ADD_INTERVALS, (11, 14)),
    Modifier("11", Category.EXTENSION, Effect.ADD_INTERVALS, (10, 14, 17)),
    Modifier("13", Category.EXTENSION, Effect.ADD_INTERVALS, (10, 14, 21)),
    Modifier("add9", Category.ADDITION, Effect.ADD_INTERVAL, (14,)),
    Modifier("aug", Category.QUALITY, Effect.REPLACE, (0, 4, 8)),
)

# When adding a modifier of category X, remove all active modifiers of these categories
DECLARED_CONFLICTS: Dict[ModifierCategory, FrozenSet[ModifierCategory]] = {
    # 7/maj7/6 are mutually exclusive; extensions already carry their own 7th
    Category.SEVENTH: frozenset({Category.SEVENTH, Category.EXTENSION}),
    # Extensions are complete voicings
    Category.EXTENSION: frozenset({
        Category.EXTENSION, Category.SEVENTH, Category.ADDITION, Category.QUALITY,
    }),
    # add9 duplicates the 9th every extension includes
    Category.ADDITION: frozenset({Category.ADDITION, Category.EXTENSION}),
    # sus2/sus4 and dim/aug both redefine the 3rd
    Category.SUSPENSION: frozenset({Category.SUSPENSION, Category.QUALITY}),
    Category.QUALITY: frozenset({
        Category.QUALITY, Category.SUSPENSION, Category.EXTENSION, Category.ADDITION,
    }),
}


def _symmetric(table: Dict[ModifierCategory, FrozenSet[ModifierCategory]]):
    """If A evicts B, B must evict A, whichever one is locked second."""
    closed = {category: set(conflicts) for category, conflicts in table.items()}
    for category, conflicts in table.items():
        for other in conflicts:
            closed.setdefault(other, set()).add(category)
    return {category: frozenset(conflicts) for category, conflicts in closed.items()}


# Effective table (addition also evicts quality, mirroring quality -> addition)
CATEGORY_CONFLICTS = _symmetric(DECLARED_CONFLICTS)

_BY_LABEL: Dict[str, Modifier] = {m.label: m for m in CHORD_MODIFIERS}


def get_modifier(label: str) -> Optional[Modifier]:
    """Look up a catalog modifier by label (None if unknown)."""
    return _BY_LABEL.get(label)


def modifier_labels() -> List[str]:
    """Labels in catalog (button grid) order."""
    return [m.label for m in CHORD_MODIFIERS]


def category_of(label: str) -> Optional[ModifierCategory]:
    modifier = _BY_LABEL.get(label)
    return modifier.category if modifier else None


def resolve_conflicts(candidate: str, active: Iterable[str]) -> List[str]:
    """
    Get all active modifiers that must be removed before adding candidate.

    Unknown labels (candidate or active) never conflict.

    Args:
        candidate: Label of the modifier being added
        active: Labels currently active

    Returns:
        Active labels to evict, in catalog order
    """
    category = category_of(candidate)
    if category is None:
        return []

    conflicting = CATEGORY_CONFLICTS[category]
    active_set = set(active)

    return [
        m.label for m in CHORD_MODIFIERS
        if m.label in active_set and m.category in conflicting
    ]


def calculate_intervals(base_intervals: Sequence[int],
                        active: Iterable[str],
                        catalog: Sequence[Modifier] = CHORD_MODIFIERS) -> Tuple[int, ...]:
    """
    Compute final chord intervals from a base set and active modifiers.

    Replacement modifiers swap out the base set first (catalog order, last
    one wins), then additive and removal modifiers apply on top.

    Args:
        base_intervals: Chord intervals before modifiers
        active: Active modifier labels (unknown labels are ignored)
        catalog: Modifier catalog to resolve labels against

    Returns:
        Sorted tuple of unique intervals
    """
    active_set = set(active)
    selected = [m for m in catalog if m.label in active_set]

    intervals = list(base_intervals)
    for modifier in selected:
        if modifier.replaces:
            intervals = list(modifier.intervals)

    for modifier in selected:
        if modifier.effect in (Effect.ADD_INTERVAL, Effect.ADD_INTERVALS):
            for interval in modifier.intervals:
                if interval not in intervals:
                    intervals.append(interval)
        elif modifier.effect == Effect.REMOVE_INTERVAL:
            removed = modifier.intervals[0]
            intervals = [i for i in intervals if i != removed]

    return tuple(sorted(set(intervals)))
