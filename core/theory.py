"""
Harmonic scale engine.

Derives diatonic and borrowed chords for a key and mode, roman-numeral and
scale-degree labels, and interval to frequency conversion.
"""
from typing import Dict, List, Sequence, Tuple

import numpy as np

from core.constants import (
    DEFAULT_BASE_OCTAVE,
    MAJOR_DEGREES,
    MODES,
    NOTE_NAMES,
    REFERENCE_FREQUENCY,
    REFERENCE_OCTAVE,
    REFERENCE_PITCH_CLASS,
    ROMAN_NUMERALS,
    note_index,
)
from core.models import ChordDefinition, ChordQuality, HarmonicFunction

Q = ChordQuality

QUALITY_INTERVALS: Dict[ChordQuality, Tuple[int, ...]] = {
    Q.MAJOR: (0, 4, 7),
    Q.MINOR: (0, 3, 7),
    Q.DIMINISHED: (0, 3, 6),
    Q.AUGMENTED: (0, 4, 8),
    Q.MAJOR7: (0, 4, 7, 11),
    Q.MINOR7: (0, 3, 7, 10),
    Q.DOMINANT7: (0, 4, 7, 10),
    Q.HALF_DIMINISHED7: (0, 3, 6, 10),
    Q.DIMINISHED7: (0, 3, 6, 9),
    Q.MINOR_MAJOR7: (0, 3, 7, 11),
    Q.AUGMENTED_MAJOR7: (0, 4, 8, 11),
}

_QUALITY_BY_INTERVALS = {v: k for k, v in QUALITY_INTERVALS.items()}

# Numeral case and suffix per quality: (uppercase, suffix)
_NUMERAL_STYLE: Dict[ChordQuality, Tuple[bool, str]] = {
    Q.MAJOR: (True, ""),
    Q.MINOR: (False, ""),
    Q.DIMINISHED: (False, "°"),
    Q.AUGMENTED: (True, "+"),
    Q.MAJOR7: (True, "maj7"),
    Q.MINOR7: (False, "7"),
    Q.DOMINANT7: (True, "7"),
    Q.HALF_DIMINISHED7: (False, "ø7"),
    Q.DIMINISHED7: (False, "°7"),
    Q.MINOR_MAJOR7: (False, "maj7"),
    Q.AUGMENTED_MAJOR7: (True, "+maj7"),
}

# Function is fixed by scale position, independent of mode
DEGREE_FUNCTIONS: Dict[int, HarmonicFunction] = {
    1: HarmonicFunction.TONIC,
    2: HarmonicFunction.SUBDOMINANT,
    3: HarmonicFunction.MEDIANT,
    4: HarmonicFunction.SUBDOMINANT,
    5: HarmonicFunction.DOMINANT,
    6: HarmonicFunction.TONIC,
    7: HarmonicFunction.DOMINANT,
}


def _stack_thirds(scale: Sequence[int], degree: int, size: int) -> Tuple[int, ...]:
    """Intervals of the chord built on degree (0-6) by stacking scale thirds."""
    root = scale[degree]
    intervals = []
    for step in range(0, size * 2, 2):
        position = degree + step
        pitch = scale[position % 7] + 12 * (position // 7)
        intervals.append(pitch - root)
    return tuple(intervals)


def _build_mode_table(scale: Sequence[int]):
    table = []
    for degree in range(7):
        triad = _QUALITY_BY_INTERVALS[_stack_thirds(scale, degree, 3)]
        seventh = _QUALITY_BY_INTERVALS[_stack_thirds(scale, degree, 4)]
        table.append((scale[degree], triad, seventh))
    return tuple(table)


# (root offset, triad quality, seventh quality) per degree, per mode
MODE_CHORD_TABLES = {name: _build_mode_table(scale) for name, scale in MODES.items()}

# Modal interchange from the parallel mode: (numeral, degree, root offset, quality, group)
BORROWED_CHORDS = {
    "major": (
        ("iv", 4, 5, Q.MINOR, "darkening"),
        ("bIII", 3, 3, Q.MAJOR, "darkening"),
        ("bVI", 6, 8, Q.MAJOR, "brightening"),
        ("bVII", 7, 10, Q.MAJOR, "brightening"),
    ),
    # Roots on the parallel major scale, major quality
    "minor": (
        ("IV", 4, 5, Q.MAJOR, "brightening"),
        ("VI", 6, 9, Q.MAJOR, "brightening"),
        ("III", 3, 4, Q.MAJOR, "brightening"),
        ("VII", 7, 11, Q.MAJOR, "resolving"),
    ),
}

BORROWED_GROUPS = ("darkening", "brightening", "resolving")


def get_mode_names() -> List[str]:
    return list(MODES.keys())


def _mode_scale(mode: str) -> List[int]:
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}. Available modes: {list(MODES.keys())}")
    return MODES[mode]


def roman_numeral(degree: int, quality: ChordQuality) -> str:
    """
    Format the roman numeral for a scale degree (1-7) and quality.

    Example:
        >>> roman_numeral(7, ChordQuality.DIMINISHED)
        'vii°'
    """
    upper, suffix = _NUMERAL_STYLE[quality]
    base = ROMAN_NUMERALS[degree - 1]
    return (base if upper else base.lower()) + suffix


def get_scale_notes(key: str, mode: str) -> List[str]:
    """Note names of the scale starting at key."""
    tonic = note_index(key)
    return [NOTE_NAMES[(tonic + interval) % 12] for interval in _mode_scale(mode)]


def get_scale_chords(key: str, mode: str, sevenths: bool = False) -> List[ChordDefinition]:
    """
    Get the seven diatonic chords of a key in scale-degree order.

    Args:
        key: Tonic note name ("C", "F#", "Bb")
        mode: Mode name from MODES
        sevenths: Build seventh chords instead of triads

    Returns:
        Seven ChordDefinitions, degree 1 first

    Raises:
        ValueError: If key or mode is unknown

    Example:
        >>> [c.roman_numeral for c in get_scale_chords("C", "major")]
        ['I', 'ii', 'iii', 'IV', 'V', 'vi', 'vii°']
    """
    _mode_scale(mode)
    tonic = note_index(key)

    chords = []
    for index, (offset, triad, seventh) in enumerate(MODE_CHORD_TABLES[mode]):
        degree = index + 1
        quality = seventh if sevenths else triad
        chords.append(ChordDefinition(
            root_note=NOTE_NAMES[(tonic + offset) % 12],
            base_intervals=QUALITY_INTERVALS[quality],
            roman_numeral=roman_numeral(degree, quality),
            harmonic_function=DEGREE_FUNCTIONS[degree],
            quality=quality,
            degree=degree,
        ))
    return chords


def get_borrowed_chords(key: str, mode: str) -> List[ChordDefinition]:
    """
    Get the modal-interchange chords for a key.

    Looked up from a fixed per-mode table; modes without a table have none.

    Args:
        key: Tonic note name
        mode: Mode name from MODES

    Returns:
        ChordDefinitions tagged BORROWED with their emotional group
    """
    _mode_scale(mode)
    tonic = note_index(key)

    return [
        ChordDefinition(
            root_note=NOTE_NAMES[(tonic + offset) % 12],
            base_intervals=QUALITY_INTERVALS[quality],
            roman_numeral=numeral,
            harmonic_function=HarmonicFunction.BORROWED,
            quality=quality,
            degree=degree,
            group=group,
        )
        for numeral, degree, offset, quality, group in BORROWED_CHORDS.get(mode, ())
    ]


def group_by_function(chords: Sequence[ChordDefinition]) -> Dict[HarmonicFunction, List[ChordDefinition]]:
    """Group diatonic chords by harmonic function, keeping degree order."""
    groups: Dict[HarmonicFunction, List[ChordDefinition]] = {
        HarmonicFunction.TONIC: [],
        HarmonicFunction.SUBDOMINANT: [],
        HarmonicFunction.DOMINANT: [],
        HarmonicFunction.MEDIANT: [],
    }
    for chord in chords:
        groups.setdefault(chord.harmonic_function, []).append(chord)
    return groups


def group_borrowed(chords: Sequence[ChordDefinition]) -> Dict[str, List[ChordDefinition]]:
    """Group borrowed chords by emotional quality; empty groups are omitted."""
    groups: Dict[str, List[ChordDefinition]] = {}
    for name in BORROWED_GROUPS:
        members = [c for c in chords if c.group == name]
        if members:
            groups[name] = members
    return groups


def find_chord(key: str, mode: str, numeral: str) -> ChordDefinition:
    """
    Look up a diatonic (triad or seventh) or borrowed chord by numeral.

    Raises:
        ValueError: If no chord in the key carries that numeral
    """
    candidates = (get_scale_chords(key, mode)
                  + get_scale_chords(key, mode, sevenths=True)
                  + get_borrowed_chords(key, mode))
    for chord in candidates:
        if chord.roman_numeral == numeral:
            return chord
    raise ValueError(f"No chord {numeral!r} in {key} {mode}")


def get_chord_frequencies(root_note: str,
                          intervals: Sequence[int],
                          base_octave: int = DEFAULT_BASE_OCTAVE) -> List[float]:
    """
    Convert chord intervals to frequencies in Hz.

    Intervals that run past B carry into the next octave. The output order
    follows the order of intervals.

    Args:
        root_note: Chord root name
        intervals: Semitone offsets from the root
        base_octave: Octave of the root (scientific pitch, C4 = middle C)

    Returns:
        Frequencies in Hz

    Example:
        >>> [round(f, 2) for f in get_chord_frequencies("C", [0, 4, 7])]
        [261.63, 329.63, 392.0]
    """
    if len(intervals) == 0:
        return []

    offsets = note_index(root_note) + np.asarray(intervals, dtype=np.int64)
    octave_carry = np.floor_divide(offsets, 12)
    pitch_class = np.mod(offsets, 12)

    absolute_step = (base_octave + octave_carry) * 12 + pitch_class
    reference_step = REFERENCE_OCTAVE * 12 + REFERENCE_PITCH_CLASS

    frequencies = REFERENCE_FREQUENCY * np.power(2.0, (absolute_step - reference_step) / 12.0)
    return [float(f) for f in frequencies]


def _accidental(semitones: int) -> str:
    if semitones < 0:
        return "b" * -semitones
    return "#" * semitones


def get_scale_degree_label(chromatic_position: int, key: str, mode: str) -> str:
    """
    Scale-degree label for a chromatic pitch class, relative to key and mode.

    Scale tones are numbered by their degree in the mode and spelled against
    the major scale ("b3" in minor, "#4" in lydian). Chromatic tones that
    match a major-scale degree get the plain number, the rest are written as
    a flattened degree.

    Example:
        >>> get_scale_degree_label(3, "C", "minor")
        'b3'
    """
    scale = _mode_scale(mode)
    relative = (chromatic_position - note_index(key)) % 12

    if relative in scale:
        index = scale.index(relative)
        return _accidental(relative - MAJOR_DEGREES[index]) + str(index + 1)

    if relative in MAJOR_DEGREES:
        return str(MAJOR_DEGREES.index(relative) + 1)

    # Every non-major pitch class sits a semitone below a major degree
    index = MAJOR_DEGREES.index(relative + 1)
    return "b" + str(index + 1)
