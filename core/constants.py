"""
Musical constants and utilities.

Note names, mode tables, tempo bounds, reference pitch, etc.
"""
import math

# Chromatic pitch class names (sharp spelling)
NOTE_NAMES = [
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"
]

# Flat spellings accepted on input, normalized to NOTE_NAMES
ENHARMONIC_FLATS = {
    "DB": "C#",
    "EB": "D#",
    "FB": "E",
    "GB": "F#",
    "AB": "G#",
    "BB": "A#",
    "CB": "B",
    "E#": "F",
    "B#": "C",
}

# Seven-note modes (semitone intervals from tonic)
MODES = {
    "major": [0, 2, 4, 5, 7, 9, 11],
    "minor": [0, 2, 3, 5, 7, 8, 10],
    "harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
    "melodic_minor": [0, 2, 3, 5, 7, 9, 11],
    "dorian": [0, 2, 3, 5, 7, 9, 10],
    "phrygian": [0, 1, 3, 5, 7, 8, 10],
    "lydian": [0, 2, 4, 6, 7, 9, 11],
    "mixolydian": [0, 2, 4, 5, 7, 9, 10],
    "locrian": [0, 1, 3, 5, 6, 8, 10],
}

# Scale-degree labels are spelled against the major scale
MAJOR_DEGREES = MODES["major"]

ROMAN_NUMERALS = ["I", "II", "III", "IV", "V", "VI", "VII"]

# Standard BPM ranges
BPM_MIN = 20
BPM_MAX = 300
BPM_DEFAULT = 120

# Progression timing unit: one beat (quarter note) per duration step
DEFAULT_BLOCK_BEATS = 4

# Interaction
LONG_PRESS_MS = 400

# Pitch reference: A4 = 440 Hz
REFERENCE_FREQUENCY = 440.0
REFERENCE_OCTAVE = 4
REFERENCE_PITCH_CLASS = 9
DEFAULT_BASE_OCTAVE = 4

# Chord intervals are semitone offsets within two octaves
MAX_INTERVAL = 23

# Playback defaults
DEFAULT_CHORD_DURATION = 0.8  # seconds
DEFAULT_NOTE_DURATION = 0.3  # seconds
CHORD_GAIN = 0.6
NOTE_GAIN = 0.8


def note_index(note_name: str) -> int:
    """
    Convert a note name to its chromatic pitch class.

    Args:
        note_name: Note name without octave (e.g., "C", "F#", "Bb")

    Returns:
        Pitch class (0-11)

    Raises:
        ValueError: If note name is invalid

    Example:
        >>> note_index("C")
        0
        >>> note_index("Bb")
        10
    """
    name = (note_name or "").strip()
    if not name:
        raise ValueError("Note name is empty")

    name = name.upper()
    name = ENHARMONIC_FLATS.get(name, name)

    if name not in NOTE_NAMES:
        raise ValueError(f"Invalid note name: {note_name}")

    return NOTE_NAMES.index(name)


def normalize_note(note_name: str) -> str:
    """Return the sharp spelling used throughout ("Db" -> "C#")."""
    return NOTE_NAMES[note_index(note_name)]


def midi_note_to_name(note_number: int) -> str:
    """
    Convert MIDI note number to name with octave.

    Args:
        note_number: MIDI note (0-127)

    Returns:
        Note name (e.g., "C4", "A#3")

    Example:
        >>> midi_note_to_name(60)
        'C4'
    """
    if not 0 <= note_number <= 127:
        raise ValueError(f"MIDI note must be 0-127, got {note_number}")
    octave = (note_number // 12) - 1
    return f"{NOTE_NAMES[note_number % 12]}{octave}"


def frequency_to_midi(frequency: float) -> int:
    """
    Convert frequency in Hz to nearest MIDI note number.

    Example:
        >>> frequency_to_midi(440.0)  # A4
        69
    """
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")

    # Formula: note = 69 + 12 * log2(frequency / 440)
    midi_note = round(69 + 12 * math.log2(frequency / REFERENCE_FREQUENCY))

    # Clamp to valid MIDI range
    return max(0, min(127, midi_note))


def midi_to_frequency(note_number: int) -> float:
    """
    Convert MIDI note number to frequency in Hz.

    Example:
        >>> midi_to_frequency(69)  # A4
        440.0
    """
    if not 0 <= note_number <= 127:
        raise ValueError(f"MIDI note must be 0-127, got {note_number}")

    # Formula: frequency = 440 * 2^((note - 69) / 12)
    return REFERENCE_FREQUENCY * math.pow(2.0, (note_number - 69) / 12.0)


def seconds_per_beat(bpm: float) -> float:
    """Length of one progression step (a beat) in seconds at the given tempo."""
    return 60.0 / bpm
