"""
Runtime settings.

Settings are built from defaults, optionally overlaid with a partial mapping
(e.g. from a host application's preferences). Out-of-range values are
clamped, never rejected. Nothing here is written to disk.
"""
import logging
import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

from core.constants import (
    BPM_DEFAULT,
    BPM_MAX,
    BPM_MIN,
    CHORD_GAIN,
    DEFAULT_BASE_OCTAVE,
    DEFAULT_BLOCK_BEATS,
    DEFAULT_CHORD_DURATION,
    LONG_PRESS_MS,
    NOTE_GAIN,
)

logger = logging.getLogger(__name__)


def clamp_tempo(value: Any) -> float:
    """
    Coerce user tempo input into a usable BPM.

    Non-numeric, non-finite or non-positive values fall back to BPM_DEFAULT;
    everything else is clamped into [BPM_MIN, BPM_MAX].

    Example:
        >>> clamp_tempo(0)
        120.0
        >>> clamp_tempo(1000)
        300.0
    """
    try:
        bpm = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid tempo {value!r}, using {BPM_DEFAULT} BPM")
        return float(BPM_DEFAULT)

    if not math.isfinite(bpm) or bpm <= 0:
        logger.warning(f"Invalid tempo {value!r}, using {BPM_DEFAULT} BPM")
        return float(BPM_DEFAULT)

    clamped = max(float(BPM_MIN), min(float(BPM_MAX), bpm))
    if clamped != bpm:
        logger.warning(f"Tempo {bpm} outside {BPM_MIN}-{BPM_MAX}, clamped to {clamped}")
    return clamped


def clamp_volume(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class AudioSettings:
    """
    Attributes:
        master_volume: Overall output level (0.0-1.0)
        chord_gain: Per-voice gain for chords
        note_gain: Gain for single notes
        chord_duration: Length of a previewed chord in seconds
        base_octave: Octave chord roots are voiced in
        sample_rate: Output sample rate in Hz
    """
    master_volume: float = 0.7
    chord_gain: float = CHORD_GAIN
    note_gain: float = NOTE_GAIN
    chord_duration: float = DEFAULT_CHORD_DURATION
    base_octave: int = DEFAULT_BASE_OCTAVE
    sample_rate: int = 44100

    def __post_init__(self):
        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, "master_volume", clamp_volume(self.master_volume))
        object.__setattr__(self, "chord_gain", clamp_volume(self.chord_gain))
        object.__setattr__(self, "note_gain", clamp_volume(self.note_gain))
        if self.chord_duration <= 0:
            object.__setattr__(self, "chord_duration", DEFAULT_CHORD_DURATION)
        object.__setattr__(self, "base_octave", max(0, min(8, int(self.base_octave))))
        if self.sample_rate <= 0:
            object.__setattr__(self, "sample_rate", 44100)


@dataclass(frozen=True)
class InteractionSettings:
    """
    Attributes:
        long_press_ms: Hold time before a press counts as a long-press
    """
    long_press_ms: int = LONG_PRESS_MS

    def __post_init__(self):
        if self.long_press_ms <= 0:
            logger.warning(f"Invalid long-press delay {self.long_press_ms}ms, using {LONG_PRESS_MS}ms")
            object.__setattr__(self, "long_press_ms", LONG_PRESS_MS)

    @property
    def long_press_seconds(self) -> float:
        return self.long_press_ms / 1000.0


@dataclass(frozen=True)
class PlaybackSettings:
    """
    Attributes:
        tempo: Progression tempo in BPM
        loop: Restart the progression when it ends
        block_beats: Default length of a newly added progression block
    """
    tempo: float = float(BPM_DEFAULT)
    loop: bool = False
    block_beats: int = DEFAULT_BLOCK_BEATS

    def __post_init__(self):
        object.__setattr__(self, "tempo", clamp_tempo(self.tempo))
        if self.block_beats <= 0:
            object.__setattr__(self, "block_beats", DEFAULT_BLOCK_BEATS)


@dataclass(frozen=True)
class Settings:
    """All runtime settings."""
    audio: AudioSettings = field(default_factory=AudioSettings)
    interaction: InteractionSettings = field(default_factory=InteractionSettings)
    playback: PlaybackSettings = field(default_factory=PlaybackSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain nested mapping."""
        return {
            group.name: {
                f.name: getattr(getattr(self, group.name), f.name)
                for f in fields(getattr(self, group.name))
            }
            for group in fields(self)
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """
        Deep-merge a partial mapping over the defaults.

        Unknown groups and keys are ignored so older or newer mappings still
        load.
        """
        settings = cls()
        if not data:
            return settings

        merged = {}
        for group in fields(settings):
            current = getattr(settings, group.name)
            overrides = data.get(group.name) or {}
            known = {f.name for f in fields(current)}
            unknown = set(overrides) - known
            if unknown:
                logger.debug(f"Ignoring unknown {group.name} settings: {sorted(unknown)}")
            merged[group.name] = replace(
                current, **{k: v for k, v in overrides.items() if k in known}
            )
        return cls(**merged)
