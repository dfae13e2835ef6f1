"""
Audio playback capability.

The chord engine and scheduler only ever talk to a PlaybackDevice through
SafePlayback, which turns an unready device or a failing call into a logged
no-op. State updates therefore never depend on sound actually playing.
"""
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from core.constants import (
    CHORD_GAIN,
    DEFAULT_CHORD_DURATION,
    DEFAULT_NOTE_DURATION,
    NOTE_GAIN,
)

logger = logging.getLogger(__name__)


class PlaybackDevice(ABC):
    """
    Fire-and-forget playback backend.

    Subclasses must:
    1. Report readiness via is_ready
    2. Start sound without blocking the caller
    """

    @property
    def is_ready(self) -> bool:
        """Whether the backend can produce sound right now."""
        return True

    @abstractmethod
    def play_note(self, frequency: float, duration: float, gain: float):
        """
        Play a single pitch.

        Args:
            frequency: Pitch in Hz
            duration: Length in seconds
            gain: Linear gain (0.0-1.0)
        """
        raise NotImplementedError()

    @abstractmethod
    def play_chord(self, frequencies: Sequence[float], duration: float, gain: float):
        """
        Play several pitches at once.

        Args:
            frequencies: Pitches in Hz
            duration: Length in seconds
            gain: Linear gain per voice (0.0-1.0)
        """
        raise NotImplementedError()


class SafePlayback:
    """Wraps a PlaybackDevice so that playback problems never propagate."""

    def __init__(self, device: PlaybackDevice, master_volume: float = 1.0):
        self.device = device
        self.master_volume = max(0.0, min(1.0, master_volume))

    def play_note(self, frequency: float,
                  duration: float = DEFAULT_NOTE_DURATION,
                  gain: float = NOTE_GAIN) -> bool:
        """Play one pitch. Returns False when the call was absorbed."""
        if not self._ready():
            return False
        try:
            self.device.play_note(frequency, duration, gain * self.master_volume)
        except Exception as e:
            logger.warning(f"play_note({frequency:.2f} Hz) failed: {e}")
            return False
        return True

    def play_chord(self, frequencies: Sequence[float],
                   duration: float = DEFAULT_CHORD_DURATION,
                   gain: float = CHORD_GAIN) -> bool:
        """Play a chord. Returns False when the call was absorbed."""
        if not frequencies:
            return False
        if not self._ready():
            return False
        try:
            self.device.play_chord(list(frequencies), duration, gain * self.master_volume)
        except Exception as e:
            logger.warning(f"play_chord({len(frequencies)} voices) failed: {e}")
            return False
        return True

    def _ready(self) -> bool:
        try:
            ready = self.device.is_ready
        except Exception as e:
            logger.warning(f"Audio engine readiness check failed: {e}")
            return False
        if not ready:
            logger.warning("Audio engine not ready yet")
        return ready
