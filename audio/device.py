"""
sounddevice playback backend.

Renders chords with numpy and hands them to sounddevice without blocking.
The backend reports not-ready until open() has found an output device, so
callers going through SafePlayback simply stay silent on machines without
audio.
"""
import logging
from typing import Optional, Sequence

from audio.dsp import render_chord
from audio.playback import PlaybackDevice
from core.constants import frequency_to_midi, midi_note_to_name

logger = logging.getLogger(__name__)


class SoundDevicePlayback(PlaybackDevice):
    """PlaybackDevice on the default sounddevice output."""

    def __init__(self, sample_rate: int = 44100, device: Optional[int] = None):
        self.sample_rate = sample_rate
        self.device = device
        self._sd = None

    @property
    def is_ready(self) -> bool:
        return self._sd is not None

    def open(self) -> bool:
        """
        Locate the output device.

        Returns:
            True if playback is available
        """
        if self._sd is not None:
            return True
        try:
            # PortAudio is loaded on import and may be missing on headless hosts
            import sounddevice as sd
            sd.query_devices(self.device, kind="output")
        except OSError as e:
            logger.warning(f"Audio output unavailable: {e}")
            return False
        except Exception as e:
            logger.warning(f"Failed to open audio output: {e}")
            return False

        self._sd = sd
        logger.info(f"Audio output ready ({self.sample_rate} Hz)")
        return True

    def close(self):
        if self._sd is not None:
            self._sd.stop()
            self._sd = None

    def play_note(self, frequency: float, duration: float, gain: float):
        self.play_chord([frequency], duration, gain)

    def play_chord(self, frequencies: Sequence[float], duration: float, gain: float):
        buffer = render_chord(frequencies, duration, gain, self.sample_rate)
        notes = ", ".join(midi_note_to_name(frequency_to_midi(f)) for f in frequencies)
        logger.debug(f"Playing [{notes}] for {duration:.2f}s")
        self._sd.play(buffer, samplerate=self.sample_rate, device=self.device)
