"""Tests for audio/playback.py, audio/dsp.py and the sounddevice backend."""
import numpy as np
import pytest

from audio.device import SoundDevicePlayback
from audio.dsp import apply_ar_envelope, render_chord, sine_voice
from audio.playback import SafePlayback
from conftest import RecordingPlayback


class TestSafePlayback:
    def test_forwards_with_master_volume(self):
        device = RecordingPlayback()
        playback = SafePlayback(device, master_volume=0.5)
        assert playback.play_chord([261.63, 329.63], 1.0, 0.6)
        kind, freqs, duration, gain = device.calls[0]
        assert kind == "chord"
        assert freqs == (261.63, 329.63)
        assert gain == pytest.approx(0.3)

    def test_play_note(self):
        device = RecordingPlayback()
        assert SafePlayback(device).play_note(440.0)
        assert device.calls[0][0] == "note"

    def test_not_ready_is_noop(self, caplog):
        device = RecordingPlayback(ready=False)
        playback = SafePlayback(device)
        assert not playback.play_chord([440.0])
        assert not playback.play_note(440.0)
        assert device.calls == []
        assert "not ready" in caplog.text

    def test_device_errors_absorbed(self, caplog):
        playback = SafePlayback(RecordingPlayback(fail=True))
        assert not playback.play_chord([440.0])
        assert not playback.play_note(440.0)
        assert "device exploded" in caplog.text

    def test_empty_chord_skipped(self):
        device = RecordingPlayback()
        assert not SafePlayback(device).play_chord([])
        assert device.calls == []

    def test_unopened_sounddevice_backend_is_silent(self):
        backend = SoundDevicePlayback()
        assert not backend.is_ready
        assert not SafePlayback(backend).play_chord([440.0])


class TestDsp:
    def test_sine_voice_length(self):
        voice = sine_voice(440.0, 0.5, 1000)
        assert voice.shape == (500,)
        assert voice.dtype == np.float32
        assert np.max(np.abs(voice)) <= 1.0

    def test_envelope_starts_and_ends_silent(self):
        buffer = np.ones(1000, dtype=np.float32)
        shaped = apply_ar_envelope(buffer, attack=0.1, release=0.1, sample_rate=1000)
        assert shaped[0] == 0.0
        assert shaped[-1] == 0.0
        assert shaped[500] == 1.0

    def test_render_chord_stereo_and_clipped(self):
        buffer = render_chord([261.63, 329.63, 392.0], 0.25, 1.0, 8000)
        assert buffer.shape == (2000, 2)
        assert np.all(np.abs(buffer) <= 1.0)
        assert np.array_equal(buffer[:, 0], buffer[:, 1])

    def test_render_empty(self):
        assert render_chord([], 0.25, 1.0, 8000).shape == (0, 2)
