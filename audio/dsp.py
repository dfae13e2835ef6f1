"""
DSP utilities for rendering chord previews.

Additive sine voices with a linear attack/release envelope.
"""
from typing import Sequence

import numpy as np


def sine_voice(frequency: float, duration: float, sample_rate: int) -> np.ndarray:
    """
    Render a sine wave with a soft second partial.

    Args:
        frequency: Pitch in Hz
        duration: Length in seconds
        sample_rate: Audio sample rate

    Returns:
        Mono float32 buffer
    """
    num_samples = max(1, int(duration * sample_rate))
    t = np.arange(num_samples, dtype=np.float64) / sample_rate
    wave = np.sin(2.0 * np.pi * frequency * t) + 0.25 * np.sin(4.0 * np.pi * frequency * t)
    return (wave / 1.25).astype(np.float32)


def apply_ar_envelope(buffer: np.ndarray,
                      attack: float,
                      release: float,
                      sample_rate: int) -> np.ndarray:
    """
    Apply an attack/release envelope to an audio buffer.

    Args:
        buffer: Mono audio buffer
        attack: Attack time (seconds)
        release: Release time (seconds)
        sample_rate: Audio sample rate

    Returns:
        Enveloped audio
    """
    num_samples = len(buffer)
    env = np.ones(num_samples, dtype=np.float32)

    attack_samples = min(num_samples, int(attack * sample_rate))
    release_samples = min(num_samples - attack_samples, int(release * sample_rate))

    if attack_samples > 0:
        env[:attack_samples] = np.linspace(0.0, 1.0, attack_samples, endpoint=False)
    if release_samples > 0:
        env[num_samples - release_samples:] = np.linspace(1.0, 0.0, release_samples)

    return buffer * env


def render_chord(frequencies: Sequence[float],
                 duration: float,
                 gain: float,
                 sample_rate: int,
                 attack: float = 0.01,
                 release: float = 0.2) -> np.ndarray:
    """
    Mix one enveloped voice per frequency into a stereo buffer.

    Returns:
        Stereo float32 buffer (frames x 2), clipped to [-1, 1]
    """
    voices = [sine_voice(f, duration, sample_rate) for f in frequencies]
    if not voices:
        return np.zeros((0, 2), dtype=np.float32)

    mono = np.sum(voices, axis=0)
    # Keep the sum of voices within headroom
    mono = apply_gain(mono, gain / max(1.0, np.sqrt(len(voices))))
    mono = apply_ar_envelope(mono, attack, release, sample_rate)
    return clip_audio(stereo_from_mono(mono))


def apply_gain(buffer: np.ndarray, gain: float) -> np.ndarray:
    return buffer * gain


def stereo_from_mono(buffer_mono: np.ndarray) -> np.ndarray:
    """Convert mono buffer to stereo by duplicating channels."""
    return np.stack([buffer_mono, buffer_mono], axis=-1)


def clip_audio(buffer: np.ndarray, threshold: float = 1.0) -> np.ndarray:
    """Hard clip audio to prevent overflow."""
    return np.clip(buffer, -threshold, threshold)
