"""Pytest configuration and fixtures."""
import heapq
from typing import Callable, List, Sequence, Tuple

import pytest

from audio.playback import PlaybackDevice, SafePlayback
from core.timers import TimerHandle, TimerService


class ManualHandle(TimerHandle):
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualTimers(TimerService):
    """Virtual clock: callbacks only run when the test advances time."""

    def __init__(self, lateness: float = 0.0):
        self.time = 0.0
        self.lateness = lateness
        self._queue = []
        self._seq = 0

    def now(self) -> float:
        return self.time

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = ManualHandle()
        self._seq += 1
        when = self.time + max(0.0, delay) + self.lateness
        heapq.heappush(self._queue, (when, self._seq, handle, callback))
        return handle

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled callbacks."""
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float):
        """Move the clock forward, firing due callbacks in deadline order."""
        target = self.time + seconds
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle, callback = heapq.heappop(self._queue)
            self.time = max(self.time, when)
            if not handle.cancelled:
                callback()
        self.time = target


class RecordingPlayback(PlaybackDevice):
    """PlaybackDevice that records every call."""

    def __init__(self, ready: bool = True, fail: bool = False):
        self.ready = ready
        self.fail = fail
        self.calls: List[Tuple[str, Tuple[float, ...], float, float]] = []
        self.clock = None
        self.times: List[float] = []

    @property
    def is_ready(self) -> bool:
        return self.ready

    def play_note(self, frequency: float, duration: float, gain: float):
        self._record("note", (frequency,), duration, gain)

    def play_chord(self, frequencies: Sequence[float], duration: float, gain: float):
        self._record("chord", tuple(frequencies), duration, gain)

    def _record(self, kind, frequencies, duration, gain):
        if self.fail:
            raise RuntimeError("device exploded")
        self.calls.append((kind, frequencies, duration, gain))
        if self.clock is not None:
            self.times.append(self.clock.now())

    @property
    def chords(self) -> List[Tuple[float, ...]]:
        return [freqs for kind, freqs, _, _ in self.calls if kind == "chord"]


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def device(timers: ManualTimers) -> RecordingPlayback:
    recorder = RecordingPlayback()
    recorder.clock = timers
    return recorder


@pytest.fixture
def playback(device: RecordingPlayback) -> SafePlayback:
    return SafePlayback(device)
