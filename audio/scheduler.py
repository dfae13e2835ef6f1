"""
Progression scheduler for timed chord playback.

Tick-based master clock: one tick per beat (one progression duration step). Tick deadlines are
computed from an anchor time plus tick count times a fixed tick length, so
late callbacks never accumulate drift over long progressions.
"""
import logging
from collections import deque
from typing import Callable, Deque, Iterable, Optional, Tuple

from audio.playback import SafePlayback
from core.constants import BPM_DEFAULT, DEFAULT_CHORD_DURATION, seconds_per_beat
from core.models import PlayheadState, ProgressionEntry, ScheduledEvent
from core.progression import Progression
from core.settings import AudioSettings, clamp_tempo
from core.theory import get_chord_frequencies
from core.timers import TimerHandle, TimerService

logger = logging.getLogger(__name__)

EVENT_HISTORY = 64


class ProgressionScheduler:
    """
    Plays a progression entry by entry and advances the playhead.

    Lifecycle: idle -> playing -> idle (stopped, or ended without loop);
    with loop enabled the playhead wraps to the first entry instead of
    ending. At most one tick callback is outstanding at any time.

    Args:
        playback: Playback capability (failures are absorbed)
        timers: Timer source for ticks
        progression: Progression edited through remove_entry()/clear()
        on_time_update: Receives the index of each newly sounding entry
        on_playback_end: Called once when a non-looping progression ends
        audio: Voicing/gain settings
    """

    def __init__(self, playback: SafePlayback,
                 timers: TimerService,
                 progression: Optional[Progression] = None,
                 on_time_update: Optional[Callable[[int], None]] = None,
                 on_playback_end: Optional[Callable[[], None]] = None,
                 audio: Optional[AudioSettings] = None):
        self.playback = playback
        self.timers = timers
        self.progression = progression
        self.on_time_update = on_time_update
        self.on_playback_end = on_playback_end
        self.audio = audio or AudioSettings()

        self.playhead = PlayheadState()
        self.events: Deque[ScheduledEvent] = deque(maxlen=EVENT_HISTORY)

        self._entries: Tuple[ProgressionEntry, ...] = ()
        self._tick_handle: Optional[TimerHandle] = None
        self._generation = 0
        self._tick_seconds = seconds_per_beat(BPM_DEFAULT)
        self._anchor_time = 0.0
        self._anchor_tick = 0

    @property
    def is_playing(self) -> bool:
        return self.playhead.is_playing

    @property
    def tick_seconds(self) -> float:
        """Length of one tick (beat) at the current tempo."""
        return self._tick_seconds

    @property
    def current_entry(self) -> Optional[ProgressionEntry]:
        if not self.playhead.is_playing:
            return None
        return self._entries[self.playhead.current_index]

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def play(self, progression: Optional[Iterable[ProgressionEntry]] = None,
             tempo_bpm: float = BPM_DEFAULT,
             loop: bool = False):
        """
        Start playback from the first entry.

        Args:
            progression: Entries to play (defaults to the bound progression)
            tempo_bpm: Tempo; invalid values fall back to the default tempo
            loop: Restart from the first entry at the end
        """
        if progression is None:
            progression = self.progression
        elif isinstance(progression, Progression):
            self.progression = progression

        entries = tuple(progression) if progression is not None else ()
        if not entries:
            logger.debug("Nothing to play: progression is empty")
            return

        # Replace any running tick stream
        self._cancel_tick()

        tempo = clamp_tempo(tempo_bpm)
        self._entries = tuple(sorted(entries, key=lambda e: e.position))
        self._tick_seconds = seconds_per_beat(tempo)

        playhead = self.playhead
        playhead.reset()
        playhead.is_playing = True
        playhead.tempo_bpm = tempo
        playhead.loop = loop

        self._anchor_time = self.timers.now()
        self._anchor_tick = 0
        self.events.clear()

        logger.info(f"Playing {len(self._entries)} chords at {tempo} BPM (loop={loop})")

        generation = self._generation
        self._enter(0)
        if generation == self._generation and playhead.is_playing:
            self._arm_tick()

    def stop(self):
        """Stop playback and rewind. No tick fires afterwards."""
        if not self.playhead.is_playing and self._tick_handle is None:
            return
        self._cancel_tick()
        self.playhead.reset()
        logger.info("Playback stopped")

    def seek(self, index: int):
        """Jump to an entry while playing; it sounds immediately."""
        if not self.playhead.is_playing:
            logger.debug(f"Seek to {index} ignored: not playing")
            return
        if not 0 <= index < len(self._entries):
            logger.warning(f"Seek index {index} out of range (0-{len(self._entries) - 1})")
            return

        self._cancel_tick()
        self._anchor_time = self.timers.now()
        self._anchor_tick = self.playhead.ticks

        generation = self._generation
        self._enter(index)
        if generation == self._generation and self.playhead.is_playing:
            self._arm_tick()

    def set_tempo(self, tempo_bpm: float):
        """Change tempo; a running playhead keeps its current tick boundary."""
        tempo = clamp_tempo(tempo_bpm)
        playhead = self.playhead
        playhead.tempo_bpm = tempo

        if not playhead.is_playing:
            self._tick_seconds = seconds_per_beat(tempo)
            return

        # Re-anchor on the last tick boundary with the new tick length
        self._cancel_tick()
        self._anchor_time += (playhead.ticks - self._anchor_tick) * self._tick_seconds
        self._anchor_tick = playhead.ticks
        self._tick_seconds = seconds_per_beat(tempo)
        self._arm_tick()

    def set_loop(self, loop: bool):
        self.playhead.loop = loop

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def remove_entry(self, entry_id: str) -> Optional[ProgressionEntry]:
        """Stop playback, then remove an entry from the bound progression."""
        self.stop()
        if self.progression is None:
            return None
        return self.progression.remove(entry_id)

    def clear(self):
        """Stop playback, then empty the bound progression."""
        self.stop()
        if self.progression is not None:
            self.progression.clear()

    def preview(self, entry: ProgressionEntry) -> bool:
        """Play a single entry without touching the playhead."""
        frequencies = get_chord_frequencies(
            entry.root_note, entry.intervals, self.audio.base_octave
        )
        return self.playback.play_chord(
            frequencies, DEFAULT_CHORD_DURATION, self.audio.chord_gain
        )

    def teardown(self):
        self.stop()

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def _arm_tick(self):
        target = self._anchor_time + (self.playhead.ticks + 1 - self._anchor_tick) * self._tick_seconds
        delay = target - self.timers.now()
        generation = self._generation
        self._tick_handle = self.timers.call_later(delay, lambda: self._on_tick(generation))

    def _cancel_tick(self):
        # Invalidate first so a callback already queued sees a stale generation
        self._generation += 1
        handle, self._tick_handle = self._tick_handle, None
        if handle is not None:
            handle.cancel()

    def _on_tick(self, generation: int):
        if generation != self._generation or not self.playhead.is_playing:
            return
        self._tick_handle = None

        playhead = self.playhead
        playhead.ticks += 1
        playhead.elapsed_within_entry += 1

        current = self._entries[playhead.current_index]
        if playhead.elapsed_within_entry >= current.duration:
            next_index = playhead.current_index + 1
            if next_index >= len(self._entries):
                if not playhead.loop:
                    self._finish()
                    return
                next_index = 0
            self._enter(next_index)

        # A callback may have stopped or restarted playback
        if generation == self._generation and playhead.is_playing:
            self._arm_tick()

    def _enter(self, index: int):
        playhead = self.playhead
        playhead.current_index = index
        playhead.elapsed_within_entry = 0

        entry = self._entries[index]
        frequencies = get_chord_frequencies(
            entry.root_note, entry.intervals, self.audio.base_octave
        )
        self.playback.play_chord(
            frequencies, entry.duration * self._tick_seconds, self.audio.chord_gain
        )
        self.events.append(ScheduledEvent(
            entry_id=entry.id,
            index=index,
            tick=playhead.ticks,
            scheduled_time=self._anchor_time + (playhead.ticks - self._anchor_tick) * self._tick_seconds,
            frequencies=tuple(frequencies),
        ))

        if self.on_time_update is not None:
            self.on_time_update(index)

    def _finish(self):
        self._cancel_tick()
        self.playhead.reset()
        logger.info("Playback reached the end of the progression")
        if self.on_playback_end is not None:
            self.on_playback_end()
