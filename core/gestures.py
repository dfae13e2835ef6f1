"""
Tap / long-press gesture classifier.

Each pointer runs its own state machine:

    IDLE --down--> PRESSED --up--------> IDLE               (emits tap)
                   PRESSED --timer-----> LONG_PRESS_FIRED   (emits long-press)
                   PRESSED --leave-----> IDLE               (nothing emitted)
    LONG_PRESS_FIRED --up / leave------> IDLE               (release swallowed)

Teardown cancels every pending timer.
"""
import logging
from enum import Enum
from typing import Callable, Dict, Hashable, Optional

from core.constants import LONG_PRESS_MS
from core.timers import TimerHandle, TimerService

logger = logging.getLogger(__name__)

GestureCallback = Callable[[str], None]


class GestureState(Enum):
    IDLE = "idle"
    PRESSED = "pressed"
    LONG_PRESS_FIRED = "long_press_fired"


class _Interaction:
    """Per-pointer state: current state, target label, armed timer."""

    __slots__ = ("state", "label", "timer", "generation")

    def __init__(self):
        self.state = GestureState.IDLE
        self.label: Optional[str] = None
        self.timer: Optional[TimerHandle] = None
        self.generation = 0

    def disarm(self):
        timer, self.timer = self.timer, None
        if timer is not None:
            timer.cancel()

    def reset(self):
        self.disarm()
        self.state = GestureState.IDLE
        self.label = None


class GestureClassifier:
    """
    Turns pointer down/up/leave events into tap and long-press signals.

    Args:
        timers: Timer source for the long-press delay
        on_tap: Called with the pressed label on a tap
        on_long_press: Called with the pressed label once the delay expires
        long_press_ms: Hold time before a press becomes a long-press
    """

    def __init__(self, timers: TimerService,
                 on_tap: GestureCallback,
                 on_long_press: GestureCallback,
                 long_press_ms: int = LONG_PRESS_MS):
        self.timers = timers
        self.on_tap = on_tap
        self.on_long_press = on_long_press
        self.long_press_seconds = long_press_ms / 1000.0
        self._pointers: Dict[Hashable, _Interaction] = {}
        self._torn_down = False

    def state(self, pointer_id: Hashable = 0) -> GestureState:
        interaction = self._pointers.get(pointer_id)
        return interaction.state if interaction else GestureState.IDLE

    def has_pending_timer(self, pointer_id: Hashable = 0) -> bool:
        interaction = self._pointers.get(pointer_id)
        return interaction is not None and interaction.timer is not None

    def pointer_down(self, label: str, pointer_id: Hashable = 0):
        """Start a press on label. Ignored unless the pointer is idle."""
        if self._torn_down:
            return

        interaction = self._pointers.setdefault(pointer_id, _Interaction())
        if interaction.state != GestureState.IDLE:
            logger.debug(f"Ignoring re-entrant press on pointer {pointer_id!r}")
            return

        interaction.state = GestureState.PRESSED
        interaction.label = label
        interaction.generation += 1
        generation = interaction.generation
        interaction.timer = self.timers.call_later(
            self.long_press_seconds,
            lambda: self._on_timer(pointer_id, interaction, generation),
        )

    def pointer_up(self, pointer_id: Hashable = 0):
        """Release: a tap if the long-press has not fired yet."""
        interaction = self._pointers.get(pointer_id)
        if interaction is None or interaction.state == GestureState.IDLE:
            return

        label = interaction.label
        fired = interaction.state == GestureState.LONG_PRESS_FIRED
        interaction.reset()

        if not fired and label is not None:
            self.on_tap(label)

    def pointer_leave(self, pointer_id: Hashable = 0):
        """Abandon the interaction without emitting anything."""
        interaction = self._pointers.get(pointer_id)
        if interaction is not None:
            interaction.reset()

    # Pointer-cancel from the event source behaves like leaving the target
    pointer_cancel = pointer_leave

    def teardown(self):
        """Cancel every pending timer; later events are ignored."""
        for interaction in self._pointers.values():
            interaction.reset()
        self._pointers.clear()
        self._torn_down = True

    def _on_timer(self, pointer_id: Hashable, interaction: _Interaction, generation: int):
        # A stale callback from a cancelled or earlier press is dropped
        if self._pointers.get(pointer_id) is not interaction:
            return
        if interaction.generation != generation or interaction.state != GestureState.PRESSED:
            return

        interaction.timer = None
        interaction.state = GestureState.LONG_PRESS_FIRED
        label = interaction.label
        logger.debug(f"Long-press on {label!r} (pointer {pointer_id!r})")
        self.on_long_press(label)
