"""
Cancellable timer capability.

The gesture classifier and the progression scheduler never sleep; they arm
single-shot callbacks through a TimerService and keep the returned handle so
it can be cancelled on the next transition. Everything runs on one thread.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional


class TimerHandle(ABC):
    """Handle to a pending callback."""

    @abstractmethod
    def cancel(self):
        """Prevent the callback from running. Safe to call more than once."""
        raise NotImplementedError()


class TimerService(ABC):
    """Single-shot timer source with a monotonic clock."""

    @abstractmethod
    def now(self) -> float:
        """Current monotonic time in seconds."""
        raise NotImplementedError()

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run callback once after delay seconds.

        Args:
            delay: Seconds from now (negative values run as soon as possible)
            callback: Zero-argument callable

        Returns:
            Handle that cancels the callback
        """
        raise NotImplementedError()


class _AsyncioHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self):
        self._handle.cancel()


class AsyncioTimerService(TimerService):
    """TimerService backed by an asyncio event loop (loop.call_later)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioHandle(self.loop.call_later(max(0.0, delay), callback))
