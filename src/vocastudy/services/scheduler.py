"""Deferred callbacks used for auto-advance and pronunciation delays."""
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class CancelHandle:
    """Handle for a scheduled callback."""
    delay_ms: int
    id: int = field(default_factory=lambda: next(_handle_ids))
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler(ABC):
    """Runs a callback once after a delay; scheduled callbacks can be cancelled."""

    @abstractmethod
    def schedule_once(self, delay_ms: int, callback: Callable[[], None]) -> CancelHandle:
        """Schedule callback to run once after delay_ms milliseconds."""

    @abstractmethod
    def cancel(self, handle: CancelHandle) -> None:
        """Cancel a scheduled callback. Cancelling a fired handle does nothing."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: Dict[int, asyncio.TimerHandle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule_once(self, delay_ms: int, callback: Callable[[], None]) -> CancelHandle:
        handle = CancelHandle(delay_ms)

        def run() -> None:
            self._timers.pop(handle.id, None)
            if handle.cancelled:
                return
            handle.fired = True
            try:
                callback()
            except Exception as e:
                logger.error(f"Scheduled callback {handle.id} failed: {e}")
                raise

        self._timers[handle.id] = self.loop.call_later(delay_ms / 1000, run)
        logger.debug(f"Scheduled callback {handle.id} in {delay_ms} ms")
        return handle

    def cancel(self, handle: CancelHandle) -> None:
        if not handle.pending:
            return
        handle.cancelled = True
        timer = self._timers.pop(handle.id, None)
        if timer:
            timer.cancel()
        logger.debug(f"Cancelled callback {handle.id}")

    @property
    def pending_count(self) -> int:
        return len(self._timers)
