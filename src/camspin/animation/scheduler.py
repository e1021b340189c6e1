"""Frame loop and timers for one renderer.

FrameLoop replaces a UI toolkit's animation callback: tick handlers run
once per frame and delayed callbacks (timers) fire on the same loop, so
everything a session does happens on one cooperative thread. step() can
be driven by hand with a ManualClock, which is how tests single-step
ticks; start() runs it as an asyncio task at the configured frame rate.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
TickHandler = Callable[[float], None]


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now


class TimerHandle:
    """A pending delayed callback.

    cancel() may be called any number of times, before or after the
    timer fires.
    """

    def __init__(self, deadline: float, callback: Callable[[], None], name: str = "timer") -> None:
        self.deadline = deadline
        self.name = name
        self._callback: Optional[Callable[[], None]] = callback
        self._fired = False
        self._cancelled = False

    @property
    def active(self) -> bool:
        """True while the timer can still fire."""
        return not (self._fired or self._cancelled)

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Cancel the timer.

        Returns:
            True if this call prevented the timer from firing
        """
        if not self.active:
            return False
        self._cancelled = True
        self._callback = None
        logger.debug(f"Timer cancelled: {self.name}")
        return True

    def _fire(self) -> None:
        if not self.active:
            return
        callback = self._callback
        self._fired = True
        self._callback = None
        logger.debug(f"Timer fired: {self.name}")
        callback()


class FrameLoop:
    """Single-threaded frame loop with timers."""

    def __init__(self, fps: int = 60, clock: Clock = time.monotonic, name: str = "frame-loop") -> None:
        self.fps = fps
        self.clock = clock
        self.name = name

        self._tick_handlers: list[TickHandler] = []
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_step: Optional[float] = None
        self._frame_count = 0

    @property
    def frame_interval(self) -> float:
        return 1.0 / self.fps

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self._timers if handle.active)

    def add_tick_handler(self, handler: TickHandler) -> Callable[[], None]:
        """Run handler(delta_seconds) every frame. Returns a remover."""
        self._tick_handlers.append(handler)

        def remove() -> None:
            if handler in self._tick_handlers:
                self._tick_handlers.remove(handler)

        return remove

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "timer") -> TimerHandle:
        """Schedule callback to run on this loop after delay seconds."""
        handle = TimerHandle(self.clock() + max(0.0, delay), callback, name)
        heapq.heappush(self._timers, (handle.deadline, next(self._sequence), handle))
        logger.debug(f"Timer scheduled: {name} in {delay:.2f}s")
        return handle

    def step(self) -> None:
        """Run one frame: due timers first, then tick handlers."""
        now = self.clock()
        delta = 0.0 if self._last_step is None else now - self._last_step
        self._last_step = now

        self._fire_due_timers(now)

        for handler in list(self._tick_handlers):
            try:
                handler(delta)
            except Exception as e:
                logger.error(f"Error in tick handler: {e}")

        self._frame_count += 1

    def _fire_due_timers(self, now: float) -> None:
        while self._timers and self._timers[0][0] <= now:
            _, _, handle = heapq.heappop(self._timers)
            try:
                handle._fire()
            except Exception as e:
                logger.error(f"Error in timer {handle.name}: {e}")

    def start(self) -> bool:
        """Start stepping as an asyncio task on the running event loop.

        Returns False if this loop is already running.
        """
        if self._running:
            logger.warning(f"{self.name} already running")
            return False

        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"{self.name} started at {self.fps} fps")
        return True

    def stop(self) -> None:
        """Stop stepping. Pending timers are kept but no longer fire."""
        if not self._running:
            return
        self._running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.info(f"{self.name} stopped after {self._frame_count} frames")

    def cancel_timers(self) -> None:
        for _, _, handle in self._timers:
            handle.cancel()
        self._timers.clear()

    async def _run(self) -> None:
        try:
            while self._running:
                started = self.clock()
                self.step()
                elapsed = self.clock() - started
                await asyncio.sleep(max(0.0, self.frame_interval - elapsed))
        except asyncio.CancelledError:
            pass
