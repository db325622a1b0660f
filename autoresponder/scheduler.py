"""
Randomized-interval scheduler for triage runs
"""

import asyncio
import random
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[asyncio.Event], Awaitable[Any]]


class Scheduler:
    """
    Runs a tick, waits a random whole number of seconds between the bounds,
    and repeats. Ticks never overlap: a manual run_once() and the background
    loop share one lock.
    """

    def __init__(self, tick: Tick, min_seconds: int = 45, max_seconds: int = 120,
                 rng: Optional[random.Random] = None,
                 on_fatal: Optional[Callable[[BaseException], None]] = None):
        if min_seconds < 0 or max_seconds < min_seconds:
            raise ValueError(f"Invalid interval bounds {min_seconds}-{max_seconds}")
        self.tick = tick
        self.min_seconds = min_seconds
        self.max_seconds = max_seconds
        self.rng = rng or random.Random()
        self.on_fatal = on_fatal

        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.runs_completed = 0
        self.last_result: Any = None
        self.next_run_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        """True while a tick is in flight"""
        return self._lock.locked()

    def next_delay(self) -> int:
        """Uniform over the inclusive integer range [min_seconds, max_seconds]"""
        return self.rng.randint(self.min_seconds, self.max_seconds)

    def start(self) -> bool:
        """Start the background loop; returns False if it is already running"""
        if self.is_running:
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event), name="triage-scheduler")
        self._task.add_done_callback(self._on_done)
        logger.info("Scheduler started (interval %d-%ds)", self.min_seconds, self.max_seconds)
        return True

    async def run_once(self) -> Any:
        """Run a single tick now, waiting for any tick in flight to finish first"""
        return await self._run_tick(self._stop_event)

    async def _run_tick(self, stop_event: asyncio.Event) -> Any:
        async with self._lock:
            result = await self.tick(stop_event)
            self.runs_completed += 1
            self.last_result = result
            return result

    async def _run(self, stop_event: asyncio.Event):
        while not stop_event.is_set():
            await self._run_tick(stop_event)

            delay = self.next_delay()
            self.next_run_at = datetime.now() + timedelta(seconds=delay)
            logger.info("Next triage run in %d seconds", delay)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        self.next_run_at = None

    def _on_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("Scheduler stopped by unhandled error: %s", exc, exc_info=exc)
        if self.on_fatal:
            self.on_fatal(exc)

    async def stop(self, timeout: float = 30):
        """
        Ask the loop to stop after the message in flight. If the tick has not
        finished within timeout seconds it is cancelled.
        """
        stop_event = self._stop_event
        stop_event.set()
        # later manual runs get a fresh event; ticks in flight keep the set one
        self._stop_event = asyncio.Event()

        task = self._task
        if task is None or task.done():
            return

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Triage run did not finish within %ss, cancelling", timeout)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        except Exception:
            # already reported through _on_done
            pass
        logger.info("Scheduler stopped")
