"""
Fixed-interval cycle scheduler.

Runs a cycle, logs any failure without letting it escape, then waits out the
interval on a stop event so shutdown does not have to sit through a full
sleep. Cycles never overlap.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from preload_sync.utils.logger import log_event


logger = logging.getLogger(__name__)

CycleFn = Callable[[], Awaitable[Any]]


class Scheduler:
    """
    Drives a cycle function forever at a fixed interval.

    Example:
        scheduler = Scheduler(300, engine.run_cycle)

        loop.add_signal_handler(signal.SIGTERM, scheduler.stop)
        await scheduler.run()
    """

    def __init__(
        self,
        interval_seconds: float,
        cycle: CycleFn,
        stop_event: asyncio.Event | None = None,
        max_cycles: int | None = None,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            interval_seconds: Sleep between the end of one cycle and the next
            cycle: Coroutine function running one cycle
            stop_event: Event that ends the loop when set
            max_cycles: Stop after this many cycles (None = run until stopped)
        """
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be non-negative")
        self.interval_seconds = interval_seconds
        self.cycle = cycle
        self._stop_event = stop_event or asyncio.Event()
        self.max_cycles = max_cycles
        self.cycles_run = 0
        self.cycles_failed = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request a stop; the current cycle is allowed to finish."""
        self._stop_event.set()

    async def run(self) -> int:
        """
        Run cycles until stopped.

        Returns:
            Number of cycles run
        """
        while not self._stop_event.is_set():
            try:
                await self.cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.cycles_failed += 1
                log_event(
                    logger, "cycle_error", f"Sync cycle failed: {e}",
                    level=logging.ERROR,
                    error_type=type(e).__name__, failures=self.cycles_failed,
                )
            self.cycles_run += 1

            if self.max_cycles is not None and self.cycles_run >= self.max_cycles:
                break

            await self._sleep()

        return self.cycles_run

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass
