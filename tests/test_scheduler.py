"""Tests for the cycle scheduler."""

import asyncio
import logging

import pytest

from preload_sync.core.scheduler import Scheduler
from preload_sync.errors import NetworkError


class TestScheduler:
    """Tests for Scheduler class."""

    def test_runs_until_max_cycles(self) -> None:
        """Test scheduler stops after max cycles."""
        calls = []

        async def cycle() -> None:
            calls.append(len(calls))

        scheduler = Scheduler(0, cycle, max_cycles=3)
        assert asyncio.run(scheduler.run()) == 3
        assert calls == [0, 1, 2]

    def test_cycle_errors_do_not_stop_the_loop(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test failed cycles are logged and the loop continues."""
        calls = []

        async def cycle() -> None:
            calls.append(1)
            if len(calls) < 3:
                raise NetworkError("unreachable")

        scheduler = Scheduler(0, cycle, max_cycles=3)
        with caplog.at_level(logging.ERROR, logger="preload_sync"):
            asyncio.run(scheduler.run())

        assert len(calls) == 3
        assert scheduler.cycles_failed == 2
        assert any(getattr(r, "event", None) == "cycle_error" for r in caplog.records)

    def test_unexpected_exceptions_are_contained(self) -> None:
        """Test non-sync exceptions are contained."""
        async def cycle() -> None:
            raise RuntimeError("bug")

        scheduler = Scheduler(0, cycle, max_cycles=2)
        assert asyncio.run(scheduler.run()) == 2
        assert scheduler.cycles_failed == 2

    def test_stop_interrupts_sleep(self) -> None:
        """Test stop during a cycle ends the wait early."""
        async def scenario() -> int:
            scheduler: Scheduler

            async def cycle() -> None:
                scheduler.stop()

            scheduler = Scheduler(3600, cycle)
            return await asyncio.wait_for(scheduler.run(), timeout=5)

        assert asyncio.run(scenario()) == 1

    def test_stop_from_outside_during_sleep(self) -> None:
        """Test stop from another task wakes the sleep."""
        async def scenario() -> int:
            async def cycle() -> None:
                pass

            scheduler = Scheduler(3600, cycle)
            task = asyncio.create_task(scheduler.run())
            await asyncio.sleep(0.05)
            scheduler.stop()
            return await asyncio.wait_for(task, timeout=5)

        assert asyncio.run(scenario()) == 1

    def test_cycles_never_overlap(self) -> None:
        """Test only one cycle runs at a time."""
        active = 0
        peak = 0

        async def cycle() -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        asyncio.run(Scheduler(0, cycle, max_cycles=4).run())
        assert peak == 1

    def test_pre_set_stop_event_runs_nothing(self) -> None:
        """Test a set stop event prevents any cycle."""
        calls = []

        async def cycle() -> None:
            calls.append(1)

        async def scenario() -> int:
            event = asyncio.Event()
            event.set()
            return await Scheduler(0, cycle, stop_event=event).run()

        assert asyncio.run(scenario()) == 0
        assert calls == []

    def test_negative_interval_rejected(self) -> None:
        """Test negative interval is rejected."""
        async def cycle() -> None:
            pass

        with pytest.raises(ValueError):
            Scheduler(-1, cycle)
