"""
Unit tests for the tracker scheduler.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from services.productivity_tracker.scheduler import TrackerScheduler, seconds_until_hour


@pytest.fixture
def service():
    service = Mock()
    service.analyze_and_send_events = AsyncMock(return_value=None)
    service.send_daily_summary = AsyncMock(return_value=True)
    return service


class TestSecondsUntilHour:
    """Test cases for seconds_until_hour."""

    def test_later_today(self):
        assert seconds_until_hour(datetime(2024, 5, 17, 21, 30), 22) == 30 * 60

    def test_exactly_on_the_hour_waits_a_day(self):
        assert seconds_until_hour(datetime(2024, 5, 17, 22, 0), 22) == 24 * 3600

    def test_after_the_hour_waits_until_tomorrow(self):
        assert seconds_until_hour(datetime(2024, 5, 17, 23, 0), 22) == 23 * 3600

    def test_month_boundary(self):
        assert seconds_until_hour(datetime(2024, 5, 31, 23, 0), 1) == 2 * 3600


class TestTrackerScheduler:
    """Test cases for TrackerScheduler."""

    @pytest.mark.asyncio
    async def test_run_cycle(self, service):
        scheduler = TrackerScheduler(service)

        assert await scheduler.run_cycle() is True

        service.analyze_and_send_events.assert_awaited_once()
        assert scheduler.cycles_run == 1
        assert scheduler.busy is False

    @pytest.mark.asyncio
    async def test_tick_is_skipped_while_cycle_runs(self, service):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_cycle():
            started.set()
            await release.wait()

        service.analyze_and_send_events = AsyncMock(side_effect=slow_cycle)
        scheduler = TrackerScheduler(service)

        first = asyncio.create_task(scheduler.run_cycle())
        await started.wait()

        assert scheduler.busy is True
        assert await scheduler.run_cycle() is False

        release.set()
        assert await first is True
        assert service.analyze_and_send_events.await_count == 1
        assert scheduler.cycles_skipped == 1

    @pytest.mark.asyncio
    async def test_cycle_errors_do_not_propagate(self, service, caplog):
        service.analyze_and_send_events = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler = TrackerScheduler(service)

        assert await scheduler.run_cycle() is True
        assert await scheduler.run_cycle() is True

        assert scheduler.cycles_run == 2
        assert "Analysis cycle failed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_daily_summary_uses_clock(self, service):
        now = datetime(2024, 5, 17, 22, 0, 1)
        scheduler = TrackerScheduler(service, clock=lambda: now)

        assert await scheduler.run_daily_summary() is True

        service.send_daily_summary.assert_awaited_once_with(now)

    @pytest.mark.asyncio
    async def test_daily_summary_waits_for_running_cycle(self, service):
        release = asyncio.Event()
        started = asyncio.Event()
        order = []

        async def slow_cycle():
            started.set()
            await release.wait()
            order.append("cycle")

        async def summary(now):
            order.append("summary")
            return True

        service.analyze_and_send_events = AsyncMock(side_effect=slow_cycle)
        service.send_daily_summary = AsyncMock(side_effect=summary)
        scheduler = TrackerScheduler(service)

        cycle = asyncio.create_task(scheduler.run_cycle())
        await started.wait()
        daily = asyncio.create_task(scheduler.run_daily_summary())
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(cycle, daily)

        assert order == ["cycle", "summary"]

    @pytest.mark.asyncio
    async def test_daily_summary_errors_return_false(self, service):
        service.send_daily_summary = AsyncMock(side_effect=RuntimeError("boom"))
        scheduler = TrackerScheduler(service)

        assert await scheduler.run_daily_summary() is False

    @pytest.mark.asyncio
    async def test_run_polls_until_stopped(self, service):
        scheduler = TrackerScheduler(
            service,
            poll_interval_seconds=0.01,
            clock=lambda: datetime(2024, 5, 17, 12, 0),
        )

        runner = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0.1)
        scheduler.stop()
        await asyncio.wait_for(runner, timeout=1)

        assert service.analyze_and_send_events.await_count >= 2
        service.send_daily_summary.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_summary_loop_fires_at_summary_hour(self, service):
        scheduler = TrackerScheduler(
            service,
            poll_interval_seconds=60,
            summary_hour=22,
            clock=lambda: datetime(2024, 5, 17, 21, 59, 59, 950000),
        )

        runner = asyncio.create_task(scheduler.run())
        for _ in range(100):
            if service.send_daily_summary.await_count:
                break
            await asyncio.sleep(0.01)
        scheduler.stop()
        await asyncio.wait_for(runner, timeout=1)

        assert service.send_daily_summary.await_count >= 1
