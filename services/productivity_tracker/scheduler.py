"""
Scheduling of analysis cycles and the daily summary.

Two triggers share one lock so at most one cycle (read, update, send,
save) is in flight at a time:
- a fixed-rate poll every ``poll_interval_seconds``; a tick that finds a
  cycle still running is skipped
- a daily trigger at ``summary_hour:00`` local time; it waits for the
  running cycle before sending the summary
"""

import asyncio
import logging
import signal
from datetime import datetime, timedelta
from typing import Callable, Set

from services.productivity_tracker.main import ProductivityTrackerService

logger = logging.getLogger(__name__)


def seconds_until_hour(now: datetime, hour: int) -> float:
    """Seconds from ``now`` to the next ``hour:00:00`` strictly after it."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class TrackerScheduler:
    """Run the tracker service on its poll and daily triggers."""

    def __init__(
        self,
        service: ProductivityTrackerService,
        poll_interval_seconds: float = 30,
        summary_hour: int = 22,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.service = service
        self.poll_interval_seconds = poll_interval_seconds
        self.summary_hour = summary_hour
        self.clock = clock
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()
        self.cycles_run = 0
        self.cycles_skipped = 0

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> bool:
        """
        Run one analysis cycle unless one is already running.

        Returns False when the tick was skipped. Errors are logged and
        never propagate, so a failed send cannot stop the scheduler.
        """
        if self._lock.locked():
            self.cycles_skipped += 1
            logger.debug("Previous cycle still running, skipping tick")
            return False

        async with self._lock:
            try:
                await self.service.analyze_and_send_events()
            except Exception as e:
                logger.error(f"Analysis cycle failed: {e}", exc_info=True)
            self.cycles_run += 1
        return True

    async def run_daily_summary(self) -> bool:
        """Send the daily summary after any running cycle completes."""
        async with self._lock:
            try:
                return await self.service.send_daily_summary(self.clock())
            except Exception as e:
                logger.error(f"Daily summary failed: {e}", exc_info=True)
                return False

    async def _sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns True if stop() was called meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    def _start_cycle(self) -> None:
        task = asyncio.create_task(self.run_cycle())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _poll_loop(self) -> None:
        logger.info(f"Polling repository every {self.poll_interval_seconds}s")
        while not self._stop_event.is_set():
            self._start_cycle()
            if await self._sleep(self.poll_interval_seconds):
                break

    async def _summary_loop(self) -> None:
        while not self._stop_event.is_set():
            delay = seconds_until_hour(self.clock(), self.summary_hour)
            logger.debug(f"Next daily summary check in {delay:.0f}s")
            if await self._sleep(delay):
                break
            await self.run_daily_summary()

    def stop(self) -> None:
        """Ask both loops to finish."""
        logger.info("Stopping tracker scheduler")
        self._stop_event.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on Windows event loops
                pass

    async def run(self, install_signal_handlers: bool = False) -> None:
        """Run until stop() is called, then wait for the running cycle."""
        self._stop_event.clear()
        if install_signal_handlers:
            self._install_signal_handlers()

        await asyncio.gather(self._poll_loop(), self._summary_loop())

        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        logger.info(
            f"Tracker scheduler stopped ({self.cycles_run} cycles run, "
            f"{self.cycles_skipped} skipped)"
        )
