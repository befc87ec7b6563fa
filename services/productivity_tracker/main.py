"""
Productivity Tracker Service for the developer productivity tracker.

This service provides:
- Detection of commits made since the last processed one (cursor hash)
- Daily, streak and lifetime counters
- Achievement detection and celebration events
- Uncommitted-changes reminders
- End-of-day summaries
- A verification event for checking the Klaviyo integration
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Tuple

import httpx

from config.settings import Settings
from shared.events import EventFactory, TrackerEvent
from shared.models import ActivitySnapshot, CommitInfo, CycleResult, TrackingRecord
from shared.storage import TrackingStore
from services.productivity_tracker.achievements import (
    EXACT,
    CounterSnapshot,
    evaluate_achievements,
)
from services.productivity_tracker.emitter import KlaviyoEventEmitter
from services.productivity_tracker.reader import GitActivityReader

logger = logging.getLogger(__name__)


def find_new_commits(
    commits: List[CommitInfo], cursor: Optional[str]
) -> Tuple[List[CommitInfo], bool]:
    """
    Split off the commits not processed yet.

    ``commits`` is newest first. Scanning stops at the cursor hash; when
    there is no cursor, or the cursor is not among ``commits``, every
    commit is new. The second value is True only in the not-found case.
    """
    if cursor is None:
        return list(commits), False

    for index, commit in enumerate(commits):
        if commit.hash == cursor:
            return list(commits[:index]), False

    return list(commits), bool(commits)


def apply_new_commits(record: TrackingRecord, new_commits: List[CommitInfo], today: date) -> None:
    """Advance the cursor and counters of ``record`` for ``new_commits``."""
    if not new_commits:
        return

    count = len(new_commits)
    record.last_commit_hash = new_commits[0].hash
    record.total_commits += count

    if record.last_active_date != today:
        record.daily_commit_count = count
        record.streak_days += 1
        record.last_active_date = today
    else:
        record.daily_commit_count += count


class ProductivityTrackerService:
    """Core tracking service: one analysis cycle per call."""

    def __init__(
        self,
        store: TrackingStore,
        reader: GitActivityReader,
        emitter: KlaviyoEventEmitter,
        uncommitted_threshold: int = 5,
        summary_hour: int = 22,
        achievement_mode: str = EXACT,
        developer_name: Optional[str] = None,
        repository_path: str = ".",
    ):
        self.store = store
        self.reader = reader
        self.emitter = emitter
        self.uncommitted_threshold = uncommitted_threshold
        self.summary_hour = summary_hour
        self.achievement_mode = achievement_mode
        self.developer_name = developer_name
        self.repository_path = repository_path

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProductivityTrackerService":
        """Wire the service from application settings."""
        return cls(
            store=TrackingStore.from_settings(settings.tracker),
            reader=GitActivityReader(settings.repository.path),
            emitter=KlaviyoEventEmitter.from_settings(settings.klaviyo, settings.developer),
            uncommitted_threshold=settings.tracker.uncommitted_threshold,
            summary_hour=settings.tracker.summary_hour,
            achievement_mode=settings.tracker.achievement_mode,
            developer_name=settings.developer.name,
            repository_path=str(Path(settings.repository.path).resolve()),
        )

    async def _send(self, event: TrackerEvent, result: Optional[CycleResult] = None):
        await self.emitter.send(event)
        if result is not None:
            result.events_sent.append(event.metric.value)

    async def analyze_and_send_events(self, today: Optional[date] = None) -> Optional[CycleResult]:
        """
        Run one analysis cycle.

        Returns None when the repository could not be read; the record is
        left untouched in that case. Otherwise the record is saved at the
        end of the cycle even when sending an event fails, and the send
        error is raised after the save.
        """
        today = today or date.today()
        activity = await asyncio.to_thread(self.reader.read_activity, today)
        if activity is None:
            logger.warning("No repository activity available, skipping cycle")
            return None

        record = self.store.load()
        result = CycleResult(record=record)

        try:
            new_commits, cursor_missing = find_new_commits(
                activity.today_commits, record.last_commit_hash
            )
            # Yesterday's cursor is never among today's commits
            cursor_missing = cursor_missing and record.last_active_date == today
            if cursor_missing:
                logger.warning(
                    f"Last processed commit {record.last_commit_hash[:8]} not found among "
                    f"today's commits, counting all {len(new_commits)} as new"
                )
            result.cursor_missing = cursor_missing
            result.new_commits = len(new_commits)

            if new_commits:
                await self._process_new_commits(record, new_commits, activity, today, result)

            if self._needs_commit_reminder(activity):
                await self._send(EventFactory.many_uncommitted_changes(activity), result)
        finally:
            self.store.save(record)

        return result

    async def _process_new_commits(
        self,
        record: TrackingRecord,
        new_commits: List[CommitInfo],
        activity: ActivitySnapshot,
        today: date,
        result: CycleResult,
    ) -> None:
        is_new_day = record.last_active_date != today
        previous = CounterSnapshot.of(record)
        if is_new_day:
            previous = replace(previous, daily_commit_count=0)

        apply_new_commits(record, new_commits, today)
        logger.info(
            f"Found {len(new_commits)} new commit(s): daily={record.daily_commit_count} "
            f"total={record.total_commits} streak={record.streak_days}"
        )

        await self._send(
            EventFactory.commit_made(new_commits[0], activity.current_branch, record), result
        )
        result.achievements_unlocked.extend(
            await self.check_and_send_achievements(record, previous, result)
        )

    def _needs_commit_reminder(self, activity: ActivitySnapshot) -> bool:
        return (
            activity.has_uncommitted_changes
            and activity.modified_files > self.uncommitted_threshold
        )

    async def check_and_send_achievements(
        self,
        record: TrackingRecord,
        previous: Optional[CounterSnapshot] = None,
        result: Optional[CycleResult] = None,
    ) -> List[str]:
        """
        Send a celebration event for every newly earned achievement.

        An achievement is recorded only after its event was sent, so a
        failed send leaves it unrecorded and raises.
        """
        unlocked = []
        for achievement in evaluate_achievements(record, previous, self.achievement_mode):
            await self._send(EventFactory.achievement_unlocked(achievement, record), result)
            record.add_achievement(achievement)
            unlocked.append(achievement)
            logger.info(f"Achievement unlocked: {achievement}")
        return unlocked

    async def send_daily_summary(self, now: Optional[datetime] = None) -> bool:
        """
        Send the end-of-day summary.

        Only sent during the configured summary hour and when commits were
        made today. Returns whether a summary was sent.
        """
        now = now or datetime.now()
        if now.hour != self.summary_hour:
            logger.debug(f"Not summary hour ({now.hour} != {self.summary_hour}), skipping")
            return False

        record = self.store.load()
        commits_today = record.commits_on(now.date())
        if commits_today <= 0:
            logger.info("No commits today, skipping daily summary")
            return False

        await self._send(EventFactory.daily_summary(commits_today, record))
        return True

    async def send_test_event(self) -> bool:
        """Send the verification event. Returns False when it fails."""
        try:
            await self._send(
                EventFactory.tracker_started(self.developer_name, self.repository_path)
            )
        except httpx.HTTPError as e:
            logger.error(f"Test event failed, check the API key and configuration: {e}")
            return False
        logger.info("Test event sent, Klaviyo integration is working")
        return True

    async def check_now(self, today: Optional[date] = None) -> Optional[CycleResult]:
        """Run a single cycle on demand."""
        logger.info("Checking for new activity...")
        return await self.analyze_and_send_events(today)
