"""
Data models for the developer productivity tracker.

This module provides:
- The persisted tracking record (counters, cursor, achievements)
- Repository activity snapshots read from Git
- Analysis cycle results
- Productivity score calculation
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


MAX_BASE_SCORE = 100
MAX_STREAK_BONUS = 50
MAX_PRODUCTIVITY_SCORE = 150


class TrackingRecord(BaseModel):
    """
    Persistent counters for one developer and one repository.

    Serialized with camelCase keys (lastCommitHash, dailyCommitCount, ...)
    so tracking files keep a stable, human-readable shape.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    last_commit_hash: Optional[str] = Field(default=None, description="Cursor hash")
    daily_commit_count: int = Field(default=0, ge=0, description="Commits seen today")
    streak_days: int = Field(default=0, ge=0, description="Active days in the streak")
    total_commits: int = Field(default=0, ge=0, description="Lifetime commit count")
    last_active_date: Optional[date] = Field(default=None, description="Date of last activity")
    achievements: List[str] = Field(default_factory=list, description="Unlocked achievement ids")

    @field_validator("achievements")
    @classmethod
    def deduplicate_achievements(cls, v):
        """Keep the first occurrence of each id, preserving order."""
        seen = set()
        unique = []
        for achievement in v:
            if achievement not in seen:
                seen.add(achievement)
                unique.append(achievement)
        return unique

    def has_achievement(self, achievement: str) -> bool:
        return achievement in self.achievements

    def add_achievement(self, achievement: str) -> bool:
        """Record an achievement. Returns False if it was already present."""
        if self.has_achievement(achievement):
            return False
        self.achievements = self.achievements + [achievement]
        return True

    def commits_on(self, day: date) -> int:
        """Commits counted for ``day``; the daily counter is stale on other days."""
        if self.last_active_date != day:
            return 0
        return self.daily_commit_count

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CommitInfo(BaseModel):
    """A commit as seen by the activity reader."""

    hash: str = Field(..., min_length=7, description="Full commit hash")
    message: str = Field(default="", description="Commit summary line")
    author: str = Field(default="", description="Author name")
    timestamp: Optional[datetime] = Field(default=None, description="Commit timestamp")
    files_changed: int = Field(default=0, ge=0, description="Number of files touched")

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


class ActivitySnapshot(BaseModel):
    """Repository state read in one poll."""

    today_commits: List[CommitInfo] = Field(
        default_factory=list, description="Today's commits, newest first"
    )
    current_branch: str = Field(default="", description="Checked-out branch name")
    has_uncommitted_changes: bool = Field(default=False)
    modified_files: int = Field(default=0, ge=0, description="Files reported by git status")


class CycleResult(BaseModel):
    """Outcome of one analysis cycle."""

    new_commits: int = 0
    events_sent: List[str] = Field(default_factory=list)
    achievements_unlocked: List[str] = Field(default_factory=list)
    cursor_missing: bool = False
    record: Optional[TrackingRecord] = None


def calculate_productivity_score(daily_commits: int, streak_days: int) -> int:
    """
    Combine today's commits and the streak into a capped score.

    Ten points per commit (up to 100) plus two points per streak day
    (up to 50), capped at 150.
    """
    base_score = min(daily_commits * 10, MAX_BASE_SCORE)
    streak_bonus = min(streak_days * 2, MAX_STREAK_BONUS)
    return min(base_score + streak_bonus, MAX_PRODUCTIVITY_SCORE)


__all__ = [
    "TrackingRecord",
    "CommitInfo",
    "ActivitySnapshot",
    "CycleResult",
    "calculate_productivity_score",
]
