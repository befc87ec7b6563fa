"""
Event definitions for the developer productivity tracker.

This module provides:
- Metric names sent to Klaviyo
- Profile identity derived from the configured developer
- Klaviyo JSON:API event envelope construction
- A factory building the properties of every tracker event
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field

from shared.models import (
    ActivitySnapshot,
    CommitInfo,
    TrackingRecord,
    calculate_productivity_score,
)


class MetricName(str, Enum):
    """Metric names, namespaced with the configured prefix when sent."""

    COMMIT_MADE = "commit_made"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    MANY_UNCOMMITTED_CHANGES = "many_uncommitted_changes"
    DAILY_SUMMARY = "daily_summary"
    TRACKER_STARTED = "tracker_started"


class ProfileIdentity(BaseModel):
    """Klaviyo profile the events are attributed to."""

    email: str
    first_name: str = "Developer"
    last_name: str = ""

    @classmethod
    def from_display_name(cls, email: str, display_name: Optional[str]) -> "ProfileIdentity":
        """Split a display name on its first space into first and last name."""
        first, _, last = (display_name or "").partition(" ")
        return cls(email=email, first_name=first or "Developer", last_name=last)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "data": {
                "type": "profile",
                "attributes": {
                    "email": self.email,
                    "first_name": self.first_name,
                    "last_name": self.last_name,
                },
            }
        }


class TrackerEvent(BaseModel):
    """An event waiting to be sent: metric plus properties."""

    metric: MetricName
    properties: Dict[str, Any] = Field(default_factory=dict)


def namespaced_metric(prefix: str, metric_name: str) -> str:
    """Return ``{prefix}.{metric_name}``."""
    return f"{prefix}.{metric_name}"


def build_event_payload(
    metric_name: str,
    properties: Dict[str, Any],
    profile: ProfileIdentity,
    metric_prefix: str,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the Klaviyo ``POST /api/events/`` request body.

    The timestamp is added to the properties and overrides any
    ``timestamp`` key the caller passed.
    """
    timestamp = timestamp or datetime.now(timezone.utc)
    return {
        "data": {
            "type": "event",
            "attributes": {
                "properties": {
                    **properties,
                    "timestamp": timestamp.isoformat(),
                },
                "metric": {
                    "data": {
                        "type": "metric",
                        "attributes": {
                            "name": namespaced_metric(metric_prefix, metric_name),
                        },
                    }
                },
                "profile": profile.to_payload(),
            },
        }
    }


class EventFactory:
    """Factory for the properties of every tracker event."""

    @staticmethod
    def commit_made(commit: CommitInfo, branch: str, record: TrackingRecord) -> TrackerEvent:
        return TrackerEvent(
            metric=MetricName.COMMIT_MADE,
            properties={
                "commit_hash": commit.short_hash,
                "commit_message": commit.message,
                "author": commit.author,
                "branch": branch,
                "files_changed": commit.files_changed,
                "daily_commit_count": record.daily_commit_count,
                "total_commits": record.total_commits,
                "streak_days": record.streak_days,
            },
        )

    @staticmethod
    def achievement_unlocked(achievement: str, record: TrackingRecord) -> TrackerEvent:
        return TrackerEvent(
            metric=MetricName.ACHIEVEMENT_UNLOCKED,
            properties={
                "achievement_type": achievement,
                "total_commits": record.total_commits,
                "streak_days": record.streak_days,
                "daily_commits": record.daily_commit_count,
                "celebration": True,
            },
        )

    @staticmethod
    def many_uncommitted_changes(snapshot: ActivitySnapshot) -> TrackerEvent:
        return TrackerEvent(
            metric=MetricName.MANY_UNCOMMITTED_CHANGES,
            properties={
                "modified_files_count": snapshot.modified_files,
                "current_branch": snapshot.current_branch,
                "reminder_type": "commit_reminder",
            },
        )

    @staticmethod
    def daily_summary(commits_today: int, record: TrackingRecord) -> TrackerEvent:
        return TrackerEvent(
            metric=MetricName.DAILY_SUMMARY,
            properties={
                "commits_today": commits_today,
                "streak_days": record.streak_days,
                "total_commits": record.total_commits,
                "productivity_score": calculate_productivity_score(
                    commits_today, record.streak_days
                ),
                "summary_type": "end_of_day",
            },
        )

    @staticmethod
    def tracker_started(developer_name: Optional[str], repository_path: str) -> TrackerEvent:
        return TrackerEvent(
            metric=MetricName.TRACKER_STARTED,
            properties={
                "message": "Developer productivity tracker is now active!",
                "setup_complete": True,
                "developer_name": developer_name,
                "repository_path": repository_path,
            },
        )


__all__ = [
    "MetricName",
    "ProfileIdentity",
    "TrackerEvent",
    "namespaced_metric",
    "build_event_payload",
    "EventFactory",
]
