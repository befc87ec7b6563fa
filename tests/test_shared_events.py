"""
Unit tests for shared events module.
"""

from datetime import date, datetime, timezone

import pytest

from shared.events import (
    EventFactory,
    MetricName,
    ProfileIdentity,
    build_event_payload,
    namespaced_metric,
)
from shared.models import ActivitySnapshot, CommitInfo, TrackingRecord


@pytest.fixture
def record():
    return TrackingRecord(
        last_commit_hash="abc123def4567890",
        daily_commit_count=3,
        streak_days=4,
        total_commits=27,
        last_active_date=date(2024, 5, 17),
    )


class TestMetricName:
    """Test cases for MetricName."""

    def test_metric_values(self):
        assert MetricName.COMMIT_MADE.value == "commit_made"
        assert MetricName.ACHIEVEMENT_UNLOCKED.value == "achievement_unlocked"
        assert MetricName.MANY_UNCOMMITTED_CHANGES.value == "many_uncommitted_changes"
        assert MetricName.DAILY_SUMMARY.value == "daily_summary"
        assert MetricName.TRACKER_STARTED.value == "tracker_started"

    def test_namespaced_metric(self):
        assert namespaced_metric("developer_productivity", "commit_made") == (
            "developer_productivity.commit_made"
        )


class TestProfileIdentity:
    """Test cases for ProfileIdentity."""

    @pytest.mark.parametrize(
        "display_name, first, last",
        [
            ("Ada Lovelace", "Ada", "Lovelace"),
            ("Ada King Lovelace", "Ada", "King Lovelace"),
            ("Ada", "Ada", ""),
            ("", "Developer", ""),
            (None, "Developer", ""),
        ],
    )
    def test_name_split_on_first_space(self, display_name, first, last):
        profile = ProfileIdentity.from_display_name("ada@example.com", display_name)

        assert profile.email == "ada@example.com"
        assert profile.first_name == first
        assert profile.last_name == last

    def test_profile_payload(self):
        profile = ProfileIdentity.from_display_name("ada@example.com", "Ada Lovelace")

        assert profile.to_payload() == {
            "data": {
                "type": "profile",
                "attributes": {
                    "email": "ada@example.com",
                    "first_name": "Ada",
                    "last_name": "Lovelace",
                },
            }
        }


class TestBuildEventPayload:
    """Test cases for the Klaviyo event envelope."""

    def test_envelope_shape(self):
        profile = ProfileIdentity.from_display_name("ada@example.com", "Ada Lovelace")
        timestamp = datetime(2024, 5, 17, 21, 30, tzinfo=timezone.utc)

        payload = build_event_payload(
            "commit_made",
            {"commit_hash": "abc123de"},
            profile=profile,
            metric_prefix="developer_productivity",
            timestamp=timestamp,
        )

        attributes = payload["data"]["attributes"]
        assert payload["data"]["type"] == "event"
        assert attributes["properties"] == {
            "commit_hash": "abc123de",
            "timestamp": "2024-05-17T21:30:00+00:00",
        }
        assert attributes["metric"] == {
            "data": {
                "type": "metric",
                "attributes": {"name": "developer_productivity.commit_made"},
            }
        }
        assert attributes["profile"] == profile.to_payload()

    def test_timestamp_overrides_caller_value(self):
        profile = ProfileIdentity(email="a@b.c")

        payload = build_event_payload(
            "daily_summary", {"timestamp": "stale"}, profile=profile, metric_prefix="p"
        )

        assert payload["data"]["attributes"]["properties"]["timestamp"] != "stale"

    def test_properties_are_not_mutated(self):
        properties = {"a": 1}
        build_event_payload("x", properties, profile=ProfileIdentity(email="a@b.c"), metric_prefix="p")
        assert properties == {"a": 1}


class TestEventFactory:
    """Test cases for EventFactory."""

    def test_commit_made(self, record):
        commit = CommitInfo(
            hash="abc123def4567890",
            message="feat: add tracker",
            author="A",
            files_changed=3,
        )

        event = EventFactory.commit_made(commit, "main", record)

        assert event.metric is MetricName.COMMIT_MADE
        assert event.properties == {
            "commit_hash": "abc123de",
            "commit_message": "feat: add tracker",
            "author": "A",
            "branch": "main",
            "files_changed": 3,
            "daily_commit_count": 3,
            "total_commits": 27,
            "streak_days": 4,
        }

    def test_achievement_unlocked(self, record):
        event = EventFactory.achievement_unlocked("week_streak", record)

        assert event.metric is MetricName.ACHIEVEMENT_UNLOCKED
        assert event.properties == {
            "achievement_type": "week_streak",
            "total_commits": 27,
            "streak_days": 4,
            "daily_commits": 3,
            "celebration": True,
        }

    def test_many_uncommitted_changes(self):
        snapshot = ActivitySnapshot(
            current_branch="feature/x", has_uncommitted_changes=True, modified_files=8
        )

        event = EventFactory.many_uncommitted_changes(snapshot)

        assert event.metric is MetricName.MANY_UNCOMMITTED_CHANGES
        assert event.properties == {
            "modified_files_count": 8,
            "current_branch": "feature/x",
            "reminder_type": "commit_reminder",
        }

    def test_daily_summary(self, record):
        event = EventFactory.daily_summary(3, record)

        assert event.metric is MetricName.DAILY_SUMMARY
        assert event.properties == {
            "commits_today": 3,
            "streak_days": 4,
            "total_commits": 27,
            "productivity_score": 38,
            "summary_type": "end_of_day",
        }

    def test_tracker_started(self):
        event = EventFactory.tracker_started("Ada Lovelace", "/srv/repo")

        assert event.metric is MetricName.TRACKER_STARTED
        assert event.properties["setup_complete"] is True
        assert event.properties["developer_name"] == "Ada Lovelace"
        assert event.properties["repository_path"] == "/srv/repo"
