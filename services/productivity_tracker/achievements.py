"""
Achievement rules.

Each rule watches one counter of the tracking record and a trigger value.
In ``exact`` mode a rule matches when the counter equals its trigger after
the update. In ``crossing`` mode it matches when the trigger lies in
``(previous, current]``, so a cycle that adds several commits at once
cannot jump over it.
"""

from dataclasses import dataclass
from typing import List, Optional

from shared.models import TrackingRecord

EXACT = "exact"
CROSSING = "crossing"

MILESTONES = (10, 50, 100, 500, 1000)


@dataclass(frozen=True)
class AchievementRule:
    achievement: str
    counter: str
    trigger: int


@dataclass(frozen=True)
class CounterSnapshot:
    """Counter values before a cycle's update."""

    total_commits: int = 0
    daily_commit_count: int = 0
    streak_days: int = 0

    @classmethod
    def of(cls, record: TrackingRecord) -> "CounterSnapshot":
        return cls(
            total_commits=record.total_commits,
            daily_commit_count=record.daily_commit_count,
            streak_days=record.streak_days,
        )


ACHIEVEMENT_RULES = (
    AchievementRule("first_commit", "total_commits", 1),
    AchievementRule("daily_5_commits", "daily_commit_count", 5),
    AchievementRule("daily_10_commits", "daily_commit_count", 10),
    AchievementRule("week_streak", "streak_days", 7),
    AchievementRule("month_streak", "streak_days", 30),
) + tuple(
    AchievementRule(f"{milestone}_commits_milestone", "total_commits", milestone)
    for milestone in MILESTONES
)


def _rule_matches(
    rule: AchievementRule,
    record: TrackingRecord,
    previous: Optional[CounterSnapshot],
    mode: str,
) -> bool:
    current = getattr(record, rule.counter)
    if mode == CROSSING and previous is not None:
        return getattr(previous, rule.counter) < rule.trigger <= current
    return current == rule.trigger


def evaluate_achievements(
    record: TrackingRecord,
    previous: Optional[CounterSnapshot] = None,
    mode: str = EXACT,
) -> List[str]:
    """
    Return achievement ids earned by ``record`` and not unlocked yet.

    ``previous`` is only used in crossing mode; without it crossing
    falls back to exact matching.
    """
    if mode not in (EXACT, CROSSING):
        raise ValueError(f"Unknown achievement mode: {mode}")

    return [
        rule.achievement
        for rule in ACHIEVEMENT_RULES
        if _rule_matches(rule, record, previous, mode)
        and not record.has_achievement(rule.achievement)
    ]
