"""Milestone ladder, weekly challenge and achievement rules."""

from __future__ import annotations

from collections.abc import Container, Sequence
from dataclasses import dataclass


MILESTONES: tuple[int, ...] = (10, 25, 50, 100, 200)
EXTENDED_MILESTONES: tuple[int, ...] = (10, 25, 50, 100, 200, 500, 1000)

WEEKLY_CHALLENGE_TARGET_KM = 10.0
CO2_PER_SAPLING_KG = 22

MILESTONE_REWARDS: dict[int, str] = {
    10: "Bronze Badge",
    25: "Silver Badge",
    50: "Gold Badge",
    100: "Platinum Badge",
    200: "Forest Guardian",
    500: "Eco Champion",
    1000: "Planet Protector",
}
LEGENDARY_REWARD = "Legendary Status"


@dataclass(frozen=True)
class AchievementDefinition:
    key: str
    threshold: int
    icon: str
    title: str
    description: str


@dataclass(frozen=True)
class MilestoneProgress:
    previous: int
    next: int
    percent: float


def _clamp_pct(value: float) -> float:
    return max(0.0, min(100.0, value))


def next_milestone(saplings: int, milestones: Sequence[int] = MILESTONES) -> int:
    for milestone in milestones:
        if milestone > saplings:
            return milestone
    # Past the table the ladder keeps climbing in steps of the last rung.
    last = milestones[-1]
    return (saplings // last + 1) * last


def milestone_progress(
    saplings: int, milestones: Sequence[int] = MILESTONES
) -> MilestoneProgress:
    previous = max((m for m in milestones if m <= saplings), default=0)
    upcoming = next_milestone(saplings, milestones)
    percent = _clamp_pct(100.0 * (saplings - previous) / (upcoming - previous))
    return MilestoneProgress(previous=previous, next=upcoming, percent=percent)


def reward_for(milestone: int) -> str:
    return MILESTONE_REWARDS.get(milestone, LEGENDARY_REWARD)


def weekly_challenge_progress(
    weekly_distance_km: float, target: float = WEEKLY_CHALLENGE_TARGET_KM
) -> float:
    return _clamp_pct(100.0 * weekly_distance_km / target)


def co2_offset_kg(total_saplings: int) -> float:
    """Yearly CO2 absorbed by the planted saplings, in kilograms."""
    return float(total_saplings * CO2_PER_SAPLING_KG)


def check_achievements(
    total_saplings: int,
    unlocked: Container[str],
    achievements: Sequence[AchievementDefinition] | None = None,
) -> list[str]:
    """Return ids that are now earned but not unlocked yet, in threshold order.

    Nothing is mutated here; the caller records the returned ids.
    """
    table = ACHIEVEMENTS if achievements is None else achievements
    return [
        item.key
        for item in sorted(table, key=lambda a: a.threshold)
        if item.threshold <= total_saplings and item.key not in unlocked
    ]


def achievement_by_key(key: str) -> AchievementDefinition | None:
    for item in ACHIEVEMENTS:
        if item.key == key:
            return item
    return None


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        key="bronze",
        threshold=10,
        icon="🥉",
        title="Bronze Planter",
        description="Planted your first 10 saplings!",
    ),
    AchievementDefinition(
        key="silver",
        threshold=25,
        icon="🥈",
        title="Silver Planter",
        description="Reached 25 saplings milestone!",
    ),
    AchievementDefinition(
        key="gold",
        threshold=50,
        icon="🥇",
        title="Gold Planter",
        description="Amazing! 50 saplings planted!",
    ),
    AchievementDefinition(
        key="platinum",
        threshold=100,
        icon="💎",
        title="Platinum Planter",
        description="Incredible! 100 saplings achieved!",
    ),
)
