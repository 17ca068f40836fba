"""Dashboard view model derived from the progression state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from kilometree.core.milestones import (
    ACHIEVEMENTS,
    WEEKLY_CHALLENGE_TARGET_KM,
    MilestoneProgress,
    co2_offset_kg,
    milestone_progress,
    reward_for,
    weekly_challenge_progress,
)
from kilometree.core.state import ProgressionState


FOREST_MAX_TREES = 100
FOREST_TREE_GLYPHS = ("🌲", "🌳", "🌴")
MEDALS = ("🥇", "🥈", "🥉")


@dataclass(frozen=True)
class ChartDay:
    label: str
    day: date
    steps: int
    distance_km: float
    saplings: int


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    avatar: str
    saplings: int
    change: str
    is_current_user: bool = False

    @property
    def rank_label(self) -> str:
        return MEDALS[self.rank - 1] if self.rank <= len(MEDALS) else str(self.rank)


@dataclass(frozen=True)
class AchievementCard:
    key: str
    icon: str
    title: str
    threshold: int
    progress_pct: float
    unlocked: bool


@dataclass(frozen=True)
class Forest:
    trees: tuple[str, ...]
    overflow: int

    @property
    def empty(self) -> bool:
        return not self.trees


@dataclass(frozen=True)
class DashboardView:
    total_steps: int
    total_distance_km: float
    total_saplings: int
    co2_offset_kg: float
    streak_days: int
    milestone: MilestoneProgress
    next_reward: str
    weekly_distance_km: float
    weekly_target_km: float
    weekly_pct: float
    challenge_time_left: str
    chart: tuple[ChartDay, ...]
    forest: Forest
    leaderboard: tuple[LeaderboardEntry, ...]
    achievements: tuple[AchievementCard, ...]


COMMUNITY: tuple[tuple[str, str, int, str], ...] = (
    ("Alex Chen", "👨‍💻", 156, "+12"),
    ("Sarah Johnson", "👩‍🌾", 142, "+8"),
    ("Mike Rodriguez", "👨‍🎓", 138, "+15"),
    ("Emma Wilson", "👩‍💼", 89, "+5"),
    ("David Kim", "👨‍🔬", 76, "+3"),
    ("Lisa Zhang", "👩‍🎨", 65, "+7"),
    ("Tom Brown", "👨‍🏫", 52, "+2"),
)


def challenge_time_left(today: date) -> str:
    # Challenge weeks run Sunday..Saturday.
    days_left = (5 - today.weekday()) % 7
    if days_left == 0:
        return "Last day!"
    return f"{days_left} day left" if days_left == 1 else f"{days_left} days left"


def last_days(state: ProgressionState, today: date, count: int = 7) -> tuple[ChartDay, ...]:
    out: list[ChartDay] = []
    for offset in range(count - 1, -1, -1):
        day = today - timedelta(days=offset)
        entry = state.day(day)
        out.append(
            ChartDay(
                label=day.strftime("%a"),
                day=day,
                steps=entry.steps,
                distance_km=entry.distance_km,
                saplings=entry.saplings,
            )
        )
    return tuple(out)


def build_forest(total_saplings: int) -> Forest:
    shown = min(total_saplings, FOREST_MAX_TREES)
    trees = tuple(FOREST_TREE_GLYPHS[i % len(FOREST_TREE_GLYPHS)] for i in range(shown))
    return Forest(trees=trees, overflow=max(0, total_saplings - FOREST_MAX_TREES))


def build_leaderboard(total_saplings: int) -> tuple[LeaderboardEntry, ...]:
    rows = [(name, avatar, saplings, change, False) for name, avatar, saplings, change in COMMUNITY]
    rows.append(("You", "🌱", total_saplings, "+0", True))
    # Stable sort keeps "You" below community members with the same count.
    rows.sort(key=lambda row: row[2], reverse=True)
    return tuple(
        LeaderboardEntry(
            rank=index + 1,
            name=name,
            avatar=avatar,
            saplings=saplings,
            change=change,
            is_current_user=is_you,
        )
        for index, (name, avatar, saplings, change, is_you) in enumerate(rows)
    )


def build_achievement_cards(state: ProgressionState) -> tuple[AchievementCard, ...]:
    return tuple(
        AchievementCard(
            key=item.key,
            icon=item.icon,
            title=item.title,
            threshold=item.threshold,
            progress_pct=min(100.0 * state.total_saplings / item.threshold, 100.0),
            unlocked=state.total_saplings >= item.threshold,
        )
        for item in ACHIEVEMENTS
    )


def build_dashboard(state: ProgressionState, today: date) -> DashboardView:
    progress = milestone_progress(state.total_saplings)
    return DashboardView(
        total_steps=state.total_steps,
        total_distance_km=state.total_distance_km,
        total_saplings=state.total_saplings,
        co2_offset_kg=co2_offset_kg(state.total_saplings),
        streak_days=state.streak_days,
        milestone=progress,
        next_reward=reward_for(progress.next),
        weekly_distance_km=state.weekly_distance_km,
        weekly_target_km=WEEKLY_CHALLENGE_TARGET_KM,
        weekly_pct=weekly_challenge_progress(state.weekly_distance_km),
        challenge_time_left=challenge_time_left(today),
        chart=last_days(state, today),
        forest=build_forest(state.total_saplings),
        leaderboard=build_leaderboard(state.total_saplings),
        achievements=build_achievement_cards(state),
    )
