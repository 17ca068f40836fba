"""Lifetime progression state owned by the application root."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

STEP_LENGTH_KM = 0.0008


@dataclass
class DailyEntry:
    steps: int = 0
    distance_km: float = 0.0
    saplings: int = 0


@dataclass
class ProgressionState:
    total_steps: int = 0
    total_saplings: int = 0
    streak_days: int = 0
    last_active_date: date | None = None
    weekly_distance_km: float = 0.0
    last_week_number: int | None = None
    daily_history: dict[date, DailyEntry] = field(default_factory=dict)
    unlocked_achievements: set[str] = field(default_factory=set)

    @property
    def total_distance_km(self) -> float:
        return self.total_steps * STEP_LENGTH_KM

    def day(self, day: date) -> DailyEntry:
        return self.daily_history.get(day) or DailyEntry()
