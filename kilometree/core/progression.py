"""Session accounting: totals, streak, weekly challenge and daily ledger."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, Literal

from kilometree.core.errors import InvalidInput
from kilometree.core.milestones import check_achievements
from kilometree.core.state import STEP_LENGTH_KM, DailyEntry, ProgressionState
from kilometree.storage.kv_store import KeyValueStore
from kilometree.storage.state_codec import load_state, save_state


SessionStatus = Literal["saved", "no_activity"]
StateListener = Callable[[ProgressionState], None]


@dataclass(frozen=True)
class SessionResult:
    status: SessionStatus
    session_steps: int
    session_distance_km: float
    session_saplings: int
    total_steps: int
    total_distance_km: float
    total_saplings: int
    streak_days: int
    weekly_distance_km: float
    achievements_due: tuple[str, ...] = ()

    @property
    def no_activity(self) -> bool:
        return self.status == "no_activity"


def week_number(day: date) -> int:
    """Sunday-based week index within the year, counting Jan 1 as week 1.

    ceil((days_since_jan1 + jan1_weekday + 1) / 7) with Sunday == 0. This is
    not ISO-8601 numbering; weekly resets depend on these exact boundaries.
    """
    jan1 = date(day.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7
    days_since_jan1 = (day - jan1).days
    return math.ceil((days_since_jan1 + jan1_weekday + 1) / 7)


def next_streak(streak_days: int, last_active: date | None, today: date) -> int:
    if last_active == today:
        return streak_days
    if last_active is not None and last_active + timedelta(days=1) == today:
        return streak_days + 1
    return 1


class ProgressionTracker:
    def __init__(
        self,
        store: KeyValueStore,
        state: ProgressionState | None = None,
    ) -> None:
        self._store = store
        self.state = state if state is not None else load_state(store)
        self._listeners: list[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self) -> None:
        save_state(self.state, self._store)
        for listener in list(self._listeners):
            listener(self.state)

    def accumulate_session(self, session_steps: int, today: date) -> SessionResult:
        if session_steps < 0:
            raise InvalidInput(f"Step count must be >= 0, got {session_steps}")

        state = self.state
        if session_steps == 0:
            return SessionResult(
                status="no_activity",
                session_steps=0,
                session_distance_km=0.0,
                session_saplings=0,
                total_steps=state.total_steps,
                total_distance_km=state.total_distance_km,
                total_saplings=state.total_saplings,
                streak_days=state.streak_days,
                weekly_distance_km=state.weekly_distance_km,
            )

        distance_km = session_steps * STEP_LENGTH_KM
        saplings = math.floor(distance_km)

        state.total_steps += session_steps
        state.total_saplings += saplings
        state.weekly_distance_km += distance_km

        entry = state.daily_history.setdefault(today, DailyEntry())
        entry.steps += session_steps
        entry.distance_km += distance_km
        entry.saplings += saplings

        state.streak_days = next_streak(state.streak_days, state.last_active_date, today)
        state.last_active_date = today

        self._commit()
        print(
            f"[SESSION] {today.isoformat()} steps={session_steps} "
            f"km={distance_km:.2f} saplings={saplings} streak={state.streak_days}"
        )
        return SessionResult(
            status="saved",
            session_steps=session_steps,
            session_distance_km=distance_km,
            session_saplings=saplings,
            total_steps=state.total_steps,
            total_distance_km=state.total_distance_km,
            total_saplings=state.total_saplings,
            streak_days=state.streak_days,
            weekly_distance_km=state.weekly_distance_km,
            achievements_due=tuple(
                check_achievements(state.total_saplings, state.unlocked_achievements)
            ),
        )

    def check_weekly_reset(self, today: date) -> bool:
        current_week = week_number(today)
        if self.state.last_week_number == current_week:
            return False
        self.state.weekly_distance_km = 0.0
        self.state.last_week_number = current_week
        self._commit()
        print(f"[WEEK] weekly challenge reset for week {current_week}")
        return True

    def pending_achievements(self) -> list[str]:
        return check_achievements(self.state.total_saplings, self.state.unlocked_achievements)

    def record_achievements(self, keys: Iterable[str]) -> list[str]:
        added = [
            key for key in dict.fromkeys(keys) if key not in self.state.unlocked_achievements
        ]
        if not added:
            return []
        self.state.unlocked_achievements.update(added)
        self._commit()
        return added
