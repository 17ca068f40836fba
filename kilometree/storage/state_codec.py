"""Text encoding of ProgressionState into the persisted key layout."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from kilometree.core.state import DailyEntry, ProgressionState
from kilometree.storage.kv_store import KeyValueStore

KEY_TOTAL_STEPS = "totalSteps"
KEY_TOTAL_SAPLINGS = "totalSaplings"
KEY_STREAK = "streak"
KEY_LAST_ACTIVE_DATE = "lastActiveDate"
KEY_WEEKLY_DISTANCE = "weeklyDistance"
KEY_DAILY_DATA = "dailyData"
KEY_ACHIEVEMENTS = "achievements"
KEY_LAST_WEEKLY_RESET = "lastWeeklyReset"


def _int(raw: str | None) -> int:
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        return int(float(raw))


def _float(raw: str | None) -> float:
    return float(raw) if raw else 0.0


def _date(raw: str | None) -> date | None:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        print(f"[STORE] ignoring malformed {KEY_LAST_ACTIVE_DATE}: {raw!r}")
        return None


def _json_object(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _decode_daily(raw: str | None) -> dict[date, DailyEntry]:
    out: dict[date, DailyEntry] = {}
    for day, item in _json_object(raw).items():
        try:
            key = date.fromisoformat(day)
        except ValueError:
            continue
        if not isinstance(item, dict):
            continue
        out[key] = DailyEntry(
            steps=int(item.get("steps", 0)),
            distance_km=float(item.get("distance", 0.0)),
            saplings=int(item.get("saplings", 0)),
        )
    return out


def _encode_daily(history: dict[date, DailyEntry]) -> str:
    return json.dumps(
        {
            day.isoformat(): {
                "steps": entry.steps,
                "distance": entry.distance_km,
                "saplings": entry.saplings,
            }
            for day, entry in history.items()
        }
    )


def load_state(store: KeyValueStore) -> ProgressionState:
    """Read every field from the store, defaulting to zero/empty when absent."""
    last_week = store.get(KEY_LAST_WEEKLY_RESET)
    achievements = _json_object(store.get(KEY_ACHIEVEMENTS))
    return ProgressionState(
        total_steps=_int(store.get(KEY_TOTAL_STEPS)),
        total_saplings=_int(store.get(KEY_TOTAL_SAPLINGS)),
        streak_days=_int(store.get(KEY_STREAK)),
        last_active_date=_date(store.get(KEY_LAST_ACTIVE_DATE)),
        weekly_distance_km=_float(store.get(KEY_WEEKLY_DISTANCE)),
        last_week_number=_int(last_week) if last_week else None,
        daily_history=_decode_daily(store.get(KEY_DAILY_DATA)),
        unlocked_achievements={key for key, value in achievements.items() if value},
    )


def save_state(state: ProgressionState, store: KeyValueStore) -> None:
    store.set(KEY_TOTAL_STEPS, str(state.total_steps))
    store.set(KEY_TOTAL_SAPLINGS, str(state.total_saplings))
    store.set(KEY_STREAK, str(state.streak_days))
    store.set(
        KEY_LAST_ACTIVE_DATE,
        state.last_active_date.isoformat() if state.last_active_date else "",
    )
    store.set(KEY_WEEKLY_DISTANCE, str(float(state.weekly_distance_km)))
    store.set(KEY_DAILY_DATA, _encode_daily(state.daily_history))
    store.set(
        KEY_ACHIEVEMENTS,
        json.dumps({key: True for key in sorted(state.unlocked_achievements)}),
    )
    if state.last_week_number is not None:
        store.set(KEY_LAST_WEEKLY_RESET, str(state.last_week_number))
