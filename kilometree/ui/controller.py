"""Async application root used by the web UI and the CLI."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Callable, Literal, TypeVar

from kilometree.core.errors import ExternalServiceFailure, InvalidInput, MissingConfiguration
from kilometree.core.milestones import achievement_by_key, co2_offset_kg
from kilometree.core.progression import ProgressionTracker, SessionResult
from kilometree.core.state import ProgressionState
from kilometree.integrations.google import GoogleIntegration, next_saturday, progress_snapshot
from kilometree.storage.kv_store import KeyValueStore
from kilometree.tracking.session import TrackingSession
from kilometree.tracking.step_source import SimulatedStepSource, StepTicker, parse_manual_steps


Severity = Literal["success", "warning", "error", "info"]
NotificationSink = Callable[[str, Severity], None]
TrackerStatus = Literal["ready", "tracking", "paused"]

_T = TypeVar("_T")
_BOUNDARY_ERRORS = (InvalidInput, MissingConfiguration, ExternalServiceFailure)


def _print_sink(message: str, severity: Severity) -> None:
    print(f"[{severity.upper()}] {message}")


class KilometreeController:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        source: SimulatedStepSource | None = None,
        notify: NotificationSink | None = None,
        google: GoogleIntegration | None = None,
        clock: Callable[[], date] = date.today,
        tick_interval_sec: float = 1.0,
    ) -> None:
        self.tracker = ProgressionTracker(store)
        self.session = TrackingSession()
        self.google = google
        self._ticker = StepTicker(source or SimulatedStepSource(), interval_sec=tick_interval_sec)
        self._notify = notify or _print_sink
        self._clock = clock
        self.status: TrackerStatus = "ready"
        self.tracker.check_weekly_reset(self._clock())

    @property
    def state(self) -> ProgressionState:
        return self.tracker.state

    @property
    def tracking(self) -> bool:
        return self._ticker.is_running

    def _on_steps(self, steps: int) -> None:
        self.session.add(steps)

    def start_tracking(self) -> bool:
        if not self._ticker.start(self._on_steps):
            return False
        self.status = "tracking"
        self._notify("Tracking started! Start moving to earn saplings.", "success")
        return True

    async def pause_tracking(self, *, quiet: bool = False) -> None:
        if not self._ticker.is_running:
            return
        await self._ticker.stop()
        self.status = "paused"
        if not quiet:
            self._notify("Tracking paused. Click start to continue.", "warning")

    def add_manual_steps(self, raw: str | int | float | None) -> int | None:
        try:
            steps = parse_manual_steps(raw)
        except InvalidInput as exc:
            print(f"[INPUT] rejected manual steps: {exc}")
            self._notify(str(exc), "warning")
            return None
        self.session.add(steps)
        return steps

    async def save_session(self) -> SessionResult:
        await self.pause_tracking(quiet=True)
        today = self._clock()
        self.tracker.check_weekly_reset(today)
        result = self.tracker.accumulate_session(self.session.current_steps, today)
        if result.no_activity:
            self._notify("No activity to save!", "warning")
            return result

        self.session.reset()
        self.status = "ready"
        for key in self.tracker.record_achievements(result.achievements_due):
            achievement = achievement_by_key(key)
            title = achievement.title if achievement else key
            self._notify(f"Achievement unlocked: {title}", "success")
        self._notify(
            f"Session saved! You earned {result.session_saplings} saplings.", "success"
        )

        if self.google is not None:
            snapshot = progress_snapshot(self.state, today)
            try:
                failures = await asyncio.to_thread(self.google.auto_sync_on_save, snapshot)
            except Exception as exc:
                # The session is already persisted at this point.
                print(f"[GOOGLE] auto sync failed: {exc}")
                failures = [f"Auto sync failed: {exc}"]
            for message in failures:
                self._notify(message, "warning")
        return result

    async def _call_google(
        self, label: str, call: Callable[[GoogleIntegration], _T]
    ) -> tuple[bool, _T | None]:
        google = self.google
        if google is None:
            self._notify("Google integration is not configured", "error")
            return False, None
        try:
            return True, await asyncio.to_thread(call, google)
        except _BOUNDARY_ERRORS as exc:
            print(f"[GOOGLE] {label} failed: {exc}")
            self._notify(f"{label} failed: {exc}", "error")
            return False, None

    async def sync_fit_steps(self) -> int | None:
        """Pull today's steps from Google Fit into the current session."""
        start = datetime.combine(self._clock(), time.min).astimezone()
        end = min(datetime.now().astimezone(), start + timedelta(days=1))
        if end <= start:
            end = start + timedelta(days=1)
        ok, steps = await self._call_google(
            "Google Fit sync", lambda google: google.fetch_step_count(start, end)
        )
        if not ok or steps is None:
            return None
        self.session.add(steps)
        self._notify(f"Imported {steps} steps from Google Fit", "success")
        return steps

    async def sync_to_sheet(self) -> bool:
        snapshot = progress_snapshot(self.state, self._clock())
        ok, _ = await self._call_google(
            "Sheet sync", lambda google: google.append_to_sheet(snapshot)
        )
        if ok:
            self._notify("Progress synced to Google Sheets", "success")
        return ok

    async def schedule_group_walk(self, now: datetime | None = None) -> bool:
        start = next_saturday(now or datetime.now())
        saplings = self.state.total_saplings
        description = (
            f"Kilometree group walk. Current forest: {saplings} saplings, "
            f"{co2_offset_kg(saplings):.0f} kg CO2 offset per year."
        )
        ok, _ = await self._call_google(
            "Calendar event",
            lambda google: google.create_calendar_event(
                "Kilometree Group Walk", description, start
            ),
        )
        if ok:
            self._notify("Group walk added to Google Calendar", "success")
        return ok

    async def submit_form(self, user: str) -> tuple[bool, str | None]:
        """Returns (submitted, prefill_url); the URL is for the UI to open."""
        total_saplings = self.state.total_saplings
        weekly_km = self.state.weekly_distance_km
        ok, url = await self._call_google(
            "Form submission",
            lambda google: google.submit_form_response(user, total_saplings, weekly_km),
        )
        if ok and url is None:
            self._notify("Form response sent", "success")
        return ok, url

    def looker_url(self) -> str | None:
        if self.google is None:
            self._notify("Google integration is not configured", "error")
            return None
        try:
            return self.google.looker_dashboard_url()
        except MissingConfiguration as exc:
            self._notify(str(exc), "error")
            return None

    async def upload_video(self, path: Path, title: str, description: str = "") -> bool:
        ok, _ = await self._call_google(
            "Video upload",
            lambda google: google.upload_youtube_video(path, title, description),
        )
        if ok:
            self._notify("Video uploaded to YouTube (unlisted)", "success")
        return ok

    async def shutdown(self) -> None:
        await self._ticker.stop()
