"""NiceGUI web UI for Kilometree."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from pathlib import Path
from typing import Any

from nicegui import ui

from kilometree.core.state import ProgressionState
from kilometree.integrations.google import GoogleIntegration
from kilometree.integrations.google_config import load_google_config, save_google_config
from kilometree.storage.kv_store import JsonFileStore
from kilometree.ui.controller import KilometreeController, Severity
from kilometree.ui.dashboard import DashboardView, build_dashboard

NOTIFY_TYPES: dict[str, str] = {
    "success": "positive",
    "warning": "warning",
    "error": "negative",
    "info": "info",
}
STATUS_TEXT = {
    "ready": ("Ready to track", "text-slate-400"),
    "tracking": ("Tracking active", "text-green-500"),
    "paused": ("Tracking paused", "text-amber-500"),
}


def _fmt_int(value: int) -> str:
    return f"{value:,}"


def _chart_options(view: DashboardView) -> dict[str, Any]:
    return {
        "tooltip": {"trigger": "axis"},
        "legend": {"data": ["Steps", "Saplings"], "textStyle": {"color": "#334155"}},
        "xAxis": {"type": "category", "data": [d.label for d in view.chart]},
        "yAxis": [
            {"type": "value", "name": "Steps", "position": "left"},
            {"type": "value", "name": "Saplings", "position": "right", "splitLine": {"show": False}},
        ],
        "series": [
            {
                "name": "Steps",
                "type": "bar",
                "yAxisIndex": 0,
                "itemStyle": {"color": "rgba(34, 197, 94, 0.7)"},
                "data": [d.steps for d in view.chart],
            },
            {
                "name": "Saplings",
                "type": "bar",
                "yAxisIndex": 1,
                "itemStyle": {"color": "rgba(251, 191, 36, 0.7)"},
                "data": [d.saplings for d in view.chart],
            },
        ],
        "grid": {"left": 60, "right": 60, "top": 40, "bottom": 30},
    }


def run_web_ui(
    *,
    storage_path: Path | None = None,
    google_config_path: Path | None = None,
    host: str = "127.0.0.1",
    port: int = 8089,
) -> int:
    def notify(message: str, severity: Severity) -> None:
        ui.notify(message, type=NOTIFY_TYPES.get(severity, "info"))

    google_config = load_google_config(google_config_path)
    controller = KilometreeController(
        JsonFileStore(storage_path),
        notify=notify,
        google=GoogleIntegration(google_config),
    )
    dirty = {"state": True}

    def on_state_change(_state: ProgressionState) -> None:
        dirty["state"] = True

    controller.tracker.subscribe(on_state_change)

    ui.add_head_html(
        """
        <style>
          body { background: linear-gradient(180deg, #f0fdf4 0%, #ffffff 60%); }
          .kt-card { border-radius: 14px; border: 1px solid rgba(34, 197, 94, 0.25); }
          .kt-number { font-size: 1.6rem; font-weight: 700; color: #14532d; }
          .kt-muted { color: #64748b; }
          .kt-forest { font-size: 1.4rem; line-height: 1.8rem; }
          .kt-you { background: rgba(34, 197, 94, 0.12); border-radius: 8px; }
        </style>
        """
    )

    with ui.row().classes("w-full items-center justify-between"):
        ui.label("🌳 KILOMETREE").classes("text-2xl font-bold text-green-800")
        status_label = ui.label("").classes("text-lg font-semibold")

    with ui.row().classes("w-full gap-4"):
        stat_labels: dict[str, ui.label] = {}
        for key, title in (
            ("steps", "Total steps"),
            ("saplings", "Saplings planted"),
            ("co2", "CO₂ offset / year"),
            ("streak", "Day streak"),
        ):
            with ui.card().classes("kt-card min-w-[180px]"):
                ui.label(title).classes("kt-muted")
                stat_labels[key] = ui.label("0").classes("kt-number")

    with ui.card().classes("kt-card w-full"):
        ui.label("Current session").classes("text-lg font-semibold")
        with ui.row().classes("gap-8"):
            session_steps = ui.label("0").classes("kt-number")
            session_km = ui.label("0.00 km").classes("kt-number")
            session_saplings = ui.label("0").classes("kt-number")
        with ui.row().classes("items-end gap-2"):
            start_btn = ui.button("Start", color="positive")
            pause_btn = ui.button("Pause", color="warning")
            save_btn = ui.button("Save session")
            manual_input = ui.input("Add steps manually").classes("w-48")
            manual_btn = ui.button("Add")
            fit_btn = ui.button("Import from Google Fit")

    with ui.row().classes("w-full gap-4"):
        with ui.card().classes("kt-card flex-1"):
            milestone_label = ui.label("").classes("font-semibold")
            milestone_bar = ui.linear_progress(value=0, show_value=False).props("color=green")
            reward_label = ui.label("").classes("kt-muted")
        with ui.card().classes("kt-card flex-1"):
            ui.label("Weekly challenge").classes("font-semibold")
            challenge_bar = ui.linear_progress(value=0, show_value=False).props("color=amber")
            challenge_label = ui.label("").classes("kt-muted")

    with ui.row().classes("w-full gap-4"):
        chart = ui.echart(_chart_options(build_dashboard(controller.state, date.today()))).classes(
            "flex-1 h-72"
        )
        with ui.card().classes("kt-card w-80"):
            ui.label("Leaderboard").classes("font-semibold")
            leaderboard_box = ui.column().classes("w-full gap-1")

    with ui.row().classes("w-full gap-4"):
        with ui.card().classes("kt-card flex-1"):
            ui.label("Your forest").classes("font-semibold")
            forest_label = ui.label("").classes("kt-forest")
        with ui.card().classes("kt-card w-80"):
            ui.label("Achievements").classes("font-semibold")
            achievements_box = ui.column().classes("w-full gap-1")

    with ui.card().classes("kt-card w-full"):
        ui.label("Share & sync").classes("font-semibold")
        with ui.row().classes("items-end gap-2"):
            sheet_btn = ui.button("Sync to Sheets")
            calendar_btn = ui.button("Schedule group walk")
            form_user = ui.input("Your name", value="Walker").classes("w-40")
            form_btn = ui.button("Submit form")
            looker_btn = ui.button("Open Looker dashboard")
        with ui.row().classes("items-end gap-2"):
            video_path = ui.input("Video file path").classes("w-80")
            video_title = ui.input("Video title", value="My Kilometree walk").classes("w-60")
            video_btn = ui.button("Upload to YouTube")
            settings_btn = ui.button("Google settings", color="grey")

    with ui.dialog() as settings_dialog, ui.card().classes("min-w-[520px]"):
        ui.label("Google settings").classes("text-lg font-semibold")
        settings_inputs: dict[str, Any] = {}
        for key, value in asdict(google_config).items():
            if isinstance(value, bool):
                settings_inputs[key] = ui.switch(key.replace("_", " "), value=value)
            else:
                settings_inputs[key] = ui.input(key.replace("_", " "), value=value).classes("w-full")
        with ui.row():
            save_settings_btn = ui.button("Save")
            ui.button("Cancel", on_click=settings_dialog.close)

    def refresh_ui() -> None:
        text, css = STATUS_TEXT[controller.status]
        status_label.text = text
        status_label.classes(replace=f"text-lg font-semibold {css}")

        session = controller.session
        session_steps.text = f"{_fmt_int(session.current_steps)} steps"
        session_km.text = f"{session.distance_km:.2f} km"
        session_saplings.text = f"{session.saplings} saplings"
        start_btn.set_enabled(not controller.tracking)
        pause_btn.set_enabled(controller.tracking)
        save_btn.set_enabled(session.current_steps > 0)

        if not dirty["state"]:
            return
        dirty["state"] = False
        view = build_dashboard(controller.state, date.today())
        stat_labels["steps"].text = _fmt_int(view.total_steps)
        stat_labels["saplings"].text = _fmt_int(view.total_saplings)
        stat_labels["co2"].text = f"{view.co2_offset_kg:.0f} kg"
        stat_labels["streak"].text = str(view.streak_days)

        milestone_label.text = (
            f"{view.total_saplings} / {view.milestone.next} saplings "
            f"({int(view.milestone.percent)}%)"
        )
        milestone_bar.value = view.milestone.percent / 100.0
        reward_label.text = f"Next reward: {view.next_reward}"
        challenge_bar.value = view.weekly_pct / 100.0
        challenge_label.text = (
            f"{view.weekly_distance_km:.1f} / {view.weekly_target_km:.1f} km · "
            f"{view.challenge_time_left}"
        )

        chart.options.clear()
        chart.options.update(_chart_options(view))
        chart.update()

        if view.forest.empty:
            forest_label.text = "Start tracking to grow your forest!"
        else:
            extra = f"  +{view.forest.overflow} more trees" if view.forest.overflow else ""
            forest_label.text = "".join(view.forest.trees) + extra

        leaderboard_box.clear()
        with leaderboard_box:
            for entry in view.leaderboard:
                row = ui.row().classes("w-full justify-between px-2")
                if entry.is_current_user:
                    row.classes("kt-you")
                with row:
                    ui.label(f"{entry.rank_label} {entry.avatar} {entry.name}")
                    ui.label(f"{entry.saplings} {entry.change}").classes("kt-muted")

        achievements_box.clear()
        with achievements_box:
            for card in view.achievements:
                mark = "✅" if card.unlocked else "🔒"
                ui.label(f"{card.icon} {card.title} {mark}")
                ui.linear_progress(value=card.progress_pct / 100.0, show_value=False)

    def on_start() -> None:
        controller.start_tracking()
        refresh_ui()

    async def on_pause() -> None:
        await controller.pause_tracking()
        refresh_ui()

    async def on_save() -> None:
        await controller.save_session()
        refresh_ui()

    def on_manual_add() -> None:
        if controller.add_manual_steps(manual_input.value) is not None:
            manual_input.value = ""
        refresh_ui()

    async def on_fit() -> None:
        await controller.sync_fit_steps()
        refresh_ui()

    async def on_sheet() -> None:
        await controller.sync_to_sheet()

    async def on_calendar() -> None:
        await controller.schedule_group_walk()

    async def on_form() -> None:
        ok, url = await controller.submit_form(str(form_user.value or "Walker"))
        if ok and url:
            ui.navigate.to(url, new_tab=True)

    def on_looker() -> None:
        url = controller.looker_url()
        if url:
            ui.navigate.to(url, new_tab=True)

    async def on_video() -> None:
        raw = str(video_path.value or "").strip()
        if not raw:
            ui.notify("Choose a video file first", type="warning")
            return
        await controller.upload_video(Path(raw).expanduser(), str(video_title.value or ""))

    def on_save_settings() -> None:
        updates = {key: widget.value for key, widget in settings_inputs.items()}
        config = save_google_config(updates, google_config_path)
        controller.google = GoogleIntegration(config)
        settings_dialog.close()
        ui.notify("Google settings saved", type="positive")

    start_btn.on_click(on_start)
    pause_btn.on_click(on_pause)
    save_btn.on_click(on_save)
    manual_btn.on_click(on_manual_add)
    fit_btn.on_click(on_fit)
    sheet_btn.on_click(on_sheet)
    calendar_btn.on_click(on_calendar)
    form_btn.on_click(on_form)
    looker_btn.on_click(on_looker)
    video_btn.on_click(on_video)
    settings_btn.on_click(settings_dialog.open)
    save_settings_btn.on_click(on_save_settings)

    refresh_ui()
    ui.timer(0.5, refresh_ui)
    ui.run(host=host, port=port, reload=False, title="Kilometree")
    return 0
