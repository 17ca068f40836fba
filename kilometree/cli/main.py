"""Terminal CLI entrypoint for Kilometree."""

from __future__ import annotations

import argparse
import asyncio
from datetime import date
from pathlib import Path

from kilometree.core.milestones import reward_for
from kilometree.integrations.google import GoogleIntegration
from kilometree.integrations.google_config import load_google_config
from kilometree.storage.kv_store import JsonFileStore
from kilometree.ui.controller import KilometreeController
from kilometree.ui.dashboard import build_dashboard


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kilometree walking tracker")
    parser.add_argument(
        "--ui-web",
        action="store_true",
        help="Launch web UI (NiceGUI) dashboard",
    )
    parser.add_argument("--web-host", default="127.0.0.1", help="Host bind for --ui-web")
    parser.add_argument("--web-port", type=int, default=8089, help="Port for --ui-web")
    parser.add_argument(
        "--storage",
        type=Path,
        default=None,
        help="Progress storage file (default: ~/.kilometree/storage.json)",
    )
    parser.add_argument(
        "--google-config",
        type=Path,
        default=None,
        help="Google settings file (default: ~/.kilometree/google.json)",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Record the session on this day (YYYY-MM-DD) instead of today",
    )
    parser.add_argument("--status", action="store_true", help="Print lifetime progress")
    parser.add_argument("--add-steps", default=None, help="Save a session with these steps")
    parser.add_argument(
        "--simulate",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Run the simulated pedometer for SECONDS, then save the session",
    )
    parser.add_argument(
        "--fit-steps",
        action="store_true",
        help="Import today's steps from Google Fit and save them as a session",
    )
    parser.add_argument("--sync-sheet", action="store_true", help="Append totals to Google Sheets")
    parser.add_argument(
        "--calendar",
        action="store_true",
        help="Create a group walk event next Saturday in Google Calendar",
    )
    parser.add_argument("--form", metavar="USER", default=None, help="Submit the progress form")
    parser.add_argument("--looker", action="store_true", help="Print the Looker Studio URL")
    parser.add_argument(
        "--upload-video", type=Path, default=None, help="Upload a walk video to YouTube"
    )
    parser.add_argument("--video-title", default="My Kilometree walk", help="YouTube title")
    return parser


def print_status(controller: KilometreeController, today: date) -> None:
    view = build_dashboard(controller.state, today)
    print(f"Steps:     {view.total_steps:,} ({view.total_distance_km:.2f} km)")
    print(f"Saplings:  {view.total_saplings} ({view.co2_offset_kg:.0f} kg CO2/year)")
    print(f"Streak:    {view.streak_days} days")
    print(
        f"Milestone: {view.total_saplings} / {view.milestone.next} "
        f"({view.milestone.percent:.0f}%) -> {reward_for(view.milestone.next)}"
    )
    print(
        f"Weekly:    {view.weekly_distance_km:.1f} / {view.weekly_target_km:.1f} km "
        f"({view.weekly_pct:.0f}%), {view.challenge_time_left}"
    )
    unlocked = ", ".join(sorted(controller.state.unlocked_achievements)) or "-"
    print(f"Badges:    {unlocked}")


async def run_actions(args: argparse.Namespace) -> int:
    today = args.date or date.today()
    google = GoogleIntegration(load_google_config(args.google_config))
    controller = KilometreeController(
        JsonFileStore(args.storage),
        google=google,
        clock=lambda: today,
    )
    exit_code = 0
    try:
        if args.simulate is not None:
            controller.start_tracking()
            await asyncio.sleep(max(0.0, args.simulate))
            await controller.pause_tracking(quiet=True)
        manual_steps = None
        if args.add_steps is not None:
            manual_steps = controller.add_manual_steps(args.add_steps)
            if manual_steps is None:
                exit_code = 2
        if args.fit_steps and await controller.sync_fit_steps() is None:
            exit_code = 1
        if controller.session.current_steps or manual_steps is not None:
            await controller.save_session()

        if args.sync_sheet and not await controller.sync_to_sheet():
            exit_code = 1
        if args.calendar and not await controller.schedule_group_walk():
            exit_code = 1
        if args.form is not None:
            ok, url = await controller.submit_form(args.form)
            if url:
                print(url)
            if not ok:
                exit_code = 1
        if args.looker:
            url = controller.looker_url()
            if url:
                print(url)
            else:
                exit_code = 1
        if args.upload_video is not None and not await controller.upload_video(
            args.upload_video, args.video_title
        ):
            exit_code = 1
        if args.status:
            print_status(controller, today)
    finally:
        await controller.shutdown()
    return exit_code


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ui_web:
        from kilometree.ui.web_app import run_web_ui

        return run_web_ui(
            storage_path=args.storage,
            google_config_path=args.google_config,
            host=args.web_host,
            port=args.web_port,
        )

    actions = (
        args.status,
        args.add_steps is not None,
        args.simulate is not None,
        args.fit_steps,
        args.sync_sheet,
        args.calendar,
        args.form is not None,
        args.looker,
        args.upload_video is not None,
    )
    if not any(actions):
        parser.print_help()
        return 1

    return asyncio.run(run_actions(args))


if __name__ == "__main__":
    raise SystemExit(main())
