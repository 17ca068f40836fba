from __future__ import annotations

import json
from pathlib import Path

import pytest

from kilometree.cli.main import build_parser, main


def test_no_action_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 1
    assert "Kilometree" in capsys.readouterr().out


def test_add_steps_and_status(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    storage = tmp_path / "storage.json"
    google_cfg = tmp_path / "google.json"
    base = ["--storage", str(storage), "--google-config", str(google_cfg)]

    assert main([*base, "--date", "2026-10-18", "--add-steps", "12500"]) == 0
    assert main([*base, "--date", "2026-10-19", "--add-steps", "1,250", "--status"]) == 0

    out = capsys.readouterr().out
    assert "Achievement unlocked: Bronze Planter" in out
    assert "Saplings:  11" in out
    assert "Streak:    2 days" in out

    stored = json.loads(storage.read_text(encoding="utf-8"))
    assert stored["totalSteps"] == "13750"
    assert stored["lastActiveDate"] == "2026-10-19"
    assert json.loads(stored["achievements"]) == {"bronze": True}


def test_invalid_steps_exit_code(tmp_path: Path) -> None:
    args = ["--storage", str(tmp_path / "s.json"), "--google-config", str(tmp_path / "g.json")]
    assert main([*args, "--add-steps", "lots"]) == 2


def test_rejected_steps_skip_the_save(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    storage = tmp_path / "s.json"
    args = ["--storage", str(storage), "--google-config", str(tmp_path / "g.json")]

    assert main([*args, "--add-steps", "abc"]) == 2

    out = capsys.readouterr().out
    assert "[INPUT] rejected manual steps" in out
    assert "No activity to save!" not in out
    assert json.loads(storage.read_text(encoding="utf-8"))["totalSteps"] == "0"


def test_looker_without_config_fails(tmp_path: Path) -> None:
    args = ["--storage", str(tmp_path / "s.json"), "--google-config", str(tmp_path / "g.json")]
    assert main([*args, "--looker"]) == 1


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.web_port == 8089
    assert args.date is None
    assert args.storage is None
