from __future__ import annotations

import json
from pathlib import Path

from kilometree.integrations.google_config import (
    GoogleConfig,
    load_google_config,
    save_google_config,
)


def test_missing_config_file_gives_defaults(tmp_path: Path) -> None:
    config = load_google_config(tmp_path / "google.json")
    assert config == GoogleConfig()
    assert config.calendar_id == "primary"
    assert config.sheet_range == "Progress!A:E"


def test_save_merges_with_existing_values(tmp_path: Path) -> None:
    path = tmp_path / "cfg" / "google.json"
    save_google_config({"sheet_id": "abc", "auto_sync": True}, path)
    merged = save_google_config({"looker_url": "https://lookerstudio.google.com/x"}, path)

    assert merged.sheet_id == "abc"
    assert merged.auto_sync is True
    assert merged.looker_url == "https://lookerstudio.google.com/x"
    assert load_google_config(path) == merged


def test_unknown_keys_and_bad_json_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "google.json"
    path.write_text(json.dumps({"sheet_id": "abc", "clientId": "legacy"}), encoding="utf-8")
    assert load_google_config(path) == GoogleConfig(sheet_id="abc")

    path.write_text("[", encoding="utf-8")
    assert load_google_config(path) == GoogleConfig()
