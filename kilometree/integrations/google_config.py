"""Google integration settings stored locally."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any


def _default_config_path() -> Path:
    return Path.home() / ".kilometree" / "google.json"


@dataclass(frozen=True)
class GoogleConfig:
    credentials_file: str = ""
    calendar_id: str = "primary"
    sheet_id: str = ""
    sheet_range: str = "Progress!A:E"
    form_prefill_url: str = ""
    apps_script_url: str = ""
    looker_url: str = ""
    auto_sync: bool = False


_FIELD_NAMES = {f.name for f in fields(GoogleConfig)}


def _coerce(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in payload.items():
        if key not in _FIELD_NAMES or value is None:
            continue
        out[key] = bool(value) if key == "auto_sync" else str(value)
    return out


def load_google_config(path: Path | None = None) -> GoogleConfig:
    target = path or _default_config_path()
    if not target.exists():
        return GoogleConfig()
    try:
        payload = json.loads(target.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"[GOOGLE] unreadable config {target}: {exc}")
        return GoogleConfig()
    if not isinstance(payload, dict):
        return GoogleConfig()
    return GoogleConfig(**_coerce(payload))


def save_google_config(
    updates: dict[str, Any], path: Path | None = None
) -> GoogleConfig:
    """Merge updates into the stored config and write it back."""
    target = path or _default_config_path()
    merged = replace(load_google_config(target), **_coerce(updates))
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(asdict(merged), ensure_ascii=True, indent=2), encoding="utf-8")
    return merged
