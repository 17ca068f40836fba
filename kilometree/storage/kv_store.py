"""Key-value persistence collaborators for the progression state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol


def default_storage_path() -> Path:
    return Path.home() / ".kilometree" / "storage.json"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonFileStore:
    """Text values kept in a single JSON object, rewritten on every set."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_storage_path()
        self._values: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            print(f"[STORE] ignoring unreadable {self.path}: {exc}")
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(k): str(v) for k, v in payload.items()}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(self._values, ensure_ascii=True, indent=2), encoding="utf-8"
        )
