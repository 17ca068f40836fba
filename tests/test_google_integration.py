from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import gspread
import pytest
import requests
from google.auth.exceptions import RefreshError

from kilometree.core.errors import ExternalServiceFailure, InvalidInput, MissingConfiguration
from kilometree.core.state import ProgressionState
from kilometree.integrations.google import (
    GoogleIntegration,
    ProgressSnapshot,
    load_credentials,
    next_saturday,
    progress_snapshot,
)
from kilometree.integrations.google_config import GoogleConfig


class _Response:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self._payload = payload if payload is not None else {}
        self.text = text

    def json(self) -> Any:
        return self._payload


class _HtmlResponse(_Response):
    def __init__(self) -> None:
        super().__init__(text="<html>Service Unavailable</html>")

    def json(self) -> Any:
        return json.loads(self.text)


class _Http:
    def __init__(self, response: _Response | None = None) -> None:
        self.response = response or _Response()
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _Response:
        self.calls.append((method, url, kwargs))
        return self.response

    def post(self, url: str, **kwargs: Any) -> _Response:
        return self.request("POST", url, **kwargs)


class _Worksheet:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[list[Any], dict[str, Any]]] = []
        self.error = error

    def append_row(self, values: list[Any], **kwargs: Any) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((values, kwargs))


class _Sheets:
    def __init__(self, worksheet: _Worksheet) -> None:
        self.worksheet_obj = worksheet
        self.opened: list[str] = []
        self.names: list[str] = []

    def open_by_key(self, key: str) -> "_Sheets":
        self.opened.append(key)
        return self

    def worksheet(self, name: str) -> _Worksheet:
        self.names.append(name)
        return self.worksheet_obj


SNAPSHOT = ProgressSnapshot(
    day=date(2026, 10, 19), total_steps=15340, total_saplings=11, co2_kg=242.0, weekly_km=4.456
)


def test_progress_snapshot_from_state() -> None:
    state = ProgressionState(total_steps=15340, total_saplings=11, weekly_distance_km=4.456)
    snapshot = progress_snapshot(state, date(2026, 10, 19))
    assert snapshot == SNAPSHOT
    assert snapshot.sheet_row() == ["2026-10-19", 15340, 11, 242.0, 4.46]


def test_next_saturday() -> None:
    monday = datetime(2026, 10, 19, 14, 30)
    assert next_saturday(monday) == datetime(2026, 10, 24, 9, 0)
    saturday = datetime(2026, 10, 24, 7, 0)
    assert next_saturday(saturday) == datetime(2026, 10, 31, 9, 0)


def test_calendar_event_request() -> None:
    http = _Http(_Response(payload={"id": "evt-1"}))
    google = GoogleIntegration(GoogleConfig(calendar_id="team@group.calendar"), http=http)
    start = datetime(2026, 10, 24, 9, 0, tzinfo=timezone.utc)

    created = google.create_calendar_event("Walk", "Bring water", start)

    assert created == {"id": "evt-1"}
    method, url, kwargs = http.calls[0]
    assert method == "POST"
    assert url.endswith("/calendars/team%40group.calendar/events")
    assert kwargs["json"]["summary"] == "Walk"
    assert kwargs["json"]["start"]["dateTime"] == "2026-10-24T09:00:00+00:00"
    assert kwargs["json"]["end"]["dateTime"] == "2026-10-24T11:00:00+00:00"


def test_http_error_becomes_external_failure() -> None:
    http = _Http(_Response(status_code=403, text="forbidden"))
    google = GoogleIntegration(GoogleConfig(), http=http)

    with pytest.raises(ExternalServiceFailure, match="403"):
        google.create_calendar_event("Walk", "", datetime(2026, 10, 24, 9, 0))


def test_append_to_sheet_uses_configured_range() -> None:
    worksheet = _Worksheet()
    sheets = _Sheets(worksheet)
    google = GoogleIntegration(GoogleConfig(sheet_id="sheet-1"), sheets_client=sheets)

    google.append_to_sheet(SNAPSHOT)

    assert sheets.opened == ["sheet-1"]
    assert sheets.names == ["Progress"]
    values, kwargs = worksheet.calls[0]
    assert values == ["2026-10-19", 15340, 11, 242.0, 4.46]
    assert kwargs == {"value_input_option": "USER_ENTERED", "table_range": "A:E"}


def test_append_to_sheet_requires_sheet_id_before_any_call() -> None:
    sheets = _Sheets(_Worksheet())
    google = GoogleIntegration(GoogleConfig(), sheets_client=sheets)

    with pytest.raises(MissingConfiguration, match="Sheet ID"):
        google.append_to_sheet(SNAPSHOT)
    assert sheets.opened == []


def test_append_to_sheet_wraps_gspread_errors() -> None:
    worksheet = _Worksheet(error=gspread.exceptions.WorksheetNotFound("Progress"))
    google = GoogleIntegration(GoogleConfig(sheet_id="sheet-1"), sheets_client=_Sheets(worksheet))

    with pytest.raises(ExternalServiceFailure):
        google.append_to_sheet(SNAPSHOT)


def test_append_to_sheet_wraps_token_refresh_errors() -> None:
    worksheet = _Worksheet(error=RefreshError("token expired"))
    google = GoogleIntegration(GoogleConfig(sheet_id="sheet-1"), sheets_client=_Sheets(worksheet))

    with pytest.raises(ExternalServiceFailure, match="token expired"):
        google.append_to_sheet(SNAPSHOT)


def test_non_json_success_body_becomes_external_failure(tmp_path: Path) -> None:
    google = GoogleIntegration(GoogleConfig(), http=_Http(_HtmlResponse()))
    video = tmp_path / "walk.mp4"
    video.write_bytes(b"video")
    start = datetime(2026, 10, 19, tzinfo=timezone.utc)

    with pytest.raises(ExternalServiceFailure, match="invalid JSON"):
        google.create_calendar_event("Walk", "", datetime(2026, 10, 24, 9, 0))
    with pytest.raises(ExternalServiceFailure, match="invalid JSON"):
        google.fetch_step_count(start, start.replace(hour=12))
    with pytest.raises(ExternalServiceFailure, match="invalid JSON"):
        google.upload_youtube_video(video, "Walk", "")


def test_fetch_step_count_rejects_non_object_payload() -> None:
    google = GoogleIntegration(GoogleConfig(), http=_Http(_Response(payload=["bucket"])))
    start = datetime(2026, 10, 19, tzinfo=timezone.utc)

    with pytest.raises(ExternalServiceFailure, match="unexpected payload"):
        google.fetch_step_count(start, start.replace(hour=12))


def test_form_prefill_keeps_existing_query() -> None:
    google = GoogleIntegration(
        GoogleConfig(form_prefill_url="https://docs.google.com/forms/d/x/viewform?usp=pp_url")
    )
    url = google.submit_form_response("Robin Lee", 12, 3.456)
    assert url is not None
    query = parse_qs(urlsplit(url).query)
    assert query == {
        "usp": ["pp_url"],
        "user": ["Robin Lee"],
        "saplings": ["12"],
        "weeklyKm": ["3.46"],
    }


def test_form_falls_back_to_apps_script() -> None:
    webhook = _Http()
    google = GoogleIntegration(
        GoogleConfig(apps_script_url="https://script.google.com/macros/s/abc/exec"),
        webhook=webhook,
    )

    assert google.submit_form_response("Robin", 12, 3.0) is None
    method, url, kwargs = webhook.calls[0]
    assert url == "https://script.google.com/macros/s/abc/exec"
    assert kwargs["json"] == {"type": "form", "user": "Robin", "totalSaplings": 12, "weeklyKm": 3.0}


def test_form_without_config_raises() -> None:
    with pytest.raises(MissingConfiguration):
        GoogleIntegration(GoogleConfig()).submit_form_response("Robin", 1, 1.0)


def test_looker_url() -> None:
    with pytest.raises(MissingConfiguration):
        GoogleIntegration(GoogleConfig()).looker_dashboard_url()
    url = "https://lookerstudio.google.com/reporting/abc"
    assert GoogleIntegration(GoogleConfig(looker_url=url)).looker_dashboard_url() == url


def test_youtube_upload_builds_multipart_body(tmp_path: Path) -> None:
    video = tmp_path / "walk.mp4"
    video.write_bytes(b"\x00\x01video-bytes")
    http = _Http(_Response(payload={"id": "vid-1"}))
    google = GoogleIntegration(GoogleConfig(), http=http)

    assert google.upload_youtube_video(video, "Morning walk", "12 saplings") == {"id": "vid-1"}

    _, url, kwargs = http.calls[0]
    assert "uploadType=multipart" in url
    content_type = kwargs["headers"]["Content-Type"]
    assert content_type.startswith("multipart/related; boundary=")
    boundary = content_type.split("boundary=", 1)[1]
    body: bytes = kwargs["data"]
    assert body.startswith(f"--{boundary}\r\n".encode())
    assert body.endswith(f"--{boundary}--".encode())
    assert b'"privacyStatus": "unlisted"' in body
    assert b"Content-Type: video/mp4" in body
    assert b"\x00\x01video-bytes" in body


def test_youtube_upload_missing_file(tmp_path: Path) -> None:
    google = GoogleIntegration(GoogleConfig(), http=_Http())
    with pytest.raises(InvalidInput):
        google.upload_youtube_video(tmp_path / "nope.mp4", "t", "d")


def test_youtube_upload_unreadable_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    video = tmp_path / "walk.mp4"
    video.write_bytes(b"video")
    http = _Http()
    google = GoogleIntegration(GoogleConfig(), http=http)

    def _denied(_self: Path) -> bytes:
        raise PermissionError("permission denied")

    monkeypatch.setattr(Path, "read_bytes", _denied)

    with pytest.raises(ExternalServiceFailure, match="permission denied"):
        google.upload_youtube_video(video, "Walk", "")
    assert http.calls == []


def test_fetch_step_count_sums_points() -> None:
    payload = {
        "bucket": [
            {
                "dataset": [
                    {"point": [{"value": [{"intVal": 1200}]}, {"value": [{"intVal": 800}]}]},
                    {"point": []},
                ]
            }
        ]
    }
    http = _Http(_Response(payload=payload))
    google = GoogleIntegration(GoogleConfig(), http=http)
    start = datetime(2026, 10, 19, tzinfo=timezone.utc)
    end = datetime(2026, 10, 19, 12, tzinfo=timezone.utc)

    assert google.fetch_step_count(start, end) == 2000
    body = http.calls[0][2]["json"]
    assert body["aggregateBy"] == [{"dataTypeName": "com.google.step_count.delta"}]
    assert body["bucketByTime"] == {"durationMillis": 12 * 3600 * 1000}


def test_auto_sync_reports_failures() -> None:
    class _BrokenWebhook:
        def post(self, *_args: Any, **_kwargs: Any) -> Any:
            raise requests.ConnectionError("down")

    google = GoogleIntegration(
        GoogleConfig(auto_sync=True, apps_script_url="https://example.test/hook"),
        webhook=_BrokenWebhook(),
    )
    # No sheet id and a broken webhook: both failures are reported, none raised.
    failures = google.auto_sync_on_save(SNAPSHOT)
    assert len(failures) == 2
    assert "Missing Sheet ID" in failures[0]
    assert failures[1].startswith("Reminder hook failed")
    assert GoogleIntegration(GoogleConfig()).auto_sync_on_save(SNAPSHOT) == []


def test_load_credentials_requires_file(tmp_path: Path) -> None:
    with pytest.raises(MissingConfiguration):
        load_credentials("")
    with pytest.raises(MissingConfiguration):
        load_credentials(str(tmp_path / "missing.json"))
    broken = tmp_path / "broken.json"
    broken.write_text(json.dumps({"type": "authorized_user"}), encoding="utf-8")
    with pytest.raises(MissingConfiguration):
        load_credentials(str(broken))
