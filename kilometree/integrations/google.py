"""Google integrations: Calendar, Sheets, Forms, Looker, YouTube and Fit.

Each call is a plain request construction against the public REST APIs
(or gspread for Sheets). Credentials come from a file the user prepared
beforehand, either a service account key or an authorized-user token file.
"""

from __future__ import annotations

import json
import mimetypes
import secrets
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account

from kilometree.core.errors import ExternalServiceFailure, InvalidInput, MissingConfiguration
from kilometree.core.milestones import co2_offset_kg
from kilometree.core.state import ProgressionState
from kilometree.integrations.google_config import GoogleConfig


SCOPES = [
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/youtube.upload",
    "https://www.googleapis.com/auth/fitness.activity.read",
]
CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
YOUTUBE_UPLOAD_URL = (
    "https://www.googleapis.com/upload/youtube/v3/videos"
    "?uploadType=multipart&part=snippet,status"
)
FIT_AGGREGATE_URL = "https://www.googleapis.com/fitness/v1/users/me/dataset:aggregate"
REQUEST_TIMEOUT_SEC = 30.0


@dataclass(frozen=True)
class ProgressSnapshot:
    day: date
    total_steps: int
    total_saplings: int
    co2_kg: float
    weekly_km: float

    def sheet_row(self) -> list[Any]:
        return [
            self.day.isoformat(),
            self.total_steps,
            self.total_saplings,
            self.co2_kg,
            round(self.weekly_km, 2),
        ]

    def payload(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "totalSteps": self.total_steps,
            "totalSaplings": self.total_saplings,
            "co2Kg": self.co2_kg,
            "weeklyKm": round(self.weekly_km, 2),
        }


def progress_snapshot(state: ProgressionState, today: date) -> ProgressSnapshot:
    return ProgressSnapshot(
        day=today,
        total_steps=state.total_steps,
        total_saplings=state.total_saplings,
        co2_kg=co2_offset_kg(state.total_saplings),
        weekly_km=state.weekly_distance_km,
    )


def next_saturday(now: datetime) -> datetime:
    """09:00 on the coming Saturday; a Saturday rolls over to the next one."""
    days_ahead = (5 - now.weekday()) % 7 or 7
    return (now + timedelta(days=days_ahead)).replace(hour=9, minute=0, second=0, microsecond=0)


def load_credentials(path: str, scopes: list[str] | None = None) -> Any:
    if not path:
        raise MissingConfiguration("Missing Google credentials file")
    source = Path(path).expanduser()
    if not source.exists():
        raise MissingConfiguration(f"Google credentials file not found: {source}")
    try:
        info = json.loads(source.read_text(encoding="utf-8"))
        if info.get("type") == "service_account":
            return service_account.Credentials.from_service_account_info(
                info, scopes=scopes or SCOPES
            )
        return user_credentials.Credentials.from_authorized_user_info(
            info, scopes=scopes or SCOPES
        )
    except (ValueError, AttributeError) as exc:
        raise MissingConfiguration(f"Invalid Google credentials file {source}: {exc}") from exc


def _with_query(url: str, params: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


def _assert_ok(response: Any) -> Any:
    if not response.ok:
        raise ExternalServiceFailure(
            f"Google API error {response.status_code}: {response.text}"
        )
    return response


def _json(response: Any) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ExternalServiceFailure(f"Google API returned invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ExternalServiceFailure("Google API returned an unexpected payload")
    return payload


class GoogleIntegration:
    def __init__(
        self,
        config: GoogleConfig,
        *,
        http: Any | None = None,
        sheets_client: Any | None = None,
        webhook: Any | None = None,
    ) -> None:
        self.config = config
        self._http = http
        self._sheets_client = sheets_client
        self._webhook = webhook

    def _authorized_http(self) -> Any:
        if self._http is None:
            self._http = AuthorizedSession(load_credentials(self.config.credentials_file))
        return self._http

    def _sheets(self) -> Any:
        if self._sheets_client is None:
            self._sheets_client = gspread.authorize(
                load_credentials(self.config.credentials_file)
            )
        return self._sheets_client

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        http = self._authorized_http()
        try:
            response = http.request(method, url, timeout=REQUEST_TIMEOUT_SEC, **kwargs)
        except (requests.RequestException, GoogleAuthError) as exc:
            raise ExternalServiceFailure(f"Google request failed: {exc}") from exc
        return _assert_ok(response)

    def _post_webhook(self, payload: dict[str, Any]) -> None:
        if self._webhook is None:
            self._webhook = requests.Session()
        try:
            response = self._webhook.post(
                self.config.apps_script_url, json=payload, timeout=REQUEST_TIMEOUT_SEC
            )
        except requests.RequestException as exc:
            raise ExternalServiceFailure(f"Apps Script request failed: {exc}") from exc
        _assert_ok(response)

    def create_calendar_event(
        self,
        title: str,
        description: str,
        start: datetime,
        duration_hours: float = 2.0,
    ) -> dict[str, Any]:
        if start.tzinfo is None:
            start = start.astimezone()
        end = start + timedelta(hours=duration_hours)
        calendar_id = self.config.calendar_id or "primary"
        body = {
            "summary": title,
            "description": description,
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
        }
        url = CALENDAR_EVENTS_URL.format(calendar_id=quote(calendar_id, safe=""))
        response = self._request("POST", url, json=body)
        print(f"[GOOGLE] calendar event created: {title} at {start.isoformat()}")
        return _json(response)

    def append_to_sheet(self, snapshot: ProgressSnapshot) -> None:
        if not self.config.sheet_id:
            raise MissingConfiguration("Missing Sheet ID")
        worksheet_name, _, cell_range = self.config.sheet_range.partition("!")
        try:
            spreadsheet = self._sheets().open_by_key(self.config.sheet_id)
            worksheet = spreadsheet.worksheet(worksheet_name or "Progress")
            worksheet.append_row(
                snapshot.sheet_row(),
                value_input_option="USER_ENTERED",
                table_range=cell_range or None,
            )
        except (
            gspread.exceptions.GSpreadException,
            requests.RequestException,
            GoogleAuthError,
        ) as exc:
            raise ExternalServiceFailure(f"Sheet append failed: {exc}") from exc
        print(f"[GOOGLE] appended progress row for {snapshot.day.isoformat()}")

    def submit_form_response(
        self, user: str, total_saplings: int, weekly_km: float
    ) -> str | None:
        """Return a prefilled form URL, or post to the Apps Script web app.

        A prefill URL wins when both are configured; None means the web app
        accepted the response.
        """
        if self.config.form_prefill_url:
            return _with_query(
                self.config.form_prefill_url,
                {
                    "user": user,
                    "saplings": str(total_saplings),
                    "weeklyKm": str(round(weekly_km, 2)),
                },
            )
        if self.config.apps_script_url:
            self._post_webhook(
                {
                    "type": "form",
                    "user": user,
                    "totalSaplings": total_saplings,
                    "weeklyKm": round(weekly_km, 2),
                }
            )
            return None
        raise MissingConfiguration(
            "Provide Form Prefill URL or Apps Script Web App URL in settings"
        )

    def looker_dashboard_url(self) -> str:
        if not self.config.looker_url:
            raise MissingConfiguration("Missing Looker Studio URL")
        return self.config.looker_url

    def upload_youtube_video(
        self, path: Path, title: str, description: str
    ) -> dict[str, Any]:
        if not path.is_file():
            raise InvalidInput(f"Video file not found: {path}")
        metadata = {
            "snippet": {"title": title, "description": description},
            "status": {"privacyStatus": "unlisted"},
        }
        try:
            video = path.read_bytes()
        except OSError as exc:
            raise ExternalServiceFailure(f"Could not read video {path}: {exc}") from exc
        content_type = mimetypes.guess_type(path.name)[0] or "video/*"
        boundary = "kilometree" + secrets.token_hex(8)
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {content_type}\r\n\r\n".encode(),
                video,
                f"\r\n--{boundary}--".encode(),
            ]
        )
        response = self._request(
            "POST",
            YOUTUBE_UPLOAD_URL,
            data=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        print(f"[GOOGLE] uploaded video {path.name}")
        return _json(response)

    def fetch_step_count(self, start: datetime, end: datetime) -> int:
        if end <= start:
            raise InvalidInput("Step window end must be after its start")
        start_ms = int(start.timestamp() * 1000)
        end_ms = int(end.timestamp() * 1000)
        body = {
            "aggregateBy": [{"dataTypeName": "com.google.step_count.delta"}],
            "bucketByTime": {"durationMillis": end_ms - start_ms},
            "startTimeMillis": start_ms,
            "endTimeMillis": end_ms,
        }
        payload = _json(self._request("POST", FIT_AGGREGATE_URL, json=body))
        steps = 0
        for bucket in payload.get("bucket", []):
            for dataset in bucket.get("dataset", []):
                for point in dataset.get("point", []):
                    for value in point.get("value", []):
                        steps += int(value.get("intVal", 0))
        print(f"[GOOGLE] fit steps {start.isoformat()} -> {end.isoformat()}: {steps}")
        return steps

    def auto_sync_on_save(self, snapshot: ProgressSnapshot) -> list[str]:
        """Returns the failure messages; empty when everything went through."""
        failures: list[str] = []
        if not self.config.auto_sync:
            return failures
        try:
            self.append_to_sheet(snapshot)
        except (ExternalServiceFailure, MissingConfiguration) as exc:
            print(f"[GOOGLE] auto sync failed: {exc}")
            failures.append(f"Auto sync failed: {exc}")
        if self.config.apps_script_url:
            try:
                self._post_webhook({"type": "reminder", "payload": snapshot.payload()})
            except ExternalServiceFailure as exc:
                print(f"[GOOGLE] reminder hook failed: {exc}")
                failures.append(f"Reminder hook failed: {exc}")
        return failures
