"""
Google Sheets webhook relay.

Coordinators deploy the Apps Script below as a web app and paste its URL
into CrisisKit. Each new response is then POSTed to that URL as a flat JSON
row.

Apps Script web apps cannot be read cross-origin, so the relay treats the
endpoint as opaque: the HTTP response is never inspected and a send counts
as successful whenever no transport error is raised. A rejected or lost
payload is indistinguishable from a delivered one.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests

from crisiskit.kv import KeyValueStore
from crisiskit.models import IncidentResponse, WebhookConfig, now_millis

logger = logging.getLogger(__name__)

STORAGE_KEY = "crisiskit_webhook_config"
NOT_CONFIGURED_ERROR = "Webhook not configured or disabled"

PAYLOAD_FIELDS = [
    "timestamp",
    "status",
    "name",
    "contact",
    "region",
    "district",
    "location",
    "needs",
    "urgency",
    "reasoning",
    "assignedTo",
    "notes",
]


@dataclass
class WebhookResult:
    success: bool
    error: Optional[str] = None

    def as_dict(self) -> dict:
        data = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


def iso_timestamp(millis: int) -> str:
    """Format epoch millis like JavaScript's Date.toISOString()."""
    seconds, remainder = divmod(millis, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(
        milliseconds=remainder
    )
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_payload(response: IncidentResponse) -> dict:
    classification = response.ai_classification
    return {
        "timestamp": iso_timestamp(response.submitted_at),
        "status": response.status or "pending",
        "name": response.name,
        "contact": response.contact,
        "region": response.region or "",
        "district": response.district or "",
        "location": response.location,
        "needs": response.needs,
        "urgency": classification.urgency if classification else "",
        "reasoning": classification.reasoning if classification else "",
        "assignedTo": response.assigned_to or "",
        "notes": response.notes or "",
    }


def build_test_payload() -> dict:
    return {
        "timestamp": iso_timestamp(now_millis()),
        "status": "pending",
        "name": "Test Submission",
        "contact": "000-0000-0000",
        "region": "Test Region",
        "district": "Test District",
        "location": "Test Location",
        "needs": (
            "This is a test submission from CrisisKit. "
            "If you see this, your webhook is working!"
        ),
        "urgency": "LOW",
        "reasoning": "Test submission",
        "assignedTo": "",
        "notes": "Test",
    }


class GoogleSheetsWebhookService:
    def __init__(
        self,
        store: KeyValueStore,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.session = session or requests.Session()
        self.timeout = timeout
        # Held across each read/modify/write of the config map.
        self._write_lock = threading.Lock()

    def _get_all_configs(self) -> dict[str, dict]:
        raw = self.store.get(STORAGE_KEY)
        return json.loads(raw) if raw else {}

    def save_config(self, incident_id: str, config: WebhookConfig) -> None:
        with self._write_lock:
            all_configs = self._get_all_configs()
            all_configs[incident_id] = config.as_dict()
            self.store.set(STORAGE_KEY, json.dumps(all_configs))

    def get_config(self, incident_id: str) -> Optional[WebhookConfig]:
        stored = self._get_all_configs().get(incident_id)
        return WebhookConfig.from_dict(stored) if stored else None

    def _post(self, url: str, payload: dict) -> WebhookResult:
        try:
            # Opaque send: the response status and body are deliberately ignored.
            self.session.post(
                url,
                data=json.dumps(payload),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to send to webhook: %s", exc)
            return WebhookResult(success=False, error=str(exc) or "Unknown error")
        return WebhookResult(success=True)

    def send_to_webhook(
        self, incident_id: str, response: IncidentResponse
    ) -> WebhookResult:
        config = self.get_config(incident_id)
        if not config or not config.enabled or not config.webhook_url:
            return WebhookResult(success=False, error=NOT_CONFIGURED_ERROR)
        return self._post(config.webhook_url, build_payload(response))

    def test_webhook(self, webhook_url: str) -> WebhookResult:
        return self._post(webhook_url, build_test_payload())


APPS_SCRIPT_CODE = """
function doPost(e) {
  try {
    var sheet = SpreadsheetApp.getActiveSpreadsheet().getActiveSheet();
    var data = JSON.parse(e.postData.contents);

    if (sheet.getLastRow() === 0) {
      sheet.appendRow([
        'Timestamp',
        'Status',
        'Name',
        'Contact',
        'Region',
        'District',
        'Location',
        'Needs',
        'Urgency',
        'AI Reasoning',
        'Assigned To',
        'Notes'
      ]);

      var headerRange = sheet.getRange(1, 1, 1, 12);
      headerRange.setFontWeight('bold');
      headerRange.setBackground('#4285f4');
      headerRange.setFontColor('#ffffff');
    }

    sheet.appendRow([
      data.timestamp,
      data.status,
      data.name,
      data.contact,
      data.region,
      data.district,
      data.location,
      data.needs,
      data.urgency,
      data.reasoning,
      data.assignedTo,
      data.notes
    ]);

    sheet.autoResizeColumns(1, 12);

    var lastRow = sheet.getLastRow();
    var urgencyCell = sheet.getRange(lastRow, 9);
    var rowRange = sheet.getRange(lastRow, 1, 1, 12);

    if (data.urgency === 'CRITICAL') {
      rowRange.setBackground('#fee');
      urgencyCell.setFontWeight('bold');
      urgencyCell.setFontColor('#c00');
    } else if (data.urgency === 'MODERATE') {
      rowRange.setBackground('#ffc');
      urgencyCell.setFontWeight('bold');
      urgencyCell.setFontColor('#f90');
    }

    return ContentService.createTextOutput(JSON.stringify({
      status: 'success',
      row: lastRow
    })).setMimeType(ContentService.MimeType.JSON);

  } catch (error) {
    return ContentService.createTextOutput(JSON.stringify({
      status: 'error',
      message: error.toString()
    })).setMimeType(ContentService.MimeType.JSON);
  }
}
""".strip()
