"""
Server-side backend storing records in a Google Sheet.

Uses the Sheets v4 REST API through a service-account session. The
spreadsheet holds two worksheets, ``Incidents`` and ``Responses``; they are
created on first use if missing and get a header row before the first
append.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from crisiskit.errors import BackendUnavailableError, NotFoundError
from crisiskit.models import (
    Incident,
    IncidentResponse,
    NewResponse,
    Region,
    UrgencyClassification,
    new_id,
    now_millis,
)

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
REQUEST_TIMEOUT = 30  # seconds

INCIDENTS_SHEET = "Incidents"
RESPONSES_SHEET = "Responses"

INCIDENT_COLUMNS = ["id", "title", "description", "createdAt", "regions"]
RESPONSE_COLUMNS = [
    "id",
    "incidentId",
    "name",
    "contact",
    "region",
    "district",
    "location",
    "needs",
    "status",
    "urgency",
    "reasoning",
    "assignedTo",
    "notes",
    "submittedAt",
]


def _column_letter(index: int) -> str:
    # 1-based; worksheets here never exceed 26 columns
    return chr(ord("A") + index - 1)


def _optional(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _pad(row: list, width: int) -> list:
    # The API drops trailing empty cells.
    return list(row) + [""] * (width - len(row))


def incident_to_row(incident: Incident) -> list:
    regions = (
        json.dumps([region.as_dict() for region in incident.regions])
        if incident.regions
        else ""
    )
    return [
        incident.id,
        incident.title,
        incident.description,
        incident.created_at,
        regions,
    ]


def row_to_incident(row: list) -> Incident:
    incident_id, title, description, created_at, regions = _pad(
        row, len(INCIDENT_COLUMNS)
    )[: len(INCIDENT_COLUMNS)]
    return Incident(
        id=str(incident_id),
        title=str(title),
        description=str(description),
        created_at=int(created_at),
        regions=[Region.from_dict(r) for r in json.loads(regions)] if regions else None,
    )


def response_to_row(response: IncidentResponse) -> list:
    classification = response.ai_classification
    return [
        response.id,
        response.incident_id,
        response.name,
        response.contact,
        response.region or "",
        response.district or "",
        response.location,
        response.needs,
        response.status or "",
        classification.urgency if classification else "",
        classification.reasoning if classification else "",
        response.assigned_to or "",
        response.notes or "",
        response.submitted_at,
    ]


def row_to_response(row: list) -> IncidentResponse:
    values = dict(zip(RESPONSE_COLUMNS, _pad(row, len(RESPONSE_COLUMNS))))
    urgency = _optional(values["urgency"])
    return IncidentResponse(
        id=str(values["id"]),
        incident_id=str(values["incidentId"]),
        name=str(values["name"]),
        contact=str(values["contact"]),
        location=str(values["location"]),
        needs=str(values["needs"]),
        submitted_at=int(values["submittedAt"]),
        region=_optional(values["region"]),
        district=_optional(values["district"]),
        status=_optional(values["status"]),
        ai_classification=(
            UrgencyClassification(urgency=urgency, reasoning=str(values["reasoning"]))
            if urgency
            else None
        ),
        assigned_to=_optional(values["assignedTo"]),
        notes=_optional(values["notes"]),
    )


class GoogleSheetsRepo:
    def __init__(
        self,
        service_account_email: str,
        private_key: str,
        spreadsheet_id: str,
        session: Optional[requests.Session] = None,
    ):
        if not spreadsheet_id:
            raise ValueError("Spreadsheet id is required for GoogleSheetsRepo")
        self.spreadsheet_id = spreadsheet_id
        if session is None:
            credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": service_account_email,
                    # Keys copied into env files usually carry escaped newlines.
                    "private_key": private_key.replace("\\n", "\n"),
                    "token_uri": TOKEN_URI,
                },
                scopes=SCOPES,
            )
            session = AuthorizedSession(credentials)
        self.session = session
        self._sheets_ready = False

    def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{SHEETS_API_BASE}/{self.spreadsheet_id}{path}"
        try:
            response = self.session.request(
                method, url, timeout=REQUEST_TIMEOUT, **kwargs
            )
            response.raise_for_status()
        except (
            requests.RequestException,
            google_auth_exceptions.GoogleAuthError,
        ) as exc:
            raise BackendUnavailableError(f"Sheets API {method} {path} failed") from exc
        return response.json() if response.content else {}

    def _ensure_sheets(self) -> None:
        if self._sheets_ready:
            return
        meta = self._request("GET", "", params={"fields": "sheets.properties.title"})
        existing = {
            sheet["properties"]["title"] for sheet in meta.get("sheets", [])
        }
        missing = [
            title for title in (INCIDENTS_SHEET, RESPONSES_SHEET) if title not in existing
        ]
        if missing:
            logger.info("Creating worksheets %s in %s", missing, self.spreadsheet_id)
            self._request(
                "POST",
                ":batchUpdate",
                json={
                    "requests": [
                        {"addSheet": {"properties": {"title": title}}}
                        for title in missing
                    ]
                },
            )
        self._sheets_ready = True

    def _read_rows(self, sheet: str) -> list[tuple[int, list]]:
        """Return (sheet row number, cells) for each data row below the header."""
        self._ensure_sheets()
        data = self._request(
            "GET",
            f"/values/{quote(sheet)}",
            params={"valueRenderOption": "UNFORMATTED_VALUE"},
        )
        rows = data.get("values", [])
        return [
            (row_number, row)
            for row_number, row in enumerate(rows[1:], start=2)
            if row and row[0] != ""
        ]

    def _append_row(self, sheet: str, columns: list[str], row: list) -> None:
        self._ensure_sheets()
        existing = self._request("GET", f"/values/{quote(sheet)}!A1:A1")
        values = [row] if existing.get("values") else [columns, row]
        self._request(
            "POST",
            f"/values/{quote(sheet)}:append",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": values},
        )

    def get_incidents(self) -> list[Incident]:
        incidents = [
            row_to_incident(row) for _, row in self._read_rows(INCIDENTS_SHEET)
        ]
        return sorted(incidents, key=lambda i: i.created_at, reverse=True)

    def get_incident_by_id(self, incident_id: str) -> Optional[Incident]:
        for _, row in self._read_rows(INCIDENTS_SHEET):
            if str(row[0]) == incident_id:
                return row_to_incident(row)
        return None

    def create_incident(
        self,
        title: str,
        description: str,
        regions: Optional[list[Region]] = None,
    ) -> Incident:
        incident = Incident(
            id=new_id(),
            title=title,
            description=description,
            created_at=now_millis(),
            regions=regions,
        )
        self._append_row(INCIDENTS_SHEET, INCIDENT_COLUMNS, incident_to_row(incident))
        return incident

    def get_responses(self, incident_id: str) -> list[IncidentResponse]:
        responses = [
            row_to_response(row)
            for _, row in self._read_rows(RESPONSES_SHEET)
            if len(row) > 1 and str(row[1]) == incident_id
        ]
        return sorted(responses, key=lambda r: r.submitted_at, reverse=True)

    def submit_response(self, response: NewResponse) -> IncidentResponse:
        record = response.stamp(new_id(), now_millis())
        self._append_row(RESPONSES_SHEET, RESPONSE_COLUMNS, response_to_row(record))
        return record

    def update_response(self, response: IncidentResponse) -> None:
        for row_number, row in self._read_rows(RESPONSES_SHEET):
            if str(row[0]) == response.id:
                last = _column_letter(len(RESPONSE_COLUMNS))
                self._request(
                    "PUT",
                    f"/values/{quote(RESPONSES_SHEET)}!A{row_number}:{last}{row_number}",
                    params={"valueInputOption": "RAW"},
                    json={"values": [response_to_row(response)]},
                )
                return
        raise NotFoundError(f"Response {response.id} not found")
