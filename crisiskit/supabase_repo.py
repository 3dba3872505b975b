"""
Hosted relational backend on Supabase.

Expects two tables with camelCase columns:

- ``incidents``: id, title, description, "createdAt" (bigint), regions (jsonb)
- ``incident_responses``: id, "incidentId", name, contact, region, district,
  location, needs, status, "aiClassification" (jsonb), "assignedTo", notes,
  "submittedAt" (bigint)
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from crisiskit.errors import BackendUnavailableError, NotFoundError
from crisiskit.models import (
    Incident,
    IncidentResponse,
    NewResponse,
    Region,
    new_id,
    now_millis,
)

logger = logging.getLogger(__name__)

INCIDENTS_TABLE = "incidents"
RESPONSES_TABLE = "incident_responses"

_TRANSPORT_ERRORS = (APIError, httpx.HTTPError)


class SupabaseRepo:
    def __init__(self, supabase_url: str, supabase_key: str):
        if not supabase_url or not supabase_key:
            raise ValueError("Supabase URL and key are required for SupabaseRepo")
        self.client: Client = create_client(supabase_url, supabase_key)

    def get_incidents(self) -> list[Incident]:
        try:
            res = (
                self.client.table(INCIDENTS_TABLE)
                .select("*")
                .order("createdAt", desc=True)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError("Failed to list incidents") from exc
        return [Incident.from_dict(row) for row in res.data or []]

    def get_incident_by_id(self, incident_id: str) -> Optional[Incident]:
        try:
            res = (
                self.client.table(INCIDENTS_TABLE)
                .select("*")
                .eq("id", incident_id)
                .limit(1)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError(
                f"Failed to load incident {incident_id}"
            ) from exc
        return Incident.from_dict(res.data[0]) if res and res.data else None

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
        try:
            res = self.client.table(INCIDENTS_TABLE).insert(incident.as_dict()).execute()
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError("Failed to create incident") from exc
        if res and res.data:
            return Incident.from_dict(res.data[0])
        return incident

    def get_responses(self, incident_id: str) -> list[IncidentResponse]:
        try:
            res = (
                self.client.table(RESPONSES_TABLE)
                .select("*")
                .eq("incidentId", incident_id)
                .order("submittedAt", desc=True)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError(
                f"Failed to list responses for {incident_id}"
            ) from exc
        return [IncidentResponse.from_dict(row) for row in res.data or []]

    def submit_response(self, response: NewResponse) -> IncidentResponse:
        record = response.stamp(new_id(), now_millis())
        try:
            res = self.client.table(RESPONSES_TABLE).insert(record.as_dict()).execute()
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError("Failed to submit response") from exc
        if res and res.data:
            return IncidentResponse.from_dict(res.data[0])
        return record

    def update_response(self, response: IncidentResponse) -> None:
        try:
            res = (
                self.client.table(RESPONSES_TABLE)
                .update(response.as_dict())
                .eq("id", response.id)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise BackendUnavailableError(
                f"Failed to update response {response.id}"
            ) from exc
        if not (res and res.data):
            raise NotFoundError(f"Response {response.id} not found")
