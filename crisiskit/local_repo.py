"""
Local fallback backend that keeps every record in one JSON blob.

The blob lives under a fixed key in a KeyValueStore and holds two tables,
``incidents`` and ``responses``. Reads load the whole blob; writes load,
mutate one table and save the whole blob back. Lookups are linear scans,
which is fine for the handful of incidents a single deployment holds.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Optional

from crisiskit.errors import NotFoundError
from crisiskit.kv import KeyValueStore
from crisiskit.models import (
    Incident,
    IncidentResponse,
    NewResponse,
    Region,
    new_id,
    now_millis,
)

logger = logging.getLogger(__name__)

STORAGE_KEY = "crisiskit_data"


class LocalRepo:
    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key
        # Held across each load/mutate/save of the blob.
        self._write_lock = threading.Lock()

    def _load(self) -> dict:
        raw = self.store.get(self.key)
        data = json.loads(raw) if raw else {}
        data.setdefault("incidents", [])
        data.setdefault("responses", [])
        return data

    def _save(self, data: dict) -> None:
        self.store.set(self.key, json.dumps(data))

    def get_incidents(self) -> list[Incident]:
        incidents = [Incident.from_dict(row) for row in self._load()["incidents"]]
        return sorted(incidents, key=lambda i: i.created_at, reverse=True)

    def get_incident_by_id(self, incident_id: str) -> Optional[Incident]:
        for row in self._load()["incidents"]:
            if row.get("id") == incident_id:
                return Incident.from_dict(row)
        return None

    def create_incident(
        self,
        title: str,
        description: str,
        regions: Optional[list[Region]] = None,
    ) -> Incident:
        with self._write_lock:
            incident = Incident(
                id=new_id(),
                title=title,
                description=description,
                created_at=now_millis(),
                regions=regions,
            )
            data = self._load()
            data["incidents"].append(incident.as_dict())
            self._save(data)
        logger.info("Created incident %s", incident.id)
        return incident

    def get_responses(self, incident_id: str) -> list[IncidentResponse]:
        responses = [
            IncidentResponse.from_dict(row)
            for row in self._load()["responses"]
            if row.get("incidentId") == incident_id
        ]
        return sorted(responses, key=lambda r: r.submitted_at, reverse=True)

    def submit_response(self, response: NewResponse) -> IncidentResponse:
        with self._write_lock:
            record = response.stamp(new_id(), now_millis())
            data = self._load()
            data["responses"].append(record.as_dict())
            self._save(data)
        return record

    def update_response(self, response: IncidentResponse) -> None:
        with self._write_lock:
            data = self._load()
            for index, row in enumerate(data["responses"]):
                if row.get("id") == response.id:
                    data["responses"][index] = response.as_dict()
                    self._save(data)
                    return
        raise NotFoundError(f"Response {response.id} not found")
