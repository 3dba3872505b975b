"""
Domain records shared by every storage backend.

Records serialize with camelCase keys; the same names are used for the
local JSON blob, the Supabase columns and the HTTP payloads.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

_clock_lock = threading.Lock()
_last_millis = 0


def now_millis() -> int:
    """
    Return the current epoch time in milliseconds.

    Values are strictly increasing within the process, so records created in
    quick succession still sort deterministically.
    """
    global _last_millis
    with _clock_lock:
        current = int(time.time() * 1000)
        if current <= _last_millis:
            current = _last_millis + 1
        _last_millis = current
        return current


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Region:
    name: str
    districts: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"name": self.name, "districts": list(self.districts)}

    @classmethod
    def from_dict(cls, data: dict) -> "Region":
        return cls(
            name=data.get("name", ""),
            districts=list(data.get("districts") or []),
        )


@dataclass
class UrgencyClassification:
    urgency: str
    reasoning: str = ""

    def as_dict(self) -> dict:
        return {"urgency": self.urgency, "reasoning": self.reasoning}

    @classmethod
    def from_dict(cls, data: dict) -> "UrgencyClassification":
        return cls(urgency=data.get("urgency", ""), reasoning=data.get("reasoning") or "")


@dataclass
class Incident:
    id: str
    title: str
    description: str
    created_at: int
    regions: Optional[list[Region]] = None

    def as_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "createdAt": self.created_at,
        }
        if self.regions is not None:
            data["regions"] = [region.as_dict() for region in self.regions]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Incident":
        regions = data.get("regions")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            created_at=int(data["createdAt"]),
            regions=[Region.from_dict(r) for r in regions] if regions else None,
        )


@dataclass
class IncidentResponse:
    id: str
    incident_id: str
    name: str
    contact: str
    location: str
    needs: str
    submitted_at: int
    region: Optional[str] = None
    district: Optional[str] = None
    status: Optional[str] = None
    ai_classification: Optional[UrgencyClassification] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "incidentId": self.incident_id,
            "name": self.name,
            "contact": self.contact,
            "region": self.region,
            "district": self.district,
            "location": self.location,
            "needs": self.needs,
            "status": self.status,
            "aiClassification": (
                self.ai_classification.as_dict() if self.ai_classification else None
            ),
            "assignedTo": self.assigned_to,
            "notes": self.notes,
            "submittedAt": self.submitted_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IncidentResponse":
        classification = data.get("aiClassification")
        return cls(
            id=data["id"],
            incident_id=data["incidentId"],
            name=data.get("name", ""),
            contact=data.get("contact", ""),
            location=data.get("location", ""),
            needs=data.get("needs", ""),
            submitted_at=int(data["submittedAt"]),
            region=data.get("region"),
            district=data.get("district"),
            status=data.get("status"),
            ai_classification=(
                UrgencyClassification.from_dict(classification)
                if classification
                else None
            ),
            assigned_to=data.get("assignedTo"),
            notes=data.get("notes"),
        )


@dataclass
class NewResponse:
    """Submitted fields of a response, before the backend assigns id and time."""

    incident_id: str
    name: str
    contact: str
    location: str
    needs: str
    region: Optional[str] = None
    district: Optional[str] = None
    status: Optional[str] = None
    ai_classification: Optional[UrgencyClassification] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    def stamp(self, response_id: str, submitted_at: int) -> IncidentResponse:
        return IncidentResponse(
            id=response_id,
            incident_id=self.incident_id,
            name=self.name,
            contact=self.contact,
            location=self.location,
            needs=self.needs,
            submitted_at=submitted_at,
            region=self.region,
            district=self.district,
            status=self.status,
            ai_classification=self.ai_classification,
            assigned_to=self.assigned_to,
            notes=self.notes,
        )


@dataclass
class WebhookConfig:
    webhook_url: str
    enabled: bool

    def as_dict(self) -> dict:
        return {"webhookUrl": self.webhook_url, "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: dict) -> "WebhookConfig":
        return cls(
            webhook_url=data.get("webhookUrl") or "",
            enabled=bool(data.get("enabled")),
        )
