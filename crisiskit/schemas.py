"""
Pydantic schemas for the CrisisKit HTTP API.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from crisiskit.models import (
    Incident,
    IncidentResponse,
    NewResponse,
    Region,
    UrgencyClassification,
    WebhookConfig,
)
from crisiskit.presets import parse_districts


class RegionSchema(BaseModel):
    name: str
    districts: list[str] = Field(default_factory=list)

    @classmethod
    def from_region(cls, region: Region) -> "RegionSchema":
        return cls(name=region.name, districts=list(region.districts))


class RegionPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    # Accepts the form's comma-separated text as well as a list.
    districts: Union[list[str], str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("districts")
    @classmethod
    def _split_districts(cls, value):
        if isinstance(value, str):
            return parse_districts(value)
        return [d.strip() for d in value if d.strip()]

    def to_region(self) -> Region:
        return Region(name=self.name, districts=list(self.districts))


class CreateIncidentRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(..., min_length=1)
    regions: Optional[list[RegionPayload]] = None

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def to_regions(self) -> Optional[list[Region]]:
        if not self.regions:
            return None
        return [region.to_region() for region in self.regions]


class IncidentSchema(BaseModel):
    id: str
    title: str
    description: str
    createdAt: int
    regions: Optional[list[RegionSchema]] = None

    @classmethod
    def from_record(cls, incident: Incident) -> "IncidentSchema":
        return cls.model_validate(incident.as_dict())


class ClassificationSchema(BaseModel):
    urgency: str
    reasoning: str = ""

    def to_classification(self) -> UrgencyClassification:
        return UrgencyClassification(urgency=self.urgency, reasoning=self.reasoning)


class SubmitResponseRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1)
    needs: str = Field(..., min_length=1)
    region: Optional[str] = None
    district: Optional[str] = None
    status: Optional[str] = None
    aiClassification: Optional[ClassificationSchema] = None
    assignedTo: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "contact", "location", "needs")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def to_new_response(self, incident_id: str) -> NewResponse:
        return NewResponse(
            incident_id=incident_id,
            name=self.name,
            contact=self.contact,
            location=self.location,
            needs=self.needs,
            region=self.region or None,
            district=self.district or None,
            status=self.status,
            ai_classification=(
                self.aiClassification.to_classification()
                if self.aiClassification
                else None
            ),
            assigned_to=self.assignedTo,
            notes=self.notes,
        )


class IncidentResponseSchema(BaseModel):
    id: str
    incidentId: str
    name: str
    contact: str
    region: Optional[str] = None
    district: Optional[str] = None
    location: str
    needs: str
    status: Optional[str] = None
    aiClassification: Optional[ClassificationSchema] = None
    assignedTo: Optional[str] = None
    notes: Optional[str] = None
    submittedAt: int

    @classmethod
    def from_record(cls, response: IncidentResponse) -> "IncidentResponseSchema":
        return cls.model_validate(response.as_dict())


class UpdateResponseRequest(IncidentResponseSchema):
    # The path names the response; a body id, when sent, must agree with it.
    id: Optional[str] = None

    def to_record_for(self, response_id: str) -> IncidentResponse:
        return IncidentResponse.from_dict({**self.model_dump(), "id": response_id})


class WebhookConfigSchema(BaseModel):
    webhookUrl: str
    enabled: bool

    @classmethod
    def from_config(cls, config: WebhookConfig) -> "WebhookConfigSchema":
        return cls.model_validate(config.as_dict())


class EnableWebhookRequest(BaseModel):
    webhookUrl: str = Field(..., min_length=1, max_length=2048)

    @field_validator("webhookUrl")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a webhook URL")
        return value


class WebhookResultSchema(BaseModel):
    success: bool
    error: Optional[str] = None


class RegionPresetsResponse(BaseModel):
    presets: dict[str, list[RegionSchema]]
