"""
The storage contract every CrisisKit backend implements.
"""

from __future__ import annotations

from typing import Optional, Protocol

from crisiskit.models import Incident, IncidentResponse, NewResponse, Region


class IncidentsRepo(Protocol):
    """
    Operations the application needs from a storage backend.

    Listings are newest first. Ids and timestamps are assigned by the
    backend. Transport failures surface as BackendUnavailableError.
    """

    def get_incidents(self) -> list[Incident]:
        ...

    def get_incident_by_id(self, incident_id: str) -> Optional[Incident]:
        ...

    def create_incident(
        self,
        title: str,
        description: str,
        regions: Optional[list[Region]] = None,
    ) -> Incident:
        ...

    def get_responses(self, incident_id: str) -> list[IncidentResponse]:
        ...

    def submit_response(self, response: NewResponse) -> IncidentResponse:
        ...

    def update_response(self, response: IncidentResponse) -> None:
        """Replace the stored record with the same id; NotFoundError if absent."""
        ...
