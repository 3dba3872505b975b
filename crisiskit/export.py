"""
CSV export of an incident's responses.

Columns and header labels match the sheet written by the webhook's Apps
Script, so an export can be pasted under an existing synced sheet.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable

from crisiskit.models import IncidentResponse
from crisiskit.webhook import PAYLOAD_FIELDS, build_payload

HEADER_LABELS = [
    "Timestamp",
    "Status",
    "Name",
    "Contact",
    "Region",
    "District",
    "Location",
    "Needs",
    "Urgency",
    "AI Reasoning",
    "Assigned To",
    "Notes",
]


def responses_to_csv(responses: Iterable[IncidentResponse]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(HEADER_LABELS)
    for response in responses:
        payload = build_payload(response)
        writer.writerow([payload[key] for key in PAYLOAD_FIELDS])
    return buffer.getvalue()
