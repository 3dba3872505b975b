"""
Region templates offered when a coordinator creates an incident.
"""

from __future__ import annotations

from crisiskit.models import Region

REGION_PRESETS: dict[str, list[Region]] = {
    "hongkong": [
        Region("Hong Kong Island", ["Central", "Wan Chai", "Eastern", "Southern"]),
        Region("Kowloon", ["Mong Kok", "Tsim Sha Tsui", "Sham Shui Po", "Kowloon City"]),
        Region("New Territories", ["Sha Tin", "Tai Po", "Yuen Long", "Tuen Mun"]),
    ],
    "losangeles": [
        Region("Los Angeles", ["Downtown", "Hollywood", "Santa Monica", "Venice"]),
        Region("Orange County", ["Irvine", "Anaheim", "Santa Ana", "Huntington Beach"]),
    ],
    "none": [],
}


def get_preset(name: str) -> list[Region]:
    """Return a copy of a preset's regions; unknown names yield no regions."""
    return [Region(r.name, list(r.districts)) for r in REGION_PRESETS.get(name, [])]


def parse_districts(value: str) -> list[str]:
    """Split a comma-separated district list, dropping blanks."""
    return [d.strip() for d in value.split(",") if d.strip()]
