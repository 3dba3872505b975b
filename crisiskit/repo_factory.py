"""
Startup-time selection of the storage backend.

Priority order:
1. Supabase (SUPABASE_URL and SUPABASE_ANON_KEY set)
2. Google Sheets (GOOGLE_SHEETS_SPREADSHEET_ID, GOOGLE_SERVICE_ACCOUNT_EMAIL
   and GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY set)
3. Local key-value store (always available)

A candidate whose constructor raises is logged and skipped, so selection
always ends with a working backend.
"""

from __future__ import annotations

import logging
from typing import Callable, NamedTuple

from crisiskit.config import Settings
from crisiskit.kv import KeyValueStore
from crisiskit.local_repo import LocalRepo
from crisiskit.repo import IncidentsRepo
from crisiskit.sheets_repo import GoogleSheetsRepo
from crisiskit.supabase_repo import SupabaseRepo

logger = logging.getLogger(__name__)


class BackendCandidate(NamedTuple):
    name: str
    enabled: Callable[[], bool]
    build: Callable[[], IncidentsRepo]


def backend_candidates(
    settings: Settings, store: KeyValueStore
) -> list[BackendCandidate]:
    return [
        BackendCandidate(
            "Supabase",
            lambda: settings.has_supabase,
            lambda: SupabaseRepo(settings.supabase_url, settings.supabase_anon_key),
        ),
        BackendCandidate(
            "Google Sheets",
            lambda: settings.has_google_sheets,
            lambda: GoogleSheetsRepo(
                settings.google_service_account_email,
                settings.google_service_account_private_key,
                settings.google_sheets_spreadsheet_id,
            ),
        ),
        BackendCandidate("local store", lambda: True, lambda: LocalRepo(store)),
    ]


def create_incidents_repo(settings: Settings, store: KeyValueStore) -> IncidentsRepo:
    for candidate in backend_candidates(settings, store):
        if not candidate.enabled():
            continue
        try:
            repo = candidate.build()
        except Exception:
            logger.warning(
                "Failed to initialize %s backend, falling back",
                candidate.name,
                exc_info=True,
            )
            continue
        logger.info("Using %s backend", candidate.name)
        return repo
    # The local store candidate only fails if the store itself is unusable.
    logger.warning("All configured backends failed; using bare local store")
    return LocalRepo(store)
