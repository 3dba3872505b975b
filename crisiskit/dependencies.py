"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from crisiskit.config import get_settings
from crisiskit.kv import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    SqlKeyValueStore,
)
from crisiskit.repo import IncidentsRepo
from crisiskit.repo_factory import create_incidents_repo
from crisiskit.webhook import GoogleSheetsWebhookService

_kv_store: KeyValueStore | None = None
_incidents_repo: IncidentsRepo | None = None
_webhook_service: GoogleSheetsWebhookService | None = None


def get_kv_store() -> KeyValueStore:
    """
    Return the singleton key-value store shared by the local repo and
    webhook settings.
    """
    global _kv_store
    if _kv_store:
        return _kv_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _kv_store = InMemoryKeyValueStore()
    elif settings.redis_url:
        _kv_store = RedisKeyValueStore(settings.redis_url)
    else:
        _kv_store = SqlKeyValueStore(settings.database_url)
    return _kv_store


def get_incidents_repo() -> IncidentsRepo:
    """
    Return the storage backend, selected once for the process lifetime.
    """
    global _incidents_repo
    if _incidents_repo:
        return _incidents_repo

    _incidents_repo = create_incidents_repo(get_settings(), get_kv_store())
    return _incidents_repo


def get_webhook_service() -> GoogleSheetsWebhookService:
    global _webhook_service
    if _webhook_service:
        return _webhook_service

    settings = get_settings()
    _webhook_service = GoogleSheetsWebhookService(
        get_kv_store(), timeout=settings.webhook_timeout_seconds
    )
    return _webhook_service
