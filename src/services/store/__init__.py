"""Record store implementations and the factory that picks one."""

from __future__ import annotations

from config.settings import Settings, StoreBackend
from src.services.store.base import NoRowFound, RecordStore, Row, StoreError, UniqueViolation
from src.services.store.memory import InMemoryRecordStore
from src.services.store.postgrest import PostgrestRecordStore


def create_store(settings: Settings) -> RecordStore:
    """Build the record store selected by ``settings.store_backend``.

    Raises
    ------
    ValueError
        If the PostgREST backend is selected without a URL or key, or if
        the in-memory store is selected in production.
    """
    if settings.store_backend == StoreBackend.POSTGREST:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for the postgrest store")
        return PostgrestRecordStore(
            settings.supabase_url,
            settings.supabase_service_role_key,
            timeout=settings.store_timeout_seconds,
        )

    if settings.is_production:
        raise ValueError("The in-memory store cannot be used in production")
    return InMemoryRecordStore()


__all__ = [
    "InMemoryRecordStore",
    "NoRowFound",
    "PostgrestRecordStore",
    "RecordStore",
    "Row",
    "StoreError",
    "UniqueViolation",
    "create_store",
]
