"""Citizen identity resolution keyed on phone number."""

from __future__ import annotations

import structlog

from src.services.errors import DependencyFailure, ValidationFailed
from src.services.store import RecordStore, StoreError
from src.services.validation import clean_text, mask_phone

logger = structlog.get_logger(__name__)


class IdentityResolver:
    """Maps a phone number to a stable citizen id, creating it if absent.

    The citizens table carries a unique constraint on ``phone_number``,
    so the upsert is safe under concurrent first contact from the same
    number.  Only the optional fields that are actually supplied are
    written, leaving previously stored values untouched.
    """

    __slots__ = ("_store",)

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def resolve(
        self,
        phone_number: str | None,
        name: str | None = None,
        preferred_language: str | None = None,
    ) -> str:
        phone = clean_text(phone_number)
        if phone is None:
            raise ValidationFailed("phone_number is required")

        payload: dict[str, str] = {"phone_number": phone}
        if (clean_name := clean_text(name)) is not None:
            payload["name"] = clean_name
        if (language := clean_text(preferred_language)) is not None:
            payload["preferred_language"] = language

        try:
            citizen = await self._store.upsert(
                "citizens",
                payload,
                on_conflict=("phone_number",),
                returning=("id",),
            )
        except StoreError as exc:
            logger.error("identity.resolve.failed", phone=mask_phone(phone), error=str(exc))
            raise DependencyFailure("Failed to resolve citizen identity") from exc

        citizen_id = str(citizen["id"])
        logger.debug("identity.resolved", phone=mask_phone(phone), citizen_id=citizen_id)
        return citizen_id
