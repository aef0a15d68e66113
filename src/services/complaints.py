"""Complaint intake engine: creation, aggregated reads and removal.

Creation runs strictly in sequence -- validate, resolve the citizen,
insert the complaint, append the ``complaint_created`` audit event,
attach media -- because each step needs the id produced by the one
before it.  Duplicate-source suppression relies entirely on the store's
unique keys on ``(channel, source_message_id)`` and
``(channel, source_call_id)``; nothing is locked in-process.

The store cannot span several statements in one transaction, so if the
audit event or the media batch fails after the complaint row has been
committed, the writer deletes that row again (cascading to anything
already attached) before surfacing the failure.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Final

import structlog

from src.models.complaint import (
    ComplaintAggregate,
    ComplaintMediaRecord,
    ComplaintRecord,
    ComplaintSubmission,
    CreatedComplaint,
)
from src.models.enums import ActorType, EventType, Priority
from src.services.audit import AuditTrailRecorder
from src.services.errors import (
    ComplaintNotFound,
    DependencyFailure,
    DuplicateSource,
    ValidationFailed,
)
from src.services.identity import IdentityResolver
from src.services.media import (
    DEFAULT_MEDIA_BUCKET,
    build_media_rows,
    normalize_media,
    validate_media,
)
from src.services.store import NoRowFound, RecordStore, StoreError, UniqueViolation
from src.services.validation import (
    VALID_CHANNELS,
    VALID_PRIORITIES,
    clean_text,
    in_range,
    mask_phone,
)

logger = structlog.get_logger(__name__)

CREATED_VIA_API: Final[str] = "Complaint created via API"

_CREATED_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "complaint_number",
    "status",
    "channel",
    "citizen_id",
    "created_at",
)

_COMPLAINT_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "complaint_number",
    "status",
    "channel",
    "priority",
    "category",
    "raw_text",
    "translated_text",
    "location_text",
    "latitude",
    "longitude",
    "citizen_id",
    "ward_id",
    "department_id",
    "created_at",
    "updated_at",
    "resolved_at",
)

_MEDIA_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "media_type",
    "storage_bucket",
    "storage_path",
    "mime_type",
    "size_bytes",
    "duration_sec",
    "checksum_sha256",
    "uploaded_at",
)


@dataclass(slots=True)
class _ValidatedComplaint:
    phone_number: str
    channel: str
    priority: str
    raw_text: str | None
    latitude: float | None
    longitude: float | None
    media: list[dict[str, Any]]


def _validate(submission: ComplaintSubmission) -> _ValidatedComplaint:
    """Apply the creation checks in order; the first violation wins."""
    phone = clean_text(submission.phone_number)
    if phone is None:
        raise ValidationFailed("phone_number is required")

    channel = (clean_text(submission.channel) or "").lower()
    if channel not in VALID_CHANNELS:
        raise ValidationFailed("channel must be sms, whatsapp, or voice")

    priority = (clean_text(submission.priority) or Priority.MEDIUM).lower()
    if priority not in VALID_PRIORITIES:
        raise ValidationFailed("priority must be low, medium, high, or critical")

    media = normalize_media(submission.media)
    raw_text = clean_text(submission.raw_text)
    if raw_text is None and not media:
        raise ValidationFailed("Either raw_text or at least one media item is required")

    latitude = longitude = None
    if submission.latitude is not None:
        try:
            latitude = in_range(submission.latitude, -90, 90)
        except ValueError:
            raise ValidationFailed("latitude must be between -90 and 90") from None
    if submission.longitude is not None:
        try:
            longitude = in_range(submission.longitude, -180, 180)
        except ValueError:
            raise ValidationFailed("longitude must be between -180 and 180") from None

    validate_media(media)

    return _ValidatedComplaint(
        phone_number=phone,
        channel=channel,
        priority=priority,
        raw_text=raw_text,
        latitude=latitude,
        longitude=longitude,
        media=media,
    )


def _reference_id(value: Any) -> str | int | None:
    """Pass a ward/department reference through when it is a non-empty scalar."""
    if isinstance(value, bool) or not isinstance(value, str | int):
        return None
    return value or None


class ComplaintWriter:
    """Validates and records new complaints from any intake channel.

    Parameters
    ----------
    store:
        The injected record store.
    identity:
        Resolver used to turn the submitter's phone number into a citizen id.
    audit:
        Recorder for the ``complaint_created`` event.
    media_bucket:
        Storage bucket assumed for media items that do not name one.
    """

    __slots__ = ("_audit", "_identity", "_media_bucket", "_store")

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityResolver,
        audit: AuditTrailRecorder,
        *,
        media_bucket: str = DEFAULT_MEDIA_BUCKET,
    ) -> None:
        self._store = store
        self._identity = identity
        self._audit = audit
        self._media_bucket = media_bucket

    async def create(
        self,
        submission: ComplaintSubmission,
        *,
        note: str = CREATED_VIA_API,
    ) -> CreatedComplaint:
        """Record a complaint and its initial audit event.

        Raises
        ------
        ValidationFailed
            On the first invalid field; nothing is written.
        DuplicateSource
            If the channel's message or call id was already recorded.
        DependencyFailure
            If the store fails at any step.
        """
        checked = _validate(submission)
        log = logger.bind(
            channel=checked.channel,
            phone=mask_phone(checked.phone_number),
            source_message_id=clean_text(submission.source_message_id),
            source_call_id=clean_text(submission.source_call_id),
        )
        log.info("complaint.create.started", media_count=len(checked.media))

        citizen_id = await self._identity.resolve(
            checked.phone_number,
            name=submission.name,
            preferred_language=submission.preferred_language,
        )

        category = clean_text(submission.category)
        payload: dict[str, Any] = {
            "citizen_id": citizen_id,
            "channel": checked.channel,
            "raw_text": checked.raw_text,
            "translated_text": clean_text(submission.translated_text),
            "category": category.lower() if category else None,
            "priority": checked.priority,
            "location_text": clean_text(submission.location_text),
            "latitude": checked.latitude,
            "longitude": checked.longitude,
            "ward_id": _reference_id(submission.ward_id),
            "department_id": _reference_id(submission.department_id),
            "source_message_id": clean_text(submission.source_message_id),
            "source_call_id": clean_text(submission.source_call_id),
        }

        try:
            rows = await self._store.insert("complaints", [payload], returning=_CREATED_COLUMNS)
        except UniqueViolation as exc:
            log.info("complaint.create.duplicate_source")
            raise DuplicateSource("Duplicate source message/call id") from exc
        except StoreError as exc:
            log.error("complaint.create.insert_failed", error=str(exc))
            raise DependencyFailure("Failed to record complaint") from exc

        complaint = CreatedComplaint.model_validate(rows[0])
        log = log.bind(complaint_id=complaint.id, complaint_number=complaint.complaint_number)

        try:
            await self._audit.append(
                complaint.id,
                EventType.COMPLAINT_CREATED,
                old_value=None,
                new_value={"status": complaint.status},
                actor_type=ActorType.SYSTEM,
                note=note,
            )
            if checked.media:
                await self._store.insert(
                    "complaint_media",
                    build_media_rows(complaint.id, checked.media, default_bucket=self._media_bucket),
                )
        except StoreError as exc:
            log.error("complaint.create.attach_failed", error=str(exc))
            await self._discard(complaint.id)
            raise DependencyFailure("Failed to record complaint") from exc

        log.info("complaint.create.completed", status=complaint.status)
        return complaint

    async def _discard(self, complaint_id: str) -> None:
        """Best-effort removal of a partially recorded complaint."""
        try:
            await self._store.delete("complaints", filters={"id": complaint_id})
        except StoreError:
            logger.error("complaint.create.discard_failed", complaint_id=complaint_id, exc_info=True)
        else:
            logger.warning("complaint.create.discarded", complaint_id=complaint_id)


def parse_complaint_number(value: int | str) -> int:
    """Accept only positive integers (or their decimal string form)."""
    if isinstance(value, bool):
        number = None
    elif isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdecimal():
        number = int(value.strip())
    else:
        number = None
    if number is None or number <= 0:
        raise ValidationFailed("complaint_no must be a positive integer")
    return number


class ComplaintReader:
    """Read path: a complaint with its media and full event history."""

    __slots__ = ("_audit", "_store")

    def __init__(self, store: RecordStore, audit: AuditTrailRecorder) -> None:
        self._store = store
        self._audit = audit

    async def get(self, complaint_number: int | str) -> ComplaintAggregate:
        number = parse_complaint_number(complaint_number)

        try:
            row = await self._store.select_one(
                "complaints",
                columns=_COMPLAINT_COLUMNS,
                filters={"complaint_number": number},
            )
        except NoRowFound:
            raise ComplaintNotFound("Complaint not found") from None
        except StoreError as exc:
            logger.error("complaint.read.failed", complaint_number=number, error=str(exc))
            raise DependencyFailure("Failed to read complaint") from exc

        complaint = ComplaintRecord.model_validate(row)

        # Both reads are independent; either failing fails the whole aggregate.
        try:
            media_rows, timeline = await asyncio.gather(
                self._store.select(
                    "complaint_media",
                    columns=_MEDIA_COLUMNS,
                    filters={"complaint_id": complaint.id},
                    order_by="uploaded_at",
                    descending=True,
                ),
                self._audit.timeline(complaint.id),
            )
        except StoreError as exc:
            logger.error("complaint.read.related_failed", complaint_id=complaint.id, error=str(exc))
            raise DependencyFailure("Failed to read complaint") from exc

        return ComplaintAggregate(
            complaint=complaint,
            media=[ComplaintMediaRecord.model_validate(item) for item in media_rows],
            timeline=timeline,
        )


class ComplaintRemover:
    """Unconditional hard delete of a complaint by id."""

    __slots__ = ("_store",)

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def remove(self, complaint_id: str | None) -> dict[str, Any]:
        target = clean_text(complaint_id)
        if target is None:
            raise ValidationFailed("complaint_id is required")

        try:
            row = await self._store.select_one(
                "complaints",
                columns=("id", "complaint_number"),
                filters={"id": target},
            )
            await self._store.delete("complaints", filters={"id": target})
        except NoRowFound:
            raise ComplaintNotFound("Complaint not found") from None
        except StoreError as exc:
            logger.error("complaint.remove.failed", complaint_id=target, error=str(exc))
            raise DependencyFailure("Failed to delete complaint") from exc

        logger.info("complaint.removed", complaint_id=row["id"], complaint_number=row["complaint_number"])
        return {"id": row["id"], "complaint_number": row["complaint_number"]}
