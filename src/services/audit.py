"""Append-only complaint audit trail."""

from __future__ import annotations

from typing import Any, Final

import structlog

from src.models.complaint import ComplaintEventRecord
from src.models.enums import ActorType
from src.services.store import RecordStore

logger = structlog.get_logger(__name__)

EVENT_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "event_type",
    "old_value",
    "new_value",
    "actor_id",
    "actor_type",
    "note",
    "created_at",
)


class AuditTrailRecorder:
    """Records immutable lifecycle events for complaints.

    Only appends and reads are exposed; events disappear solely through
    the store's cascade when their complaint is removed.  Store errors
    propagate to the caller, which owns the surrounding operation.
    """

    __slots__ = ("_store",)

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def append(
        self,
        complaint_id: str,
        event_type: str,
        old_value: Any,
        new_value: Any,
        actor_type: str = ActorType.SYSTEM,
        note: str | None = None,
        actor_id: str | None = None,
    ) -> None:
        await self._store.insert(
            "complaint_events",
            [
                {
                    "complaint_id": complaint_id,
                    "event_type": event_type,
                    "old_value": old_value,
                    "new_value": new_value,
                    "actor_id": actor_id,
                    "actor_type": actor_type,
                    "note": note,
                }
            ],
        )
        logger.info("audit.event_appended", complaint_id=complaint_id, event_type=event_type)

    async def timeline(self, complaint_id: str) -> list[ComplaintEventRecord]:
        """Return the complaint's events, newest first."""
        rows = await self._store.select(
            "complaint_events",
            columns=EVENT_COLUMNS,
            filters={"complaint_id": complaint_id},
            order_by="created_at",
            descending=True,
        )
        return [ComplaintEventRecord.model_validate(row) for row in rows]
