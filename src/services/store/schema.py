"""Table definitions mirrored by the in-memory store.

These describe the constraints the relational schema enforces (see
``sql/schema.sql``): generated ids, the complaint number sequence,
column defaults, partial unique keys, foreign keys and delete cascades.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, frozen=True)
class TableSchema:
    name: str
    # Each tuple is a unique key; rows with a NULL in any key column are
    # exempt, matching partial unique indexes.
    unique: tuple[tuple[str, ...], ...] = ()
    sequence: str | None = None
    defaults: dict[str, Callable[[], Any]] = field(default_factory=dict)
    touch_on_update: str | None = None
    foreign_keys: dict[str, str] = field(default_factory=dict)
    cascades: tuple[tuple[str, str], ...] = ()


TABLES: Final[dict[str, TableSchema]] = {
    "citizens": TableSchema(
        name="citizens",
        unique=(("phone_number",),),
        defaults={"created_at": _now, "updated_at": _now},
        touch_on_update="updated_at",
    ),
    "complaints": TableSchema(
        name="complaints",
        unique=(("channel", "source_message_id"), ("channel", "source_call_id")),
        sequence="complaint_number",
        defaults={
            "status": lambda: "received",
            "priority": lambda: "medium",
            "created_at": _now,
            "updated_at": _now,
            "resolved_at": lambda: None,
        },
        touch_on_update="updated_at",
        foreign_keys={"citizen_id": "citizens"},
        cascades=(("complaint_events", "complaint_id"), ("complaint_media", "complaint_id")),
    ),
    "complaint_events": TableSchema(
        name="complaint_events",
        defaults={"created_at": _now, "actor_id": lambda: None},
        foreign_keys={"complaint_id": "complaints"},
    ),
    "complaint_media": TableSchema(
        name="complaint_media",
        defaults={"storage_bucket": lambda: "complaint-evidence", "uploaded_at": _now},
        foreign_keys={"complaint_id": "complaints"},
    ),
}
