"""Complaint intake models.

Covers the submission accepted from every intake channel, the records
persisted for a complaint (the complaint row, its audit events and its
media evidence), and the aggregate returned to readers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.models.enums import ComplaintStatus, Priority


class ComplaintSubmission(BaseModel):
    """Raw complaint creation input, shared by every intake channel.

    Every field accepts any JSON value. Trimming, case folding, range
    checks and media validation happen in the complaint writer, which
    reports the first violation with its own client-facing message.
    """

    model_config = {"extra": "ignore"}

    phone_number: Any = None
    name: Any = None
    preferred_language: Any = None
    channel: Any = None
    raw_text: Any = None
    translated_text: Any = None
    category: Any = None
    priority: Any = None
    location_text: Any = None
    latitude: Any = None
    longitude: Any = None
    ward_id: Any = None
    department_id: Any = None
    source_message_id: Any = None
    source_call_id: Any = None
    media: Any = None


class CreatedComplaint(BaseModel):
    """Summary returned once a complaint has been recorded."""

    id: str
    complaint_number: int
    status: str
    channel: str
    citizen_id: str
    created_at: datetime


class ComplaintRecord(BaseModel):
    id: str
    complaint_number: int
    status: str = ComplaintStatus.RECEIVED
    channel: str
    priority: str = Priority.MEDIUM
    category: str | None = None
    raw_text: str | None = None
    translated_text: str | None = None
    location_text: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    citizen_id: str
    ward_id: str | int | None = None
    department_id: str | int | None = None
    created_at: datetime
    updated_at: datetime | None = None
    resolved_at: datetime | None = None


class ComplaintEventRecord(BaseModel):
    """Immutable audit entry attached to a complaint."""

    id: str
    event_type: str
    old_value: Any = None
    new_value: Any = None
    actor_id: str | None = None
    actor_type: str
    note: str | None = None
    created_at: datetime


class ComplaintMediaRecord(BaseModel):
    id: str
    media_type: str
    storage_bucket: str
    storage_path: str
    mime_type: str | None = None
    size_bytes: int | float | None = None
    duration_sec: int | float | None = None
    checksum_sha256: str | None = None
    uploaded_at: datetime


class ComplaintAggregate(BaseModel):
    """A complaint together with its evidence and newest-first timeline."""

    complaint: ComplaintRecord
    media: list[ComplaintMediaRecord] = Field(default_factory=list)
    timeline: list[ComplaintEventRecord] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Flatten into the shape served by the read endpoint."""
        payload = self.complaint.model_dump()
        payload["media"] = [item.model_dump() for item in self.media]
        payload["timeline"] = [event.model_dump() for event in self.timeline]
        return payload
