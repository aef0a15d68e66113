"""Tests for the complaint read path and complaint removal."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from src.models.complaint import ComplaintSubmission
from src.services.audit import AuditTrailRecorder
from src.services.complaints import (
    ComplaintReader,
    ComplaintRemover,
    ComplaintWriter,
    parse_complaint_number,
)
from src.services.errors import ComplaintNotFound, DependencyFailure, ErrorKind, ValidationFailed
from src.services.identity import IdentityResolver
from src.services.store import InMemoryRecordStore, StoreError


class _FailingSelectStore(InMemoryRecordStore):
    """Memory store whose multi-row reads of one table always fail."""

    def __init__(self, failing_table: str) -> None:
        super().__init__()
        self.failing_table = failing_table

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        if table == self.failing_table and order_by is not None:
            raise StoreError(f"{table} unavailable")
        return await super().select(
            table, columns=columns, filters=filters, order_by=order_by, descending=descending
        )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def audit(store: InMemoryRecordStore) -> AuditTrailRecorder:
    return AuditTrailRecorder(store)


@pytest.fixture
def writer(store: InMemoryRecordStore, audit: AuditTrailRecorder) -> ComplaintWriter:
    return ComplaintWriter(store, IdentityResolver(store), audit)


@pytest.fixture
def reader(store: InMemoryRecordStore, audit: AuditTrailRecorder) -> ComplaintReader:
    return ComplaintReader(store, audit)


@pytest.fixture
def remover(store: InMemoryRecordStore) -> ComplaintRemover:
    return ComplaintRemover(store)


def _submission(**overrides: Any) -> ComplaintSubmission:
    fields: dict[str, Any] = {"phone_number": "+1555", "channel": "sms", "raw_text": "pothole on 5th"}
    fields.update(overrides)
    return ComplaintSubmission(**fields)


# -----------------------------------------------------------------------
# Complaint number parsing
# -----------------------------------------------------------------------


class TestParseComplaintNumber:
    @pytest.mark.parametrize("value", [1, "1", " 42 "])
    def test_accepts_positive_integers(self, value: int | str) -> None:
        assert parse_complaint_number(value) == int(str(value).strip())

    @pytest.mark.parametrize("value", [0, -3, "0", "-3", "abc", "1.5", "", True])
    def test_rejects_everything_else(self, value: Any) -> None:
        with pytest.raises(ValidationFailed, match="complaint_no must be a positive integer"):
            parse_complaint_number(value)


# -----------------------------------------------------------------------
# Reader
# -----------------------------------------------------------------------


class TestComplaintReader:
    async def test_read_after_create(self, writer: ComplaintWriter, reader: ComplaintReader) -> None:
        created = await writer.create(_submission())
        aggregate = await reader.get(created.complaint_number)

        assert aggregate.complaint.id == created.id
        assert aggregate.complaint.raw_text == "pothole on 5th"
        assert aggregate.media == []
        assert len(aggregate.timeline) == 1
        event = aggregate.timeline[0]
        assert event.event_type == "complaint_created"
        assert event.new_value["status"] == created.status

    async def test_timeline_newest_first(
        self,
        writer: ComplaintWriter,
        reader: ComplaintReader,
        audit: AuditTrailRecorder,
    ) -> None:
        created = await writer.create(_submission())
        await audit.append(
            created.id,
            "status_changed",
            old_value={"status": "received"},
            new_value={"status": "in_progress"},
            actor_type="officer",
            note="Picked up",
        )

        aggregate = await reader.get(str(created.complaint_number))

        assert [event.event_type for event in aggregate.timeline] == ["status_changed", "complaint_created"]
        assert aggregate.timeline[0].actor_type == "officer"

    async def test_media_newest_first(self, writer: ComplaintWriter, reader: ComplaintReader) -> None:
        created = await writer.create(
            _submission(
                media=[
                    {"media_type": "image", "storage_path": "first.jpg"},
                    {"media_type": "audio", "storage_path": "second.wav"},
                ]
            )
        )
        aggregate = await reader.get(created.complaint_number)
        assert [item.storage_path for item in aggregate.media] == ["second.wav", "first.jpg"]

    async def test_payload_is_flat(self, writer: ComplaintWriter, reader: ComplaintReader) -> None:
        created = await writer.create(_submission(category="Water"))
        payload = (await reader.get(created.complaint_number)).to_payload()

        assert payload["complaint_number"] == created.complaint_number
        assert payload["category"] == "water"
        assert payload["media"] == []
        assert payload["timeline"][0]["event_type"] == "complaint_created"

    async def test_not_found(self, reader: ComplaintReader) -> None:
        with pytest.raises(ComplaintNotFound) as exc_info:
            await reader.get(99)
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    async def test_related_fetch_failure_fails_read(self) -> None:
        store = _FailingSelectStore("complaint_media")
        audit = AuditTrailRecorder(store)
        created = await ComplaintWriter(store, IdentityResolver(store), audit).create(_submission())

        with pytest.raises(DependencyFailure):
            await ComplaintReader(store, audit).get(created.complaint_number)

    async def test_timeline_fetch_failure_fails_read(self) -> None:
        store = _FailingSelectStore("complaint_events")
        audit = AuditTrailRecorder(store)
        created = await ComplaintWriter(store, IdentityResolver(store), audit).create(_submission())

        with pytest.raises(DependencyFailure):
            await ComplaintReader(store, audit).get(created.complaint_number)


# -----------------------------------------------------------------------
# Remover
# -----------------------------------------------------------------------


class TestComplaintRemover:
    async def test_remove_returns_reference(
        self,
        writer: ComplaintWriter,
        remover: ComplaintRemover,
        store: InMemoryRecordStore,
    ) -> None:
        created = await writer.create(_submission(media=[{"media_type": "image", "storage_path": "a.jpg"}]))

        removed = await remover.remove(created.id)

        assert removed == {"id": created.id, "complaint_number": created.complaint_number}
        assert store.count("complaints") == 0
        assert store.count("complaint_events") == 0
        assert store.count("complaint_media") == 0

    async def test_remove_unknown_leaves_store_unchanged(
        self,
        writer: ComplaintWriter,
        remover: ComplaintRemover,
        store: InMemoryRecordStore,
    ) -> None:
        await writer.create(_submission())
        before = {table: store.count(table) for table in ("citizens", "complaints", "complaint_events")}

        with pytest.raises(ComplaintNotFound):
            await remover.remove("does-not-exist")

        after = {table: store.count(table) for table in ("citizens", "complaints", "complaint_events")}
        assert after == before

    @pytest.mark.parametrize("value", ["", "   ", None])
    async def test_remove_requires_id(self, remover: ComplaintRemover, value: str | None) -> None:
        with pytest.raises(ValidationFailed, match="complaint_id is required"):
            await remover.remove(value)

    async def test_removed_complaint_is_unreadable(
        self,
        writer: ComplaintWriter,
        reader: ComplaintReader,
        remover: ComplaintRemover,
    ) -> None:
        created = await writer.create(_submission())
        await remover.remove(created.id)
        with pytest.raises(ComplaintNotFound):
            await reader.get(created.complaint_number)
