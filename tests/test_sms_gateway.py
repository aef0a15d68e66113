"""Tests for the SMS gateway intake adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from src.services.audit import AuditTrailRecorder
from src.services.complaints import ComplaintWriter
from src.services.identity import IdentityResolver
from src.services.sms_gateway import (
    MEDIA_PLACEHOLDER_TEXT,
    InboundSms,
    SmsIntakeAdapter,
    twiml,
)
from src.services.store import InMemoryRecordStore, StoreError

EMPTY_ACK = "<Response></Response>"


class _BrokenStore(InMemoryRecordStore):
    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        returning: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        raise StoreError("connection reset")


def _adapter(store: InMemoryRecordStore, **kwargs: Any) -> SmsIntakeAdapter:
    writer = ComplaintWriter(store, IdentityResolver(store), AuditTrailRecorder(store))
    return SmsIntakeAdapter(writer, **kwargs)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def adapter(store: InMemoryRecordStore) -> SmsIntakeAdapter:
    return _adapter(store)


def _form(**overrides: str) -> dict[str, str]:
    form = {"From": "+15550001", "Body": "Streetlight out on Elm", "MessageSid": "SM0001", "NumMedia": "0"}
    form.update(overrides)
    return form


# -----------------------------------------------------------------------
# TwiML rendering
# -----------------------------------------------------------------------


class TestTwiml:
    def test_empty(self) -> None:
        assert twiml() == EMPTY_ACK

    def test_message_is_escaped(self) -> None:
        assert twiml("Roads & <drains>") == "<Response><Message>Roads &amp; &lt;drains&gt;</Message></Response>"


# -----------------------------------------------------------------------
# Form parsing
# -----------------------------------------------------------------------


class TestInboundSms:
    def test_fields_are_trimmed(self) -> None:
        sms = InboundSms.from_form({"From": " +1555 ", "Body": "  hi ", "MessageSid": " SM1 ", "NumMedia": "2"})
        assert (sms.sender, sms.body, sms.message_sid, sms.num_media) == ("+1555", "hi", "SM1", 2)

    @pytest.mark.parametrize("value", ["", "abc", "-1", None])
    def test_bad_media_count_is_zero(self, value: str | None) -> None:
        assert InboundSms.from_form({"NumMedia": value}).num_media == 0

    def test_placeholder_text_for_media_only(self) -> None:
        sms = InboundSms.from_form({"From": "+1555", "Body": "   ", "NumMedia": "1"})
        submission = sms.to_submission()
        assert submission.raw_text == MEDIA_PLACEHOLDER_TEXT
        assert submission.channel == "sms"


# -----------------------------------------------------------------------
# Adapter
# -----------------------------------------------------------------------


class TestSmsIntakeAdapter:
    async def test_new_message_is_acknowledged(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        reply = await adapter.handle(_form())

        assert reply == (
            "<Response><Message>Complaint #1 received. We will keep you updated.</Message></Response>"
        )
        complaint = (await store.select("complaints"))[0]
        assert complaint["channel"] == "sms"
        assert complaint["source_message_id"] == "SM0001"
        assert complaint["raw_text"] == "Streetlight out on Elm"

        events = await store.select("complaint_events")
        assert events[0]["note"] == "Complaint created via SMS webhook"

    async def test_redelivery_gets_empty_ack(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        await adapter.handle(_form())
        reply = await adapter.handle(_form())

        assert reply == EMPTY_ACK
        assert store.count("complaints") == 1
        assert store.count("complaint_events") == 1

    async def test_media_only_message(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        reply = await adapter.handle(_form(Body="", NumMedia="2"))

        assert "Complaint #1" in reply
        complaint = (await store.select("complaints"))[0]
        assert complaint["raw_text"] == MEDIA_PLACEHOLDER_TEXT

    async def test_missing_sender(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        reply = await adapter.handle(_form(From="  "))
        assert reply.startswith("<Response><Message>")
        assert "Missing sender number" in reply
        assert store.count("complaints") == 0

    async def test_missing_body_and_media(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        reply = await adapter.handle(_form(Body="", NumMedia="0"))
        assert "SMS body or media is required" in reply
        assert store.count("citizens") == 0

    async def test_store_failure_gets_empty_ack(self) -> None:
        reply = await _adapter(_BrokenStore()).handle(_form())
        assert reply == EMPTY_ACK

    async def test_custom_ack_template(self, store: InMemoryRecordStore) -> None:
        adapter = _adapter(store, ack_template="Ref {complaint_number}")
        reply = await adapter.handle(_form())
        assert reply == "<Response><Message>Ref 1</Message></Response>"

    async def test_same_sender_new_message(self, adapter: SmsIntakeAdapter, store: InMemoryRecordStore) -> None:
        await adapter.handle(_form())
        reply = await adapter.handle(_form(MessageSid="SM0002", Body="Second issue"))

        assert "Complaint #2" in reply
        assert store.count("citizens") == 1
