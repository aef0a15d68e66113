"""SMS gateway intake adapter (Twilio-style webhooks).

Translates the gateway's form fields into a :class:`ComplaintSubmission`
and answers with TwiML.  The gateway retries any delivery that does not
get a well-formed 200 reply, so this adapter never lets an error escape:

* a new complaint gets an acknowledgment carrying its number;
* a redelivered message (duplicate ``MessageSid``) gets an empty
  ``<Response></Response>`` so the sender is not messaged twice;
* an unusable message gets a short explanation;
* a store failure is logged and answered with an empty response.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final
from xml.sax.saxutils import escape

import structlog

from src.models.complaint import ComplaintSubmission
from src.models.enums import Channel
from src.services.complaints import ComplaintWriter
from src.services.errors import DuplicateSource, IntakeError, ValidationFailed
from src.services.validation import clean_text, coerce_number, mask_phone

logger = structlog.get_logger(__name__)

MEDIA_PLACEHOLDER_TEXT: Final[str] = "Media complaint received"
CREATED_VIA_SMS: Final[str] = "Complaint created via SMS webhook"
DEFAULT_ACK_TEMPLATE: Final[str] = "Complaint #{complaint_number} received. We will keep you updated."


def twiml(message: str | None = None) -> str:
    """Render a TwiML reply, empty when *message* is ``None``."""
    if message is None:
        return "<Response></Response>"
    return f"<Response><Message>{escape(message)}</Message></Response>"


@dataclass(slots=True)
class InboundSms:
    """The subset of a gateway webhook delivery that intake uses."""

    sender: str | None
    body: str | None
    message_sid: str | None
    num_media: int = 0

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> InboundSms:
        num_media = coerce_number(form.get("NumMedia"))
        return cls(
            sender=clean_text(form.get("From")),
            body=clean_text(form.get("Body")),
            message_sid=clean_text(form.get("MessageSid")),
            num_media=int(num_media) if num_media and num_media > 0 else 0,
        )

    def to_submission(self) -> ComplaintSubmission:
        return ComplaintSubmission(
            phone_number=self.sender,
            channel=Channel.SMS,
            raw_text=self.body or MEDIA_PLACEHOLDER_TEXT,
            source_message_id=self.message_sid,
        )


class SmsIntakeAdapter:
    """Gateway-facing entry point into the complaint writer."""

    __slots__ = ("_ack_template", "_writer")

    def __init__(self, writer: ComplaintWriter, *, ack_template: str = DEFAULT_ACK_TEMPLATE) -> None:
        self._writer = writer
        self._ack_template = ack_template

    async def handle(self, form: Mapping[str, Any]) -> str:
        """Process one webhook delivery and return the TwiML reply body."""
        sms = InboundSms.from_form(form)
        log = logger.bind(
            message_sid=sms.message_sid,
            sender=mask_phone(sms.sender) if sms.sender else None,
            num_media=sms.num_media,
        )

        try:
            if sms.sender is None:
                raise ValidationFailed("Missing sender number")
            if sms.body is None and sms.num_media <= 0:
                raise ValidationFailed("SMS body or media is required")
            complaint = await self._writer.create(sms.to_submission(), note=CREATED_VIA_SMS)
        except DuplicateSource:
            log.info("sms.intake.duplicate_ignored")
            return twiml()
        except ValidationFailed as exc:
            log.info("sms.intake.rejected", reason=exc.message)
            return twiml(f"We could not register your complaint: {exc.message}.")
        except Exception as exc:
            kind = exc.kind if isinstance(exc, IntakeError) else "unclassified"
            log.error("sms.intake.failed", kind=kind, exc_info=True)
            return twiml()

        log.info("sms.intake.accepted", complaint_number=complaint.complaint_number)
        return twiml(self._ack_template.format(complaint_number=complaint.complaint_number))
