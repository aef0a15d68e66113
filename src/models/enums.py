from __future__ import annotations

from enum import StrEnum


class Channel(StrEnum):
    __slots__ = ()

    SMS = "sms"
    WHATSAPP = "whatsapp"
    VOICE = "voice"


class Priority(StrEnum):
    __slots__ = ()

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class MediaType(StrEnum):
    __slots__ = ()

    AUDIO = "audio"
    IMAGE = "image"


class ComplaintStatus(StrEnum):
    """Lifecycle states.  Intake only ever assigns ``received``."""

    __slots__ = ()

    RECEIVED = "received"


class ActorType(StrEnum):
    __slots__ = ()

    SYSTEM = "system"


class EventType(StrEnum):
    __slots__ = ()

    COMPLAINT_CREATED = "complaint_created"
