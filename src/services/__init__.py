"""Intake service layer -- identity, audit trail, complaint engine and channel adapters."""

from __future__ import annotations

from src.services.audit import AuditTrailRecorder
from src.services.complaints import ComplaintReader, ComplaintRemover, ComplaintWriter
from src.services.errors import (
    ComplaintNotFound,
    DependencyFailure,
    DuplicateSource,
    ErrorKind,
    IntakeError,
    ValidationFailed,
)
from src.services.identity import IdentityResolver
from src.services.media import normalize_media
from src.services.sms_gateway import SmsIntakeAdapter

__all__ = [
    "AuditTrailRecorder",
    "ComplaintNotFound",
    "ComplaintReader",
    "ComplaintRemover",
    "ComplaintWriter",
    "DependencyFailure",
    "DuplicateSource",
    "ErrorKind",
    "IdentityResolver",
    "IntakeError",
    "SmsIntakeAdapter",
    "ValidationFailed",
    "normalize_media",
]
