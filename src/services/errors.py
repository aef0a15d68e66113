"""Error taxonomy for the intake services.

Every failure raised by the service layer is an :class:`IntakeError`
carrying an explicit :class:`ErrorKind`.  Transport adapters (the JSON
API exception handler, the SMS gateway adapter) translate the kind into
their own response format; services never pick status codes.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    __slots__ = ()

    CLIENT_ERROR = "client_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    DEPENDENCY_ERROR = "dependency_error"


class IntakeError(Exception):
    """Base class for classified intake failures."""

    kind: ErrorKind = ErrorKind.DEPENDENCY_ERROR

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class ValidationFailed(IntakeError):
    """Malformed, missing or out-of-range input."""

    kind = ErrorKind.CLIENT_ERROR


class DuplicateSource(IntakeError):
    """The channel source identifier was already recorded."""

    kind = ErrorKind.CONFLICT


class ComplaintNotFound(IntakeError):
    """No complaint matches the requested number or id."""

    kind = ErrorKind.NOT_FOUND


class DependencyFailure(IntakeError):
    """The backing store failed in a way callers cannot correct."""

    kind = ErrorKind.DEPENDENCY_ERROR
