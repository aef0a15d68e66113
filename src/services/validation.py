"""Input shaping helpers shared by the intake services."""

from __future__ import annotations

import math
from typing import Any, Final

from src.models.enums import Channel, MediaType, Priority

VALID_CHANNELS: Final[frozenset[str]] = frozenset(c.value for c in Channel)
VALID_PRIORITIES: Final[frozenset[str]] = frozenset(p.value for p in Priority)
VALID_MEDIA_TYPES: Final[frozenset[str]] = frozenset(m.value for m in MediaType)


def clean_text(value: Any) -> str | None:
    """Return *value* stripped, or ``None`` unless it is a non-empty string."""
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def coerce_number(value: Any) -> float | int | None:
    """Coerce *value* to a finite number; ``None`` when absent or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def in_range(value: Any, lower: float, upper: float) -> float | None:
    """Return *value* as a float when it lies within ``[lower, upper]``.

    Raises
    ------
    ValueError
        If *value* is not numeric or falls outside the range.
    """
    number = coerce_number(value)
    if number is None or not lower <= number <= upper:
        raise ValueError(f"{value!r} not in [{lower}, {upper}]")
    return float(number)


def mask_phone(phone_number: str) -> str:
    """Mask all but the last four digits of a phone number for logging."""
    if len(phone_number) <= 4:
        return "*" * len(phone_number)
    return "*" * (len(phone_number) - 4) + phone_number[-4:]
