"""Media evidence normalisation and row shaping."""

from __future__ import annotations

from typing import Any

from src.services.errors import ValidationFailed
from src.services.validation import VALID_MEDIA_TYPES, clean_text, coerce_number

DEFAULT_MEDIA_BUCKET = "complaint-evidence"


def normalize_media(raw_media: Any) -> list[dict[str, Any]]:
    """Keep only the object entries of a media list.

    Anything that is not a list yields an empty list.
    """
    if not isinstance(raw_media, list):
        return []
    return [item for item in raw_media if isinstance(item, dict)]


def validate_media(items: list[dict[str, Any]]) -> None:
    """Reject the whole batch on the first invalid item."""
    for item in items:
        media_type = item.get("media_type")
        if not isinstance(media_type, str) or media_type not in VALID_MEDIA_TYPES:
            raise ValidationFailed("media_type must be audio or image")
        if clean_text(item.get("storage_path")) is None:
            raise ValidationFailed("media.storage_path is required")


def build_media_rows(
    complaint_id: str,
    items: list[dict[str, Any]],
    *,
    default_bucket: str = DEFAULT_MEDIA_BUCKET,
) -> list[dict[str, Any]]:
    """Shape validated media items into ``complaint_media`` rows."""
    return [
        {
            "complaint_id": complaint_id,
            "media_type": item["media_type"],
            "storage_bucket": clean_text(item.get("storage_bucket")) or default_bucket,
            "storage_path": item["storage_path"].strip(),
            "mime_type": clean_text(item.get("mime_type")),
            "size_bytes": coerce_number(item.get("size_bytes")),
            "duration_sec": coerce_number(item.get("duration_sec")),
            "checksum_sha256": clean_text(item.get("checksum_sha256")),
        }
        for item in items
    ]
