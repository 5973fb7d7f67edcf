"""
Record normalization for API responses

Gallery and journal rows have gone through several schema revisions, so the
same value can live under different column names. The functions here are the
single place where those aliases are reconciled.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from site_backend.config import UNTITLED
from site_backend.utils.images import extract_object_path, public_url

# Precedence for the gallery image reference: first non-empty value wins.
IMAGE_REFERENCE_FIELDS = ("image_url", "src", "path", "object_path")


def is_absolute_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def resolve_image_reference(row: dict, base_url: str, bucket: str) -> str | None:
    """
    Resolve the absolute image URL for a gallery row.

    Looks at image_url, src, path, object_path in that order and takes the
    first non-empty string. An absolute http(s) URL is returned unchanged;
    anything else is treated as a storage key in bucket and turned into its
    public URL.

    Args:
        row: Gallery row as returned by the REST API
        base_url: Backing service base URL
        bucket: Object store bucket

    Returns:
        str: Absolute URL, or None if the row carries no reference at all
    """
    for field in IMAGE_REFERENCE_FIELDS:
        value = row.get(field)
        if isinstance(value, str) and value.strip():
            value = value.strip()
            if is_absolute_url(value):
                return value
            return public_url(base_url, bucket, value.lstrip("/"))
    return None


def resolve_object_path(row: dict, bucket: str, path_column: str | None = None) -> str | None:
    """
    Find the storage key of a gallery row's image.

    The configured path column wins; otherwise the key is recovered from
    the public URL stored in image_url or src.
    """
    columns = (path_column,) if path_column else ()
    for column in columns + ("path", "object_path"):
        value = row.get(column)
        if isinstance(value, str) and value.strip() and not is_absolute_url(value.strip()):
            return value.strip().lstrip("/")
    for field in ("image_url", "src"):
        object_path = extract_object_path(row.get(field), bucket)
        if object_path:
            return object_path
    return None


def normalize_gallery_row(row: dict, base_url: str, bucket: str) -> dict:
    """Return row with the resolved URL under both image_url and src."""
    url = resolve_image_reference(row, base_url, bucket)
    return {**row, "image_url": url, "src": url}


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def journal_date(row: dict) -> str:
    """
    Resolve the display date of a journal entry.

    Precedence: date, entry_date, created_at, then the current time.
    """
    for field in ("date", "entry_date", "created_at"):
        value = row.get(field)
        if value:
            return str(value)
    return _utc_now_iso()


def normalize_journal_row(row: dict) -> dict[str, Any]:
    """
    Convert a journal row to the shape the front end expects.

    Both date and entry_date are exposed for older clients.
    """
    date = journal_date(row)
    content = row.get("content")
    if content is None:
        content = row.get("body")
    return {
        "id": row.get("id"),
        "title": row.get("title") or UNTITLED,
        "date": date,
        "entry_date": date,
        "content": content or "",
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }
