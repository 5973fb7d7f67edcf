"""
Image helpers for the gallery handlers

Provides functions for decoding data URLs, sanitizing filenames and
deriving object store keys.
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from urllib.parse import quote, unquote

from site_backend.config import UPLOAD_PREFIX
from site_backend.utils.errors import BadImageError

DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.IGNORECASE)
PUBLIC_MARKER = "/storage/v1/object/public/"

_UNSAFE_RUN = re.compile(r"[^a-z0-9._-]+")
_HYPHEN_RUN = re.compile(r"-+")


def now_millis() -> int:
    """Current epoch time in milliseconds, used as the upload key prefix."""
    return int(time.time() * 1000)


def parse_data_url(data_url: str | None) -> tuple[str, bytes]:
    """
    Split a data URL into its MIME type and decoded bytes.

    Args:
        data_url: String of the form data:<mime>;base64,<payload>

    Returns:
        tuple: (content_type, raw_bytes)

    Raises:
        BadImageError: If the format does not match or the payload is not base64
    """
    match = DATA_URL_RE.match(data_url or "") if isinstance(data_url, str) else None
    if not match:
        raise BadImageError("Bad image dataUrl")

    content_type, payload = match.group(1), match.group(2)
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadImageError("Bad image dataUrl") from e
    return content_type, raw


def clean_name(filename: str | None) -> str:
    """
    Sanitize a filename for use in an object key.

    Lowercases, replaces every run of characters outside [a-z0-9._-] with a
    hyphen, collapses repeated hyphens and trims leading/trailing hyphens.
    Sanitizing an already clean name returns it unchanged.

    Example:
        clean_name("My Photo.PNG")  # "my-photo.png"
    """
    name = (filename or "").lower()
    name = _UNSAFE_RUN.sub("-", name)
    name = _HYPHEN_RUN.sub("-", name)
    return name.strip("-")


def build_object_path(filename: str, timestamp_ms: int | None = None) -> str:
    """
    Compute the storage key for a gallery upload.

    Returns:
        str: "uploads/<timestamp>_<clean name>" ("image" when nothing survives cleaning)
    """
    if timestamp_ms is None:
        timestamp_ms = now_millis()
    return f"{UPLOAD_PREFIX}{timestamp_ms}_{clean_name(filename) or 'image'}"


def file_extension(filename: str, default: str = "jpg") -> str:
    """Lower-cased extension after the last dot, or default when there is none."""
    base = (filename or "").rsplit("/", 1)[-1]
    if "." not in base:
        return default
    ext = clean_name(base.rsplit(".", 1)[1])
    return ext or default


def build_legacy_filename(filename: str, timestamp_ms: int | None = None) -> str:
    """Object name used by the legacy upload handler: gallery-<timestamp>.<ext>"""
    if timestamp_ms is None:
        timestamp_ms = now_millis()
    return f"gallery-{timestamp_ms}.{file_extension(filename)}"


def encode_object_path(object_path: str) -> str:
    """URL-encode each key segment, keeping the slashes."""
    return quote(object_path, safe="/")


def public_url(base_url: str, bucket: str, object_path: str) -> str:
    """Public read URL the object store serves an object at."""
    return f"{base_url}{PUBLIC_MARKER}{quote(bucket, safe='')}/{encode_object_path(object_path)}"


def extract_object_path(url: str | None, bucket: str) -> str | None:
    """
    Recover the storage key from a previously issued public URL.

    Args:
        url: Public URL like <base>/storage/v1/object/public/<bucket>/<key>
        bucket: Bucket name the key belongs to

    Returns:
        str: URL-decoded key, or None if the public marker for bucket is absent
    """
    if not url or not isinstance(url, str):
        return None
    marker = f"{PUBLIC_MARKER}{quote(bucket, safe='')}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    object_path = url[idx + len(marker):].split("?", 1)[0]
    return unquote(object_path) or None
