"""
Exception types shared by the site handlers

Handlers catch these at their boundary and turn them into JSON responses:
- ConfigError -> 500
- UpstreamError -> 502
- BadImageError -> 400
"""

from __future__ import annotations

from typing import Any


class ConfigError(Exception):
    """Required environment configuration is missing."""


class BadImageError(ValueError):
    """Embedded image data is not a valid base64 data URL."""


class UpstreamError(Exception):
    """
    The backing REST/storage service answered with a non-success status,
    or could not be reached at all.

    Attributes:
        status: HTTP status returned upstream (None for transport failures)
        body: Response text (or error string) for diagnosis
    """

    def __init__(self, message: str, status: int | None = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is None:
            return f"{self.message}: {self.body}"
        return f"{self.message} (HTTP {self.status}): {self.body}"
