"""
Minimal HTTP client over urllib.request

Non-2xx responses are returned rather than raised so callers can decide
between a retry, a 502 and a best-effort warning. Transport failures
(DNS, refused connection, timeout) still raise urllib.error.URLError.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from site_backend.config import HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text) if self.body else None

    def json_or_text(self) -> Any:
        """Parsed JSON body, falling back to the raw text."""
        if not self.body:
            return self.text
        try:
            return self.json()
        except ValueError:
            return self.text


def send_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    data: bytes | None = None,
    timeout: float = HTTP_TIMEOUT_SECONDS,
) -> HttpResponse:
    """
    Send one HTTP request.

    Args:
        method: HTTP verb
        url: Absolute URL
        headers: Request headers
        data: Raw request body
        timeout: Socket timeout in seconds

    Returns:
        HttpResponse: status, body and headers, for success and HTTP errors alike

    Raises:
        urllib.error.URLError: If the server could not be reached
    """
    req = urllib.request.Request(url, data=data, headers=headers or {}, method=method)
    logger.debug(f"{method} {url}")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return HttpResponse(
                status=resp.status,
                body=resp.read(),
                headers=dict(resp.headers or {}),
            )
    except urllib.error.HTTPError as e:
        body = e.read() if e.fp is not None else b""
        return HttpResponse(status=e.code, body=body or b"", headers=dict(e.headers or {}))
