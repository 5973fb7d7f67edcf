"""
Response building utilities for the site handlers

Provides functions to create standardized Lambda proxy responses.
"""

from __future__ import annotations

import json
from typing import Any

from site_backend.utils.errors import UpstreamError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Admin-Key",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, max-age=0",
    "Pragma": "no-cache",
}


def api_response(status_code: int, body: Any, headers: dict | None = None) -> dict:
    """
    Helper to format a Lambda proxy response with CORS headers.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Extra headers merged over the defaults

    Returns:
        dict: Lambda proxy response with headers
    """
    response_headers = {"Content-Type": "application/json", **CORS_HEADERS}
    if headers:
        response_headers.update(headers)
    return {
        "statusCode": status_code,
        "body": json.dumps(body, default=str),
        "headers": response_headers,
    }


def error_response(status_code: int, error: str, detail: Any = None, **extra: Any) -> dict:
    """
    Helper to create error response.

    Args:
        status_code: HTTP status code
        error: Short error description
        detail: Optional diagnostic detail
        **extra: Additional body fields

    Returns:
        dict: Lambda proxy error response
    """
    body: dict[str, Any] = {"error": error}
    if detail is not None:
        body["detail"] = detail
    body.update(extra)
    return api_response(status_code, body)


def upstream_error_response(exc: UpstreamError, **extra: Any) -> dict:
    """502 response carrying the upstream status and body for diagnosis."""
    return error_response(502, exc.message, exc.body, status=exc.status, **extra)


def options_response() -> dict:
    """Preflight short-circuit: empty 204 carrying only CORS headers."""
    return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}


def method_not_allowed() -> dict:
    return error_response(405, "Method not allowed")
