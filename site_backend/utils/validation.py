"""
Request validation utilities for the site handlers

Provides functions to validate and extract data from Lambda proxy events.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

from site_backend.utils.response import error_response

logger = logging.getLogger()


def get_method(event: dict) -> str:
    """Return the upper-cased HTTP method (REST or HTTP API event shape)."""
    method = event.get("httpMethod")
    if not method:
        http = (event.get("requestContext") or {}).get("http") or {}
        method = http.get("method") or ""
    return str(method).upper()


def get_header(event: dict, name: str) -> str | None:
    """
    Look up a request header case-insensitively.

    Args:
        event: Lambda proxy event
        name: Header name, any casing

    Returns:
        str: Header value, or None if absent
    """
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def parse_json_body(event: dict) -> tuple[dict, dict | None]:
    """
    Parse JSON body from a Lambda proxy event.

    An absent or empty body parses as {}. Base64-encoded bodies are decoded first.

    Args:
        event: Lambda proxy event

    Returns:
        tuple: (parsed_body, error_response) - If successful, error_response is None
               If error, parsed_body is empty dict (caller should check error first)
    """
    raw = event.get("body") or "{}"
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        body = json.loads(raw)
    except (ValueError, TypeError):
        logger.warning("Invalid JSON in request body")
        return {}, error_response(400, "Invalid JSON in request body")

    if body is None:
        return {}, None
    if not isinstance(body, dict):
        logger.warning("Request body is not a JSON object")
        return {}, error_response(400, "Request body must be a JSON object")
    return body, None


def require_id(body: dict) -> tuple[Any, dict | None]:
    """
    Extract the record identifier from a request body.

    Returns:
        tuple: (id, error_response) - error_response is a 400 when id is missing
    """
    record_id = body.get("id")
    if record_id is None or record_id == "":
        logger.warning("Missing id in request body")
        return None, error_response(400, "Missing id")
    return record_id, None


def validate_string_field(body: dict, field: str, required: bool = False) -> dict | None:
    """
    Validate a string field in request body.

    Args:
        body: Request body dictionary
        field: Field name to validate
        required: Whether the field is required

    Returns:
        dict: Error response if validation fails, None if valid
    """
    if body.get(field) is None:
        if required:
            return error_response(400, f"{field} is required")
        return None

    value = body[field]
    if not isinstance(value, str):
        return error_response(400, f'Field "{field}" must be a string')

    return None


def string_fields(body: dict, fields: tuple[str, ...]) -> dict[str, str]:
    """Pick the given fields from body, keeping only string values."""
    return {name: body[name] for name in fields if isinstance(body.get(name), str)}
