"""
Lambda handler for journal entries (list, create, update, delete)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from site_backend.config import UNTITLED, Settings, configure_logging, load_settings
from site_backend.utils.errors import ConfigError, UpstreamError
from site_backend.utils.normalize import normalize_journal_row
from site_backend.utils.response import (
    api_response,
    error_response,
    method_not_allowed,
    options_response,
    upstream_error_response,
)
from site_backend.utils.rest import RestClient
from site_backend.utils.validation import (
    get_method,
    parse_json_body,
    require_id,
    string_fields,
    validate_string_field,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Newest first, id as a stable tiebreaker
LIST_ORDER = ["created_at.desc.nullslast", "id.desc"]


def _request_date(body: dict) -> Any:
    """The entry date from either alias, date winning over entry_date. Blank values are skipped."""
    for name in ("date", "entry_date"):
        value = body.get(name)
        if value is not None and str(value).strip():
            return value
    return None


def list_journal(event: dict, settings: Settings, rest: RestClient) -> dict:
    rows = rest.select(settings.journal_table, order=LIST_ORDER, error="Failed to list journal")
    logger.info(f"Retrieved {len(rows)} journal entries")
    return api_response(200, [normalize_journal_row(row) for row in rows])


def create_journal_entry(event: dict, settings: Settings, rest: RestClient) -> dict:
    """
    Insert a journal entry.

    Body: {title, date | entry_date, content}. A blank title is stored as
    "Untitled" and a missing date as the current UTC time.
    """
    body, error = parse_json_body(event)
    if error:
        return error

    error = validate_string_field(body, "title", required=True)
    if error:
        logger.warning("Journal entry rejected: invalid title")
        return error

    title = body["title"].strip() or UNTITLED
    date = str(_request_date(body) or "").strip() or datetime.now(UTC).isoformat()
    content = body.get("content")
    content = "" if content is None else str(content)

    payload = {
        "title": title,
        settings.journal_schema.date_column: date,
        "content": content,
    }
    row = rest.insert(settings.journal_table, payload)
    logger.info(f"Created journal entry: {(row or {}).get('id')}")
    return api_response(200, normalize_journal_row(row or payload))


def update_journal_entry(event: dict, settings: Settings, rest: RestClient) -> dict:
    """
    Partially update a journal entry.

    Body: {id, title?, date? | entry_date?, content?}. Only string values count.
    """
    body, error = parse_json_body(event)
    if error:
        return error

    record_id, error = require_id(body)
    if error:
        return error

    fields: dict[str, Any] = string_fields(body, ("title", "content"))
    date = _request_date(body)
    if isinstance(date, str):
        fields[settings.journal_schema.date_column] = date

    if not fields:
        return error_response(400, "No updatable fields provided")

    logger.info(f"Updating journal entry {record_id} with fields: {list(fields.keys())}")
    row = rest.update(settings.journal_table, record_id, fields)
    if row is None:
        logger.warning(f"Journal entry not found: {record_id}")
        return error_response(404, "Not Found", f'Journal entry "{record_id}" not found')

    return api_response(200, normalize_journal_row(row))


def delete_journal_entry(event: dict, settings: Settings, rest: RestClient) -> dict:
    body, error = parse_json_body(event)
    if error:
        return error

    record_id, error = require_id(body)
    if error:
        return error

    rest.delete(settings.journal_table, record_id)
    logger.info(f"Deleted journal entry: {record_id}")
    return api_response(200, {"ok": True})


ROUTES = {
    "GET": list_journal,
    "POST": create_journal_entry,
    "PUT": update_journal_entry,
    "DELETE": delete_journal_entry,
}


def journal_handler(event, context):
    """
    Lambda handler for the journal resource.

    GET lists entries newest first, POST creates, PUT updates, DELETE removes.
    """
    method = get_method(event)
    if method == "OPTIONS":
        return options_response()

    logger.info(f"journal_handler invoked: {method}")

    try:
        settings = load_settings()
        configure_logging(settings)
        settings.require_backend()
        settings.require_journal()

        route = ROUTES.get(method)
        if route is None:
            return method_not_allowed()

        return route(event, settings, RestClient(settings))

    except ConfigError as e:
        logger.error(f"Configuration error: {str(e)}")
        return error_response(500, "Configuration Error", str(e))
    except UpstreamError as e:
        return upstream_error_response(e)
    except Exception as e:
        logger.error(f"[journal handler] {str(e)}", exc_info=True)
        return error_response(500, "Internal error", str(e))
