"""
Lambda handler for the photo gallery (list, create, update, delete)

Each gallery row references an image in the object store. Creating an item
uploads the image first and then inserts the row; deleting an item removes
the row first and then deletes the image best-effort.
"""

from __future__ import annotations

import logging
from typing import Any

from site_backend.config import GallerySchema, Settings, configure_logging, load_settings
from site_backend.utils.errors import BadImageError, ConfigError, UpstreamError
from site_backend.utils.images import (
    build_object_path,
    clean_name,
    extract_object_path,
    parse_data_url,
    public_url,
)
from site_backend.utils.normalize import normalize_gallery_row, resolve_object_path
from site_backend.utils.response import (
    api_response,
    error_response,
    method_not_allowed,
    options_response,
    upstream_error_response,
)
from site_backend.utils.rest import RestClient, eq_filter
from site_backend.utils.storage import ObjectStore, get_object_store
from site_backend.utils.validation import (
    get_method,
    parse_json_body,
    require_id,
    validate_string_field,
)

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _first_string(body: dict, *fields: str) -> str | None:
    for name in fields:
        value = body.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _reference_fields(schema: GallerySchema, object_path: str | None, url: str | None) -> dict[str, str]:
    """
    Columns that point a row at its image, according to the table schema.

    image_url is always written when the table has no path column, so a row
    never ends up without a reference.
    """
    fields = {}
    if url is not None and (schema.store_image_url or not schema.path_column):
        fields["image_url"] = url
    if object_path and schema.path_column:
        fields[schema.path_column] = object_path
    return fields


def _delete_object_best_effort(store: ObjectStore, object_path: str) -> dict | None:
    """
    Delete a stored image without failing the calling operation.

    Returns:
        dict: Structured warning describing the failure, or None on success
    """
    try:
        store.delete(object_path)
        logger.info(f"Successfully deleted object: {object_path}")
        return None
    except UpstreamError as e:
        logger.warning(f"Object left orphaned: {object_path} ({e})")
        return {
            "code": "object_delete_failed",
            "object_path": object_path,
            "status": e.status,
            "detail": e.body,
        }


def list_gallery(event: dict, settings: Settings, rest: RestClient) -> dict:
    """Return every gallery row with a resolved image_url/src."""
    schema = settings.gallery_schema
    rows = rest.select(
        settings.gallery_table,
        order=[schema.order] if schema.order else None,
        error="Failed to list gallery",
    )
    logger.info(f"Retrieved {len(rows)} gallery items")
    items = [normalize_gallery_row(row, settings.base_url, settings.bucket) for row in rows]
    return api_response(200, items)


def create_gallery_item(event: dict, settings: Settings, rest: RestClient) -> dict:
    """
    Upload an embedded image and insert the gallery row that references it.

    Body: {image | dataUrl, filename, location?}
    """
    body, error = parse_json_body(event)
    if error:
        return error

    image = body.get("image") or body.get("dataUrl")
    filename = body.get("filename")
    if not image or not filename or not isinstance(filename, str):
        logger.warning("Gallery upload missing image or filename")
        return error_response(400, "image and filename required")

    error = validate_string_field(body, "location")
    if error:
        return error
    location = body.get("location") or ""

    content_type, data = parse_data_url(image)
    object_path = build_object_path(filename)

    store = get_object_store(settings)
    store.upload(object_path, data, content_type, upsert=True)
    url = store.public_url(object_path)

    payload: dict[str, Any] = {
        "filename": clean_name(filename) or "image",
        "location": location,
        **_reference_fields(settings.gallery_schema, object_path, url),
    }

    try:
        row = rest.insert(settings.gallery_table, payload)
    except UpstreamError as e:
        # The row never landed, so the uploaded object has nothing pointing at it
        warning = _delete_object_best_effort(store, object_path)
        if warning:
            return upstream_error_response(e, orphaned_object=object_path)
        return upstream_error_response(e)

    logger.info(f"Created gallery item for object: {object_path}")
    result = {**(row or payload), "image_url": url, "src": url}
    return api_response(200, result)


def update_gallery_item(event: dict, settings: Settings, rest: RestClient) -> dict:
    """
    Partially update a gallery row.

    Body: {id, location?, image_url?, path? | object_path?}
    A new storage path without an explicit image_url re-derives the URL.
    """
    body, error = parse_json_body(event)
    if error:
        return error

    record_id, error = require_id(body)
    if error:
        return error

    error = validate_string_field(body, "location")
    if error:
        return error

    schema = settings.gallery_schema
    fields: dict[str, Any] = {}
    if isinstance(body.get("location"), str):
        fields["location"] = body["location"]

    image_url = body.get("image_url") if isinstance(body.get("image_url"), str) else None
    object_path = _first_string(body, "path", "object_path")
    if object_path:
        object_path = object_path.lstrip("/")
        if image_url is None:
            image_url = public_url(settings.base_url, settings.bucket, object_path)
    elif image_url:
        object_path = extract_object_path(image_url, settings.bucket)

    fields.update(_reference_fields(schema, object_path, image_url))

    if not fields:
        return error_response(400, "No updatable fields provided")

    logger.info(f"Updating gallery item {record_id} with fields: {list(fields.keys())}")
    row = rest.update(settings.gallery_table, record_id, fields)
    if row is None:
        logger.warning(f"Gallery item not found: {record_id}")
        return error_response(404, "Not Found", f'Gallery item "{record_id}" not found')

    return api_response(200, normalize_gallery_row(row, settings.base_url, settings.bucket))


def delete_gallery_item(event: dict, settings: Settings, rest: RestClient) -> dict:
    """
    Delete a gallery row, then its stored image.

    The row deletion is authoritative: once it succeeds the response is 200.
    A failed image deletion is reported under "warnings" instead of failing.
    """
    body, error = parse_json_body(event)
    if error:
        return error

    record_id, error = require_id(body)
    if error:
        return error

    # Load the row first to learn which object it references
    rows = rest.select(settings.gallery_table, filters=[eq_filter("id", record_id)])
    row = rows[0] if rows else None

    rest.delete(settings.gallery_table, record_id)
    logger.info(f"Deleted gallery row: {record_id}")

    response: dict[str, Any] = {"ok": True}
    object_path = None
    if row:
        object_path = resolve_object_path(row, settings.bucket, settings.gallery_schema.path_column)

    if object_path:
        warning = _delete_object_best_effort(get_object_store(settings), object_path)
        if warning:
            response["warnings"] = [warning]
    else:
        logger.warning(f"No stored object found for gallery item: {record_id}")

    return api_response(200, response)


ROUTES = {
    "GET": list_gallery,
    "POST": create_gallery_item,
    "PUT": update_gallery_item,
    "DELETE": delete_gallery_item,
}


def gallery_handler(event, context):
    """
    Lambda handler for the gallery resource.

    GET lists items, POST uploads an image and creates an item,
    PUT updates location/image reference, DELETE removes an item and its image.
    """
    method = get_method(event)
    if method == "OPTIONS":
        return options_response()

    logger.info(f"gallery_handler invoked: {method}")

    try:
        settings = load_settings()
        configure_logging(settings)
        settings.require_backend()

        route = ROUTES.get(method)
        if route is None:
            return method_not_allowed()

        return route(event, settings, RestClient(settings))

    except ConfigError as e:
        logger.error(f"Configuration error: {str(e)}")
        return error_response(500, "Configuration Error", str(e))
    except BadImageError as e:
        logger.warning(f"Rejected image: {str(e)}")
        return error_response(400, str(e))
    except UpstreamError as e:
        return upstream_error_response(e)
    except Exception as e:
        logger.error(f"[gallery handler] {str(e)}", exc_info=True)
        return error_response(500, "Internal error", str(e))
