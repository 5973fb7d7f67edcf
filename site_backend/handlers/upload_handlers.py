"""
Legacy Lambda handler for single image uploads

Kept for older admin pages; gallery_handler's POST does the same job with
sanitized object keys. Uploads never overwrite an existing object here.
"""

from __future__ import annotations

import logging

from site_backend.config import configure_logging, load_settings
from site_backend.utils.errors import BadImageError, ConfigError, UpstreamError
from site_backend.utils.images import build_legacy_filename, now_millis, parse_data_url
from site_backend.utils.response import api_response, error_response, options_response
from site_backend.utils.rest import RestClient
from site_backend.utils.storage import get_object_store
from site_backend.utils.validation import get_method, parse_json_body, validate_string_field

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def upload_handler(event, context):
    """
    Lambda handler to upload an image and add it to the gallery.

    Expects JSON body with:
    - image: data URL of the image
    - filename: original filename (only its extension is kept)
    - location: caption shown in the gallery

    Returns {success, filename, url, gallery_item}.
    """
    method = get_method(event)
    if method == "OPTIONS":
        return options_response()
    if method != "POST":
        return error_response(405, "Method not allowed", success=False)

    logger.info("upload_handler invoked")

    try:
        settings = load_settings()
        configure_logging(settings)
        settings.require_backend()

        body, error = parse_json_body(event)
        if error:
            return error

        image = body.get("image")
        filename = body.get("filename")
        if not image or not filename or not isinstance(filename, str):
            logger.warning("Upload missing image or filename")
            return error_response(400, "image and filename required", success=False)

        error = validate_string_field(body, "location")
        if error:
            return error

        content_type, data = parse_data_url(image)

        timestamp = now_millis()
        unique_filename = build_legacy_filename(filename, timestamp)

        store = get_object_store(settings)
        store.upload(unique_filename, data, content_type, upsert=False)
        url = store.public_url(unique_filename)

        gallery_item = RestClient(settings).insert(
            settings.gallery_table,
            {
                "filename": unique_filename,
                "location": body.get("location") or "",
                "image_url": url,
                "order_index": timestamp,
            },
        )

        logger.info(f"Successfully uploaded {unique_filename}")
        return api_response(
            200,
            {
                "success": True,
                "filename": unique_filename,
                "url": url,
                "gallery_item": gallery_item,
            },
        )

    except ConfigError as e:
        logger.error(f"Configuration error: {str(e)}")
        return error_response(500, "Configuration Error", str(e), success=False)
    except BadImageError as e:
        return error_response(400, str(e), success=False)
    except UpstreamError as e:
        logger.error(f"Upload error: {str(e)}")
        return error_response(502, e.message, e.body, status=e.status, success=False)
    except Exception as e:
        logger.error(f"Upload error: {str(e)}", exc_info=True)
        return error_response(500, "Internal error", str(e), success=False)
