"""
Lambda handler for the admin password check
"""

from __future__ import annotations

import hmac
import logging

from site_backend.config import configure_logging, load_settings
from site_backend.utils.errors import ConfigError
from site_backend.utils.response import api_response, error_response, options_response
from site_backend.utils.validation import get_method, parse_json_body

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _password_matches(submitted, expected: str) -> bool:
    if not isinstance(submitted, str):
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


def auth_check_handler(event, context):
    """
    Lambda handler comparing a submitted password with ADMIN_PASSWORD.

    Expects JSON body {password}. Returns {success, message}; 401 on mismatch.
    """
    method = get_method(event)
    if method == "OPTIONS":
        return options_response()
    if method != "POST":
        return error_response(405, "Method not allowed")

    logger.info("auth_check_handler invoked")

    try:
        settings = load_settings()
        configure_logging(settings)
        if not settings.admin_password:
            raise ConfigError("Missing ADMIN_PASSWORD env var")

        body, error = parse_json_body(event)
        if error:
            return error

        if _password_matches(body.get("password"), settings.admin_password):
            return api_response(200, {"success": True, "message": "Authentication successful"})

        logger.warning("Admin authentication failed")
        return api_response(401, {"success": False, "message": "Invalid password"})

    except ConfigError as e:
        logger.error(f"Configuration error: {str(e)}")
        return api_response(500, {"success": False, "message": "Server error"})
    except Exception as e:
        logger.error(f"Auth check error: {str(e)}", exc_info=True)
        return api_response(500, {"success": False, "message": "Server error"})
