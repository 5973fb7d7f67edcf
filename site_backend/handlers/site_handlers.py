"""
Lambda handler that triggers a static-site rebuild through the build hook
"""

from __future__ import annotations

import json
import logging

from site_backend.config import configure_logging, load_settings
from site_backend.utils.errors import ConfigError
from site_backend.utils.http import HttpResponse, send_request
from site_backend.utils.images import now_millis
from site_backend.utils.response import NO_CACHE_HEADERS, api_response, options_response
from site_backend.utils.validation import get_header, get_method

logger = logging.getLogger()
logger.setLevel(logging.INFO)


def _site_response(status_code: int, body: dict) -> dict:
    return api_response(status_code, body, headers=NO_CACHE_HEADERS)


def _call_build_hook(hook_url: str) -> HttpResponse:
    """
    POST to the build hook, retrying once without a body if the JSON call is rejected.

    Some hooks only accept an empty body, others take JSON fine.
    """
    payload = json.dumps({"triggeredBy": "admin", "ts": now_millis()}).encode("utf-8")
    resp = send_request(
        "POST", hook_url, headers={"Content-Type": "application/json"}, data=payload
    )
    if resp.ok:
        return resp

    logger.warning(f"Build hook rejected JSON body ({resp.status}), retrying without body")
    return send_request("POST", hook_url)


def update_site_handler(event, context):
    """
    Lambda handler to enqueue a site rebuild.

    Requires NETLIFY_BUILD_HOOK_URL. When ADMIN_SECRET is set the caller must
    send it in the X-Admin-Key header. Returns {ok, status, body}.
    """
    method = get_method(event)
    if method == "OPTIONS":
        return options_response()
    if method != "POST":
        return _site_response(405, {"error": "Method not allowed"})

    logger.info("update_site_handler invoked")

    try:
        settings = load_settings()
        configure_logging(settings)
    except ConfigError as e:
        return _site_response(500, {"error": "Configuration Error", "detail": str(e)})

    if not settings.build_hook_url:
        return _site_response(500, {"error": "Missing NETLIFY_BUILD_HOOK_URL env var"})

    if settings.admin_secret:
        provided = get_header(event, "X-Admin-Key")
        if provided != settings.admin_secret:
            logger.warning("Rebuild request with missing or wrong admin key")
            return _site_response(401, {"error": "Unauthorized"})

    try:
        resp = _call_build_hook(settings.build_hook_url)
    except Exception as e:
        logger.error(f"Failed to call build hook: {str(e)}", exc_info=True)
        return _site_response(500, {"error": "Failed to call build hook", "detail": str(e)})

    body = resp.json_or_text()
    if not resp.ok:
        logger.error(f"Build hook responded with error {resp.status}: {resp.text}")
        return _site_response(
            502,
            {"error": "Build hook responded with error", "status": resp.status, "body": body},
        )

    logger.info(f"Build hook accepted ({resp.status})")
    return _site_response(
        200,
        {
            "ok": True,
            "status": resp.status,
            "body": body,
            "note": "Build enqueued. Check Netlify → Deploys.",
        },
    )
