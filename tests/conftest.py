"""
Shared fixtures: environment configuration and an in-memory backing service
"""

import io
import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from unittest.mock import MagicMock, patch

import pytest

BASE_URL = "https://proj.supabase.co"
SERVICE_KEY = "service-key"

CONFIG_ENV_VARS = [
    "SUPAHUB_URL",
    "SUPABASE_URL",
    "SUPAHUB_SERVICE_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPAHUB_BUCKET",
    "SUPABASE_BUCKET",
    "SUPAHUB_GALLERY_TABLE",
    "SUPABASE_GALLERY_TABLE",
    "SUPAHUB_JOURNAL_TABLE",
    "SUPABASE_JOURNAL_TABLE",
    "GALLERY_PATH_COLUMN",
    "GALLERY_STORE_IMAGE_URL",
    "GALLERY_ORDER",
    "JOURNAL_DATE_COLUMN",
    "ADMIN_PASSWORD",
    "ADMIN_SECRET",
    "NETLIFY_BUILD_HOOK_URL",
    "SUPABASE_S3_ACCESS_KEY_ID",
    "SUPABASE_S3_SECRET_ACCESS_KEY",
    "SUPABASE_S3_REGION",
    "LOG_LEVEL",
]


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict
    data: bytes | None

    def json(self):
        return json.loads(self.data.decode("utf-8"))


class FakeBackend:
    """
    Stands in for urllib.request.urlopen.

    Records every request and answers from a queue of canned responses.
    A queued exception is raised instead of answering.
    """

    def __init__(self):
        self.requests: list[RecordedRequest] = []
        self._responses: list = []

    def queue(self, status=200, body=None):
        self._responses.append((status, body))
        return self

    def queue_error(self, exc):
        self._responses.append(exc)
        return self

    def urlopen(self, req, timeout=None):
        self.requests.append(
            RecordedRequest(
                method=req.get_method(),
                url=req.full_url,
                headers={k.lower(): v for k, v in req.header_items()},
                data=req.data,
            )
        )
        if not self._responses:
            raise AssertionError(f"Unexpected request: {req.get_method()} {req.full_url}")

        answer = self._responses.pop(0)
        if isinstance(answer, Exception):
            raise answer

        status, body = answer
        if body is None:
            raw = b""
        elif isinstance(body, bytes):
            raw = body
        elif isinstance(body, str):
            raw = body.encode("utf-8")
        else:
            raw = json.dumps(body).encode("utf-8")

        if status >= 400:
            raise urllib.error.HTTPError(req.full_url, status, "error", {}, io.BytesIO(raw))

        mock_response = MagicMock()
        mock_response.status = status
        mock_response.read.return_value = raw
        mock_response.headers = {}
        mock_response.__enter__.return_value = mock_response
        mock_response.__exit__.return_value = False
        return mock_response


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test from an environment with no site configuration."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def backend_env(clean_env):
    clean_env.setenv("SUPABASE_URL", BASE_URL + "/")
    clean_env.setenv("SUPABASE_SERVICE_ROLE_KEY", SERVICE_KEY)
    return clean_env


@pytest.fixture
def fake_backend():
    backend = FakeBackend()
    with patch.object(urllib.request, "urlopen", backend.urlopen):
        yield backend


def make_event(method, body=None, headers=None):
    """Create a Lambda proxy event like the one Netlify/API Gateway sends."""
    event = {"httpMethod": method, "headers": headers or {}}
    if body is not None:
        event["body"] = json.dumps(body) if isinstance(body, (dict, list)) else body
    return event


def response_json(resp):
    return json.loads(resp["body"])
