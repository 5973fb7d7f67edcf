"""
Unit tests for utility modules
"""

import base64
import json
import re
import urllib.error
import urllib.request
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError

from site_backend.config import GallerySchema, Settings, load_settings
from site_backend.utils.errors import BadImageError, ConfigError, UpstreamError
from site_backend.utils.http import HttpResponse
from site_backend.utils.images import (
    build_legacy_filename,
    build_object_path,
    clean_name,
    extract_object_path,
    file_extension,
    parse_data_url,
    public_url,
)
from site_backend.utils.normalize import (
    journal_date,
    normalize_journal_row,
    resolve_image_reference,
    resolve_object_path,
)
from site_backend.utils.response import api_response, error_response, options_response
from site_backend.utils.rest import RestClient, eq_filter
from site_backend.utils.storage import RestObjectStore, S3ObjectStore, get_object_store
from site_backend.utils.validation import (
    get_header,
    get_method,
    parse_json_body,
    require_id,
    string_fields,
    validate_string_field,
)

BASE = "https://proj.supabase.co"


def make_settings(**overrides):
    values = {"base_url": BASE, "service_key": "key"}
    values.update(overrides)
    return Settings(**values)


# ============================================================================
# Data URL Tests
# ============================================================================


@pytest.mark.parametrize("payload", [b"x", b"hello world", bytes(range(256))])
def test_parse_data_url_decodes_exact_bytes(payload):
    """Decoding yields the declared MIME type and exactly the encoded bytes"""

    data_url = "data:image/webp;base64," + base64.b64encode(payload).decode()

    content_type, raw = parse_data_url(data_url)

    assert content_type == "image/webp"
    assert raw == payload
    assert len(raw) == len(payload)


def test_parse_data_url_case_insensitive_prefix():
    content_type, raw = parse_data_url("DATA:image/png;BASE64,aGk=")

    assert content_type == "image/png"
    assert raw == b"hi"


@pytest.mark.parametrize("value", [
    None,
    "",
    "aGk=",
    "data:image/png,aGk=",
    "data:;base64,aGk=",
    "data:image/png;base64,",
    "data:image/png;base64,not base64!!",
    "data:image/png;base64,aGk",
    "image/png;base64,aGk=",
    12345,
])
def test_parse_data_url_rejects_malformed(value):
    with pytest.raises(BadImageError):
        parse_data_url(value)


def test_bad_image_error_is_value_error():
    assert issubclass(BadImageError, ValueError)


# ============================================================================
# Filename Tests
# ============================================================================


@pytest.mark.parametrize("raw,expected", [
    ("My Photo.PNG", "my-photo.png"),
    ("  hello   world  ", "hello-world"),
    ("--a--b--", "a-b"),
    ("Café au lait.jpg", "caf-au-lait.jpg"),
    ("a_b.c-d", "a_b.c-d"),
    ("!!!", ""),
    ("", ""),
    (None, ""),
])
def test_clean_name(raw, expected):
    assert clean_name(raw) == expected


@pytest.mark.parametrize("raw", [
    "My Photo.PNG", "a//b\\c", "-x-", "ÄÖÜ ß", "file (1).jpeg", "..hidden..", "a - - b",
])
def test_clean_name_idempotent_and_safe(raw):
    once = clean_name(raw)

    assert clean_name(once) == once
    assert re.fullmatch(r"[a-z0-9._-]*", once)
    assert "--" not in once
    assert not once.startswith("-")
    assert not once.endswith("-")


def test_build_object_path():
    assert build_object_path("My Photo.PNG", 1700000000000) == "uploads/1700000000000_my-photo.png"


def test_build_object_path_empty_name_falls_back():
    assert build_object_path("???", 7) == "uploads/7_image"


def test_build_object_path_uses_current_time():
    assert re.fullmatch(r"uploads/\d{13}_a\.png", build_object_path("a.png"))


@pytest.mark.parametrize("filename,expected", [
    ("photo.JPG", "jpg"),
    ("archive.tar.gz", "gz"),
    ("noextension", "jpg"),
    ("dir.d/noext", "jpg"),
    ("weird.P N G", "p-n-g"),
])
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


def test_build_legacy_filename():
    assert build_legacy_filename("Beach.PNG", 42) == "gallery-42.png"


# ============================================================================
# Public URL Tests
# ============================================================================


@pytest.mark.parametrize("object_path", [
    "uploads/1700000000000_my-photo.png",
    "uploads/with space.png",
    "nested/dir/100%.png",
    "uploads/é.png",
    "gallery-1.jpg",
])
def test_extract_object_path_round_trip(object_path):
    url = public_url(BASE, "photos", object_path)

    assert url.startswith(f"{BASE}/storage/v1/object/public/photos/")
    assert extract_object_path(url, "photos") == object_path


def test_extract_object_path_bucket_with_space():
    url = public_url(BASE, "my photos", "a.png")

    assert "/public/my%20photos/" in url
    assert extract_object_path(url, "my photos") == "a.png"


@pytest.mark.parametrize("url", [
    None,
    "",
    "https://cdn.example.com/a.png",
    f"{BASE}/storage/v1/object/public/other/a.png",
    f"{BASE}/storage/v1/object/photos/a.png",
    f"{BASE}/storage/v1/object/public/photos/",
])
def test_extract_object_path_no_match(url):
    assert extract_object_path(url, "photos") is None


def test_extract_object_path_ignores_query_string():
    url = f"{BASE}/storage/v1/object/public/photos/a.png?width=200"

    assert extract_object_path(url, "photos") == "a.png"


# ============================================================================
# Normalization Tests
# ============================================================================


def test_resolve_image_reference_precedence():
    """image_url beats src beats path beats object_path"""

    row = {
        "image_url": "https://a.example/1.png",
        "src": "https://b.example/2.png",
        "path": "uploads/3.png",
        "object_path": "uploads/4.png",
    }
    assert resolve_image_reference(row, BASE, "photos") == "https://a.example/1.png"

    row["image_url"] = ""
    assert resolve_image_reference(row, BASE, "photos") == "https://b.example/2.png"

    row["src"] = None
    assert resolve_image_reference(row, BASE, "photos") == public_url(BASE, "photos", "uploads/3.png")

    del row["path"]
    assert resolve_image_reference(row, BASE, "photos") == public_url(BASE, "photos", "uploads/4.png")


def test_resolve_image_reference_relative_image_url():
    """A bare key stored in image_url is still resolved to an absolute URL"""

    row = {"image_url": "uploads/a.png"}

    assert resolve_image_reference(row, BASE, "photos") == public_url(BASE, "photos", "uploads/a.png")


def test_resolve_image_reference_none():
    assert resolve_image_reference({"image_url": "  ", "id": 1}, BASE, "photos") is None


def test_resolve_object_path_sources():
    url = public_url(BASE, "photos", "uploads/u.png")

    assert resolve_object_path({"object_path": "uploads/o.png", "image_url": url}, "photos") == "uploads/o.png"
    assert resolve_object_path({"image_url": url}, "photos") == "uploads/u.png"
    assert resolve_object_path({"src": url}, "photos") == "uploads/u.png"
    assert resolve_object_path({"image_url": "https://cdn/x.png"}, "photos") is None
    assert resolve_object_path({"path": "https://cdn/x.png"}, "photos") is None
    assert resolve_object_path({"storage_key": "k.png"}, "photos", "storage_key") == "k.png"


def test_journal_date_fallbacks():
    assert journal_date({"date": "d", "entry_date": "e", "created_at": "c"}) == "d"
    assert journal_date({"entry_date": "e", "created_at": "c"}) == "e"
    assert journal_date({"created_at": "c"}) == "c"
    assert re.match(r"\d{4}-\d{2}-\d{2}T", journal_date({}))


def test_normalize_journal_row_aliases():
    entry = normalize_journal_row({"id": 3, "title": "", "entry_date": "May 3", "content": "x"})

    assert entry["title"] == "Untitled"
    assert entry["date"] == entry["entry_date"] == "May 3"
    assert entry["content"] == "x"
    assert entry["created_at"] is None


# ============================================================================
# Configuration Tests
# ============================================================================


def test_load_settings_prefers_supahub_names():
    settings = load_settings({
        "SUPAHUB_URL": "https://hub.example/",
        "SUPABASE_URL": "https://base.example",
        "SUPAHUB_SERVICE_KEY": "",
        "SUPABASE_SERVICE_ROLE_KEY": "role-key",
        "SUPABASE_BUCKET": "pics",
    })

    assert settings.base_url == "https://hub.example"
    assert settings.service_key == "role-key"
    assert settings.bucket == "pics"
    assert settings.rest_url == "https://hub.example/rest/v1"
    assert settings.storage_url == "https://hub.example/storage/v1"


def test_load_settings_defaults():
    settings = load_settings({})

    assert settings.bucket == "photos"
    assert settings.gallery_table == "gallery"
    assert settings.journal_table == "journal"
    assert settings.gallery_schema == GallerySchema()
    assert settings.journal_schema.date_column == "date"
    assert settings.admin_secret is None
    assert settings.use_s3_storage is False
    assert settings.log_level == "INFO"


def test_load_settings_schema_mapping():
    settings = load_settings({
        "GALLERY_PATH_COLUMN": "path",
        "GALLERY_STORE_IMAGE_URL": "no",
        "GALLERY_ORDER": "order_index.asc",
        "JOURNAL_DATE_COLUMN": "entry_date",
    })

    assert settings.gallery_schema == GallerySchema(
        path_column="path", store_image_url=False, order="order_index.asc"
    )
    assert settings.journal_schema.date_column == "entry_date"


def test_require_journal_rejects_unknown_date_column():
    settings = load_settings({"JOURNAL_DATE_COLUMN": "when"})

    with pytest.raises(ConfigError):
        settings.require_journal()


def test_unknown_date_column_does_not_break_load_settings():
    settings = load_settings({"JOURNAL_DATE_COLUMN": "published_on", "ADMIN_PASSWORD": "s3cret"})

    assert settings.admin_password == "s3cret"


def test_require_backend_names_missing_vars():
    with pytest.raises(ConfigError) as exc_info:
        load_settings({"SUPABASE_URL": "https://x.example"}).require_backend()

    assert "SUPABASE_SERVICE_ROLE_KEY" in str(exc_info.value)
    assert "SUPABASE_URL" not in str(exc_info.value)


def test_require_backend_ok():
    make_settings().require_backend()


# ============================================================================
# Response and Validation Tests
# ============================================================================


def test_api_response_cors_headers():
    resp = api_response(201, {"a": 1})

    assert resp["statusCode"] == 201
    assert json.loads(resp["body"]) == {"a": 1}
    assert resp["headers"]["Access-Control-Allow-Origin"] == "*"
    assert resp["headers"]["Access-Control-Allow-Methods"] == "GET,POST,PUT,DELETE,OPTIONS"


def test_error_response_omits_empty_detail():
    assert json.loads(error_response(400, "Missing id")["body"]) == {"error": "Missing id"}
    assert json.loads(error_response(502, "x", "y", status=500)["body"]) == {
        "error": "x", "detail": "y", "status": 500,
    }


def test_options_response():
    resp = options_response()

    assert resp == {"statusCode": 204, "headers": resp["headers"], "body": ""}
    assert "Content-Type" not in resp["headers"]


def test_parse_json_body_variants():
    assert parse_json_body({}) == ({}, None)
    assert parse_json_body({"body": None}) == ({}, None)
    assert parse_json_body({"body": '{"id": 1}'}) == ({"id": 1}, None)

    encoded = base64.b64encode(b'{"id": 2}').decode()
    assert parse_json_body({"body": encoded, "isBase64Encoded": True}) == ({"id": 2}, None)


@pytest.mark.parametrize("raw", ["{bad", "[1, 2]", '"text"'])
def test_parse_json_body_rejects(raw):
    body, error = parse_json_body({"body": raw})

    assert body == {}
    assert error["statusCode"] == 400


def test_get_header_case_insensitive():
    event = {"headers": {"x-admin-key": "k"}}

    assert get_header(event, "X-Admin-Key") == "k"
    assert get_header({"headers": None}, "X-Admin-Key") is None


@pytest.mark.parametrize("event,expected", [
    ({"httpMethod": "post"}, "POST"),
    ({"requestContext": {"http": {"method": "delete"}}}, "DELETE"),
    ({"requestContext": None}, ""),
    ({"requestContext": {"http": None}}, ""),
    ({}, ""),
])
def test_get_method(event, expected):
    assert get_method(event) == expected


def test_validate_string_field_has_no_length_cap():
    assert validate_string_field({"title": "t" * 5000}, "title", required=True) is None
    assert validate_string_field({"title": 5}, "title")["statusCode"] == 400


def test_string_fields_keeps_only_strings():
    body = {"title": "T", "content": None, "location": 3}

    assert string_fields(body, ("title", "content", "location")) == {"title": "T"}


@pytest.mark.parametrize("body,ok", [
    ({"id": 7}, True),
    ({"id": "abc"}, True),
    ({"id": 0}, True),
    ({"id": None}, False),
    ({"id": ""}, False),
    ({}, False),
])
def test_require_id(body, ok):
    record_id, error = require_id(body)

    assert (error is None) is ok
    if ok:
        assert record_id == body["id"]


# ============================================================================
# HTTP / REST Tests
# ============================================================================


def test_http_response_helpers():
    assert HttpResponse(204).ok
    assert not HttpResponse(302).ok
    assert HttpResponse(200, b'{"a": 1}').json_or_text() == {"a": 1}
    assert HttpResponse(200, b"plain").json_or_text() == "plain"
    assert HttpResponse(200, b"").json_or_text() == ""


def test_eq_filter_quotes_value():
    assert eq_filter("id", 7) == "id=eq.7"
    assert eq_filter("id", "a b&c") == "id=eq.a%20b%26c"


def test_rest_client_headers_and_urls():
    client = RestClient(make_settings())

    assert client.table_url("gallery") == f"{BASE}/rest/v1/gallery"
    assert client.table_url("gallery", "select=*") == f"{BASE}/rest/v1/gallery?select=*"
    headers = client._headers("return=minimal")
    assert headers["apikey"] == "key"
    assert headers["authorization"] == "Bearer key"
    assert headers["Prefer"] == "return=minimal"


def test_rest_client_timeout_becomes_upstream_error():
    client = RestClient(make_settings())

    with patch.object(urllib.request, "urlopen", side_effect=TimeoutError("timed out")):
        with pytest.raises(UpstreamError) as exc_info:
            client.select("gallery")

    assert exc_info.value.status is None
    assert exc_info.value.body == "timed out"


def test_rest_client_http_error():
    client = RestClient(make_settings())
    error = urllib.error.HTTPError(f"{BASE}/rest/v1/gallery", 404, "Not Found", {}, None)

    with patch.object(urllib.request, "urlopen", side_effect=error):
        with pytest.raises(UpstreamError) as exc_info:
            client.insert("gallery", {"a": 1})

    assert exc_info.value.status == 404
    assert exc_info.value.message == "db insert failed"
    assert "HTTP 404" in str(exc_info.value)


# ============================================================================
# Storage Tests
# ============================================================================


def test_get_object_store_picks_transport():
    assert isinstance(get_object_store(make_settings()), RestObjectStore)

    with patch("boto3.client", return_value=Mock()):
        store = get_object_store(
            make_settings(s3_access_key_id="a", s3_secret_access_key="b")
        )
    assert isinstance(store, S3ObjectStore)


def test_rest_object_store_urls():
    store = RestObjectStore(make_settings(bucket="photos"))

    assert store.object_url("uploads/a b.png") == f"{BASE}/storage/v1/object/photos/uploads/a%20b.png"
    assert store.public_url("uploads/a b.png") == (
        f"{BASE}/storage/v1/object/public/photos/uploads/a%20b.png"
    )


def test_s3_object_store_no_overwrite():
    mock_s3 = Mock()
    store = S3ObjectStore(make_settings(), s3_client=mock_s3)

    store.upload("gallery-1.png", b"data", "image/png", upsert=False)

    mock_s3.put_object.assert_called_once_with(
        Bucket="photos", Key="gallery-1.png", Body=b"data",
        ContentType="image/png", IfNoneMatch="*",
    )


def test_s3_object_store_upload_error():
    mock_s3 = Mock()
    mock_s3.put_object.side_effect = ClientError(
        {"Error": {"Code": "PreconditionFailed", "Message": "exists"},
         "ResponseMetadata": {"HTTPStatusCode": 412}},
        "PutObject",
    )
    store = S3ObjectStore(make_settings(), s3_client=mock_s3)

    with pytest.raises(UpstreamError) as exc_info:
        store.upload("a.png", b"x", "image/png")

    assert exc_info.value.status == 412
    assert exc_info.value.message == "upload failed"
