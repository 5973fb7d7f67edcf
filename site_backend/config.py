"""
Configuration for the site Lambda handlers

This module provides:
- Environment variable resolution (SUPAHUB_* names win over SUPABASE_* names)
- The per-invocation Settings struct passed into every handler
- Schema mappings describing which gallery/journal columns exist
- Constants used across handlers
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping

from site_backend.utils.errors import ConfigError

# Constants
DEFAULT_BUCKET = "photos"
DEFAULT_GALLERY_TABLE = "gallery"
DEFAULT_JOURNAL_TABLE = "journal"
DEFAULT_S3_REGION = "us-east-1"
UPLOAD_PREFIX = "uploads/"
HTTP_TIMEOUT_SECONDS = 10
UNTITLED = "Untitled"
JOURNAL_DATE_COLUMNS = ("date", "entry_date")

URL_ENV_VARS = ("SUPAHUB_URL", "SUPABASE_URL")
KEY_ENV_VARS = ("SUPAHUB_SERVICE_KEY", "SUPABASE_SERVICE_ROLE_KEY")


def _first_env(environ: Mapping[str, str], *names: str, default: str | None = None) -> str | None:
    """Return the first non-empty environment value among names."""
    for name in names:
        value = environ.get(name)
        if value:
            return value
    return default


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class GallerySchema:
    """
    Which columns the gallery table carries.

    path_column: column holding the storage key ("path" or "object_path"),
        None when the table only stores the public URL
    store_image_url: whether the table has an image_url column
    order: optional PostgREST order clause for listing, e.g. "order_index.asc"
    """

    path_column: str | None = None
    store_image_url: bool = True
    order: str | None = None


@dataclass(frozen=True)
class JournalSchema:
    """Which column the journal table uses for the entry date."""

    date_column: str = "date"


@dataclass(frozen=True)
class Settings:
    """Configuration resolved from the environment for one invocation."""

    base_url: str = ""
    service_key: str = ""
    bucket: str = DEFAULT_BUCKET
    gallery_table: str = DEFAULT_GALLERY_TABLE
    journal_table: str = DEFAULT_JOURNAL_TABLE
    gallery_schema: GallerySchema = field(default_factory=GallerySchema)
    journal_schema: JournalSchema = field(default_factory=JournalSchema)
    admin_password: str | None = None
    admin_secret: str | None = None
    build_hook_url: str | None = None
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_region: str = DEFAULT_S3_REGION
    log_level: str = "INFO"

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    @property
    def use_s3_storage(self) -> bool:
        return bool(self.s3_access_key_id and self.s3_secret_access_key)

    def require_backend(self) -> None:
        """
        Ensure the backing service URL and credential are configured.

        Raises:
            ConfigError: naming the environment variables that are missing
        """
        missing = []
        if not self.base_url:
            missing.append("/".join(URL_ENV_VARS))
        if not self.service_key:
            missing.append("/".join(KEY_ENV_VARS))
        if missing:
            raise ConfigError(f"Missing env vars: {' and '.join(missing)}")

    def require_journal(self) -> None:
        """
        Ensure the journal date column is one the handlers know how to write.

        Raises:
            ConfigError: if JOURNAL_DATE_COLUMN names an unknown column
        """
        if self.journal_schema.date_column not in JOURNAL_DATE_COLUMNS:
            raise ConfigError(
                f"JOURNAL_DATE_COLUMN must be one of {', '.join(JOURNAL_DATE_COLUMNS)}"
            )


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from the process environment (or a given mapping).

    Args:
        environ: Mapping to read from, defaults to os.environ

    Returns:
        Settings: frozen configuration for this invocation
    """
    if environ is None:
        environ = os.environ

    return Settings(
        base_url=(_first_env(environ, *URL_ENV_VARS) or "").rstrip("/"),
        service_key=_first_env(environ, *KEY_ENV_VARS) or "",
        bucket=_first_env(environ, "SUPAHUB_BUCKET", "SUPABASE_BUCKET", default=DEFAULT_BUCKET),
        gallery_table=_first_env(
            environ, "SUPAHUB_GALLERY_TABLE", "SUPABASE_GALLERY_TABLE", default=DEFAULT_GALLERY_TABLE
        ),
        journal_table=_first_env(
            environ, "SUPAHUB_JOURNAL_TABLE", "SUPABASE_JOURNAL_TABLE", default=DEFAULT_JOURNAL_TABLE
        ),
        gallery_schema=GallerySchema(
            path_column=environ.get("GALLERY_PATH_COLUMN") or None,
            store_image_url=_env_flag(environ, "GALLERY_STORE_IMAGE_URL", True),
            order=environ.get("GALLERY_ORDER") or None,
        ),
        journal_schema=JournalSchema(date_column=environ.get("JOURNAL_DATE_COLUMN") or "date"),
        admin_password=environ.get("ADMIN_PASSWORD") or None,
        admin_secret=environ.get("ADMIN_SECRET") or None,
        build_hook_url=environ.get("NETLIFY_BUILD_HOOK_URL") or None,
        s3_access_key_id=environ.get("SUPABASE_S3_ACCESS_KEY_ID") or None,
        s3_secret_access_key=environ.get("SUPABASE_S3_SECRET_ACCESS_KEY") or None,
        s3_region=environ.get("SUPABASE_S3_REGION") or DEFAULT_S3_REGION,
        log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(settings: Settings) -> logging.Logger:
    """Apply the configured level to the root logger Lambda writes through."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    return logger
