"""
Object store clients for gallery images

Two transports write to the same bucket:
- RestObjectStore: the storage REST API (<base>/storage/v1/object), service key auth
- S3ObjectStore: the S3-compatible endpoint (<base>/storage/v1/s3) through boto3,
  used when S3 access keys are configured

Public URLs are the same for both.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from site_backend.config import Settings
from site_backend.utils.errors import UpstreamError
from site_backend.utils.http import send_request
from site_backend.utils.images import encode_object_path, public_url

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client

logger = logging.getLogger()


class ObjectStore:
    """Common surface of the storage transports."""

    def __init__(self, settings: Settings):
        self.base_url = settings.base_url
        self.bucket = settings.bucket

    def public_url(self, object_path: str) -> str:
        return public_url(self.base_url, self.bucket, object_path)

    def upload(self, object_path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        raise NotImplementedError

    def delete(self, object_path: str) -> None:
        raise NotImplementedError


class RestObjectStore(ObjectStore):
    """Storage REST API transport."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.key = settings.service_key
        self.storage_url = settings.storage_url

    def object_url(self, object_path: str) -> str:
        """Write endpoint for an object (no /public segment)."""
        return (
            f"{self.storage_url}/object/{quote(self.bucket, safe='')}/"
            f"{encode_object_path(object_path)}"
        )

    def _send(self, method: str, object_path: str, error: str, **kwargs) -> None:
        try:
            resp = send_request(method, self.object_url(object_path), **kwargs)
        except OSError as e:
            logger.error(f"{error}: {e}", exc_info=True)
            raise UpstreamError(error, None, str(getattr(e, "reason", e))) from e

        if not resp.ok:
            logger.error(f"{error}: storage error {resp.status} {resp.text}")
            raise UpstreamError(error, resp.status, resp.text)

    def upload(self, object_path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        """
        Upload bytes to the bucket.

        Args:
            object_path: Key inside the bucket
            data: Raw object bytes
            content_type: MIME type stored with the object
            upsert: Overwrite an existing object at the same key

        Raises:
            UpstreamError: If the storage API rejects the upload
        """
        logger.info(f"Uploading object: {self.bucket}/{object_path} ({len(data)} bytes)")
        self._send(
            "POST",
            object_path,
            "upload failed",
            headers={
                "authorization": f"Bearer {self.key}",
                "content-type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
            data=data,
        )

    def delete(self, object_path: str) -> None:
        logger.info(f"Deleting object: {self.bucket}/{object_path}")
        self._send(
            "DELETE",
            object_path,
            "storage delete failed",
            headers={"authorization": f"Bearer {self.key}"},
        )


class S3ObjectStore(ObjectStore):
    """S3-compatible transport through boto3."""

    def __init__(self, settings: Settings, s3_client: "S3Client | None" = None):
        super().__init__(settings)
        if s3_client is None:
            s3_client = boto3.client(
                "s3",
                region_name=settings.s3_region,
                endpoint_url=f"{settings.storage_url}/s3",
                aws_access_key_id=settings.s3_access_key_id,
                aws_secret_access_key=settings.s3_secret_access_key,
                config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            )
        self.s3_client = s3_client

    @staticmethod
    def _upstream_error(error: str, e: Exception) -> UpstreamError:
        status = None
        if isinstance(e, ClientError):
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return UpstreamError(error, status, str(e))

    def upload(self, object_path: str, data: bytes, content_type: str, upsert: bool = True) -> None:
        logger.info(f"Uploading object via S3: {self.bucket}/{object_path} ({len(data)} bytes)")
        params = {
            "Bucket": self.bucket,
            "Key": object_path,
            "Body": data,
            "ContentType": content_type,
        }
        if not upsert:
            params["IfNoneMatch"] = "*"
        try:
            self.s3_client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload error: {str(e)}", exc_info=True)
            raise self._upstream_error("upload failed", e) from e

    def delete(self, object_path: str) -> None:
        logger.info(f"Deleting object via S3: {self.bucket}/{object_path}")
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=object_path)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 deletion error: {str(e)}", exc_info=True)
            raise self._upstream_error("storage delete failed", e) from e


def get_object_store(settings: Settings) -> ObjectStore:
    """Pick the storage transport for the configured credentials."""
    if settings.use_s3_storage:
        return S3ObjectStore(settings)
    return RestObjectStore(settings)
