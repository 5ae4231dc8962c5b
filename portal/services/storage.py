"""Object storage for wiki images: S3-compatible endpoint via aioboto3."""

from __future__ import annotations

import logging
import os
import secrets

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

WIKI_IMAGE_PREFIX = "wiki-images"


class StorageError(Exception):
    """Raised when an object could not be stored."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


def build_image_key(original_filename: str | None, prefix: str = WIKI_IMAGE_PREFIX) -> str:
    """Random 32-hex-char object key that keeps the original file extension."""
    _, ext = os.path.splitext(original_filename or "")
    return f"{prefix}/{secrets.token_hex(16)}{ext}"


class S3ImageStorage:
    """Uploads public-read objects to one bucket on an S3-compatible service."""

    def __init__(
        self,
        endpoint: str,
        bucket_name: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.bucket_name = bucket_name
        self.region = region
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key

    def _get_session(self) -> aioboto3.Session:
        return aioboto3.Session(
            aws_access_key_id=self._access_key_id,
            aws_secret_access_key=self._secret_access_key,
            region_name=self.region,
        )

    def public_url(self, key: str) -> str:
        return f"{self.endpoint}/{self.bucket_name}/{key}"

    async def upload_public(self, key: str, content: bytes, content_type: str | None) -> str:
        """Store content under key with a public-read ACL and return its public URL."""
        session = self._get_session()
        try:
            # Path-style addressing: most S3-compatible services reject virtual-host buckets.
            async with session.client(
                "s3",
                endpoint_url=self.endpoint,
                config=Config(s3={"addressing_style": "path"}),
            ) as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=content,
                    ContentType=content_type or "application/octet-stream",
                    ACL="public-read",
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to upload object",
                extra={"bucket": self.bucket_name, "key": key, "error": str(e)[:500]},
            )
            raise StorageError(f"Failed to upload file: {e}", cause=e) from e
        logger.info("Object uploaded", extra={"bucket": self.bucket_name, "key": key})
        return self.public_url(key)
