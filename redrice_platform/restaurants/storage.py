"""Restaurant image storage.

Handlers only depend on ``upload(data, filename, content_type) -> url``; the
S3 implementation below is the production one and tests inject a fake through
``create_app(cfg, uploader=...)``.
"""

from __future__ import annotations

import uuid
from pathlib import PurePath
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from redrice_platform.config import Config


class ImageUploadError(RuntimeError):
    pass


def _debug(msg: str) -> None:
    print(f"[storage] {msg}")


def image_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lstrip(".").lower()


def validate_image(cfg: Config, *, filename: str, data: bytes) -> None:
    """Raise ValueError(<code>) for images we refuse to store."""
    if not data:
        raise ValueError("image_empty")
    if len(data) > int(cfg.MAX_IMAGE_BYTES):
        raise ValueError("image_too_large")
    allowed = {e.strip().lower() for e in cfg.ALLOWED_IMAGE_EXTENSIONS.split(",") if e.strip()}
    if image_extension(filename) not in allowed:
        raise ValueError("image_type_not_allowed")


class S3ImageUploader:
    def __init__(self, cfg: Config, client: Optional[Any] = None):
        self.bucket = cfg.S3_BUCKET
        self.region = cfg.AWS_REGION
        self.prefix = (cfg.S3_KEY_PREFIX or "").strip("/")
        self.public_base_url = cfg.S3_PUBLIC_BASE_URL
        # Credentials come from the standard AWS chain (env, profile, instance role).
        self._client = client or boto3.client("s3", region_name=self.region)

    def object_key(self, filename: str) -> str:
        ext = image_extension(filename) or "bin"
        name = f"{uuid.uuid4().hex}.{ext}"
        return f"{self.prefix}/{name}" if self.prefix else name

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> str:
        key = self.object_key(filename)
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            _debug(f"S3 upload failed bucket={self.bucket} key={key}: {e}")
            raise ImageUploadError("image_upload_failed") from e

        _debug(f"Uploaded image bucket={self.bucket} key={key} bytes={len(data)}")
        return self.public_url(key)
