"""Object storage (Cloudflare R2 or any S3 endpoint) for rendered creatives."""
from __future__ import annotations

import datetime as dt
import logging
import mimetypes
import re
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from adcreative.config import StorageConfig

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^0-9A-Za-z._-]")


class StorageError(RuntimeError):
    """Upload or URL signing against the bucket failed."""


@dataclass(frozen=True)
class StoredCreative:
    key: str
    url: str
    content_type: str


def _boto_client(config: StorageConfig) -> Any:
    return boto3.session.Session().client(
        "s3",
        endpoint_url=config.endpoint,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
        region_name=config.region,
    )


class CreativeStorage:
    """Uploads encoded ads under ``creatives/<project>/<yyyymmdd>/<uuid>/``."""

    root = "creatives"

    def __init__(
        self,
        config: StorageConfig,
        *,
        client_factory: Callable[[StorageConfig], Any] = _boto_client,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._client: Any = None

    @property
    def enabled(self) -> bool:
        return self.config.store_renders and self.config.object_storage_configured

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.config.object_storage_configured:
                raise StorageError("Object storage is not configured")
            self._client = self._client_factory(self.config)
        return self._client

    def key_for(self, project_id: str, ext: str = "jpg", *, today: Optional[dt.date] = None) -> str:
        day = (today or dt.datetime.now(dt.timezone.utc).date()).strftime("%Y%m%d")
        project = _UNSAFE_KEY_CHARS.sub("_", project_id.strip()) or "unassigned"
        suffix = _UNSAFE_KEY_CHARS.sub("_", ext.lstrip(".")) or "jpg"
        return f"{self.root}/{project}/{day}/{uuid.uuid4().hex}/ad.{suffix}"

    def public_url(self, key: str) -> Optional[str]:
        if not self.config.public_base:
            return None
        return f"{self.config.public_base.rstrip('/')}/{key.lstrip('/')}"

    def signed_url(self, key: str) -> str:
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.config.bucket, "Key": key},
                ExpiresIn=self.config.signed_url_ttl,
                HttpMethod="GET",
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Could not sign download URL for {key}") from exc

    def upload(
        self,
        data: bytes,
        *,
        project_id: str,
        ext: str = "jpg",
        content_type: Optional[str] = None,
    ) -> StoredCreative:
        """Store ``data`` and return where it can be fetched from."""

        key = self.key_for(project_id, ext)
        ctype = content_type or mimetypes.types_map.get(f".{ext.lstrip('.')}", "image/jpeg")
        try:
            self.client.put_object(
                Bucket=self.config.bucket, Key=key, Body=bytes(data), ContentType=ctype
            )
        except (ClientError, BotoCoreError) as exc:
            logger.warning(
                "creative upload failed",
                extra={"bucket": self.config.bucket, "key": key, "error": str(exc)},
            )
            raise StorageError(f"Failed to store creative at {key}") from exc

        url = self.public_url(key) or self.signed_url(key)
        logger.info("creative stored", extra={"key": key, "bytes": len(data)})
        return StoredCreative(key=key, url=url, content_type=ctype)


__all__ = ["CreativeStorage", "StorageError", "StoredCreative"]
