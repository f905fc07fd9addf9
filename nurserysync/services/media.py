"""Media processor boundary: store an uploaded file, get back a reference."""

from __future__ import annotations

import logging
import secrets
import time
from typing import Protocol, runtime_checkable

import httpx

from ..config import Settings
from ..errors import MediaUploadError, ValidationError
from ..utils import file_extension

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaProcessor(Protocol):
    """Anything that can turn raw file bytes into a stable media reference."""

    async def upload(
        self,
        data: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> str:
        ...


class StorageMediaUploader:
    """Upload files into an object-storage bucket and return public URLs."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None):
        self._settings = settings
        self._client = http_client
        self._bucket = settings.media_bucket

    def object_name(self, filename: str | None) -> str:
        """Return a unique object name keeping the upload's extension."""

        stamp = int(time.time() * 1000)
        return f"{stamp}-{secrets.token_hex(4)}.{file_extension(filename)}"

    def public_url(self, object_name: str) -> str:
        base = self._settings.media_base_url or ""
        return f"{base}/object/public/{self._bucket}/{object_name}"

    async def upload(
        self,
        data: bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> str:
        if not data:
            raise ValidationError("Uploaded file is empty")
        if self._client is None or not self._settings.media_base_url:
            raise MediaUploadError("Media storage is not configured")

        object_name = self.object_name(filename)
        headers = {
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        api_key = self._settings.catalog_api_key
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        try:
            response = await self._client.post(
                f"/object/{self._bucket}/{object_name}",
                content=data,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Media upload of %s rejected with %s", object_name, exc.response.status_code
            )
            raise MediaUploadError(
                f"Media storage answered {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Media upload of %s failed: %s", object_name, exc)
            raise MediaUploadError(
                f"Media storage unreachable: {exc.__class__.__name__}"
            ) from exc

        logger.info("Stored media %s (%s bytes)", object_name, len(data))
        return self.public_url(object_name)
