"""
Supabase Storage adapter.

Issues short-lived signed upload/download URLs for the private video bucket
and streams downloads to disk. Talks to the Storage REST API directly over
httpx with the service-role key; the key never leaves the backend.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, quote, urlparse
from uuid import uuid4

import httpx

from app.core.config import settings
from app.core.errors import DownloadFailed, StorageAuthFailed, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageConfig:
    url: str
    service_role_key: str
    bucket: str = "video-uploads"
    upload_prefix: str = "uploads"
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls) -> "StorageConfig":
        return cls(
            url=settings.supabase_url,
            service_role_key=settings.supabase_service_role_key,
            bucket=settings.storage_bucket,
            upload_prefix=settings.signed_upload_path_prefix,
            timeout_seconds=settings.storage_timeout_seconds,
        )


@dataclass(frozen=True)
class SignedUpload:
    signed_url: str
    path: str
    token: str


class SupabaseStorage:
    """Signed-URL operations on a single Supabase Storage bucket."""

    def __init__(self, config: StorageConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        self.base_url = config.url.rstrip("/")
        self.storage_url = f"{self.base_url}/storage/v1"
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _service_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.config.service_role_key,
            "Authorization": f"Bearer {self.config.service_role_key}",
            "Content-Type": "application/json",
        }

    def _object_url(self, action: str, path: str) -> str:
        return f"{self.storage_url}/object/{action}/{self.config.bucket}/{quote(path)}"

    def _absolute(self, relative_url: str) -> str:
        # Storage returns URLs relative to /storage/v1
        if relative_url.startswith("http://") or relative_url.startswith("https://"):
            return relative_url
        return f"{self.storage_url}/{relative_url.lstrip('/')}"

    def build_upload_path(self, file_name: str) -> str:
        """
        Build a collision-free object path for a client upload.

        Args:
            file_name: Client-supplied file name (directory parts are dropped)

        Returns:
            Path of the form ``uploads/{uuid4}-{file_name}``
        """
        base_name = os.path.basename(file_name.replace("\\", "/")).strip()
        if not base_name:
            raise ValidationError("File name and content type are required.")
        return f"{self.config.upload_prefix}/{uuid4()}-{base_name}"

    async def _sign(self, url: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._client.post(url, headers=self._service_headers(), json=payload or {})
        except httpx.HTTPError as exc:
            logger.error(f"Supabase sign request failed: {exc}")
            raise StorageAuthFailed() from exc

        if response.status_code >= 400:
            logger.error(f"Supabase sign request returned {response.status_code}: {response.text}")
            raise StorageAuthFailed()
        return response.json()

    async def create_signed_upload_url(self, path: str) -> SignedUpload:
        """
        Create a signed URL the browser can PUT the file to directly.

        Raises:
            StorageAuthFailed: If the storage service refuses or returns no URL
        """
        data = await self._sign(self._object_url("upload/sign", path))
        relative_url = data.get("url")
        if not relative_url:
            logger.error(f"Supabase upload sign response missing url: {data}")
            raise StorageAuthFailed()

        signed_url = self._absolute(relative_url)
        token = data.get("token") or parse_qs(urlparse(signed_url).query).get("token", [None])[0]
        if not token:
            logger.error("Supabase upload sign response missing token")
            raise StorageAuthFailed()

        logger.info(f"Issued signed upload URL for {path}")
        return SignedUpload(signed_url=signed_url, path=path, token=token)

    async def create_signed_download_url(self, path: str, expires_in: int) -> str:
        data = await self._sign(self._object_url("sign", path), {"expiresIn": expires_in})
        relative_url = data.get("signedURL") or data.get("signedUrl")
        if not relative_url:
            logger.error(f"Supabase download sign response missing signedURL: {data}")
            raise StorageAuthFailed("Failed to get secure download URL.")
        return self._absolute(relative_url)

    async def stream_download(self, url: str, destination: str, chunk_size: int = 1024 * 1024) -> int:
        """
        Stream an object to a local file without buffering it in memory.

        Args:
            url: Signed download URL
            destination: Local file path to write
            chunk_size: Bytes per read

        Returns:
            Number of bytes written

        Raises:
            DownloadFailed: On a non-2xx response
        """
        written = 0
        async with self._client.stream("GET", url) as response:
            if response.status_code >= 400:
                raise DownloadFailed(response.status_code)
            with open(destination, "wb") as out:
                async for chunk in response.aiter_bytes(chunk_size):
                    out.write(chunk)
                    written += len(chunk)
        return written
