"""
Video ingestion: move a video into the Gemini file store and wait until it
can be referenced by generation requests.

Two entry points share one upload-and-poll core:
- ingest_upload: a multipart upload stream received by the API.
- ingest_from_storage: an object previously uploaded to Supabase Storage via
  a signed upload URL (the path used for anything larger than a request body).

Each invocation owns its own transient file, which is removed on every exit
path including cancellation.
"""
import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import os
import shutil
import time
from typing import BinaryIO, Iterator, Optional, Union
from uuid import uuid4

from app.core.config import settings
from app.core.errors import (
    IngestionFailed,
    IngestionTimeout,
    UploadFailed,
    UpstreamQuotaExceeded,
    UpstreamTimeout,
    ValidationError,
)
from app.schemas.media import MediaReference
from app.services.gemini import BackoffPolicy, GeminiClient, UploadedFile, with_backoff
from app.services.storage import SupabaseStorage

logger = logging.getLogger(__name__)

STATE_PROCESSING = "PROCESSING"
STATE_ACTIVE = "ACTIVE"
STATE_FAILED = "FAILED"


@dataclass(frozen=True)
class PollPolicy:
    """Bounds on how long to wait for the file store to finish processing."""
    interval_seconds: float = 10.0
    max_attempts: int = 60
    max_duration_seconds: float = 600.0

    @classmethod
    def from_settings(cls) -> "PollPolicy":
        return cls(
            interval_seconds=settings.ingestion_poll_interval_seconds,
            max_attempts=settings.ingestion_max_poll_attempts,
            max_duration_seconds=settings.ingestion_max_duration_seconds,
        )


class IngestionPipeline:
    """Upload a video to Gemini and poll it to ACTIVE."""

    def __init__(
        self,
        gemini: GeminiClient,
        storage: SupabaseStorage,
        policy: PollPolicy,
        temp_dir: Optional[str] = None,
        download_ttl_seconds: Optional[int] = None,
        chunk_size: Optional[int] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        self.gemini = gemini
        self.storage = storage
        self.policy = policy
        self.backoff = backoff or BackoffPolicy.from_settings()
        self.temp_dir = temp_dir or settings.ingestion_temp_dir
        self.download_ttl_seconds = download_ttl_seconds or settings.signed_download_ttl_seconds
        self.chunk_size = chunk_size or settings.ingestion_chunk_size_bytes

    @contextmanager
    def transient_copy(self, suffix: str = "") -> Iterator[str]:
        """
        Yield a fresh local path that is always removed afterwards.

        The name is unique per invocation so concurrent ingestions of the same
        object never share a file.
        """
        path = os.path.join(self.temp_dir, f"vyralize-{uuid4().hex}{suffix}")
        try:
            yield path
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as exc:
                logger.warning(f"Failed to remove transient file {path}: {exc}")

    @staticmethod
    def _require_mime_type(mime_type: str) -> None:
        if not mime_type or not mime_type.strip():
            raise ValidationError("filePath and mimeType are required.")

    async def ingest(self, file_locator: Union[str, BinaryIO], mime_type: str, file_name: str = "") -> MediaReference:
        """
        Ingest either a storage object path or an upload stream.

        Args:
            file_locator: Object path in the storage bucket, or a readable binary stream
            mime_type: Declared MIME type of the video
            file_name: Original name, used only for the temp file suffix of streams

        Returns:
            MediaReference usable by the content pipeline
        """
        if isinstance(file_locator, str):
            return await self.ingest_from_storage(file_locator, mime_type)
        return await self.ingest_upload(file_locator, file_name, mime_type)

    async def ingest_upload(self, stream: BinaryIO, file_name: str, mime_type: str) -> MediaReference:
        self._require_mime_type(mime_type)
        suffix = os.path.splitext(file_name or "")[1]

        with self.transient_copy(suffix) as temp_path:
            with open(temp_path, "wb") as out:
                await asyncio.to_thread(shutil.copyfileobj, stream, out, self.chunk_size)
            logger.info(f"Received upload {file_name!r} ({os.path.getsize(temp_path)} bytes)")
            return await self._upload_and_wait(temp_path, mime_type)

    async def ingest_from_storage(self, file_path: str, mime_type: str) -> MediaReference:
        """
        Fetch a staged object from storage and ingest it.

        Steps: signed download URL -> streamed download -> Gemini upload ->
        poll until ACTIVE. The transient file is removed regardless of outcome.
        """
        if not file_path or not file_path.strip():
            raise ValidationError("filePath and mimeType are required.")
        self._require_mime_type(mime_type)

        signed_url = await self.storage.create_signed_download_url(file_path, self.download_ttl_seconds)
        logger.info(f"Created signed download URL for {file_path}")

        suffix = os.path.splitext(file_path)[1]
        with self.transient_copy(suffix) as temp_path:
            size = await self.storage.stream_download(signed_url, temp_path, self.chunk_size)
            logger.info(f"Download complete for {file_path} ({size} bytes)")
            return await self._upload_and_wait(temp_path, mime_type)

    async def _upload_and_wait(self, path: str, mime_type: str) -> MediaReference:
        logger.info(f"Starting upload to Gemini ({mime_type})")
        try:
            uploaded = await with_backoff(lambda: self.gemini.upload_file(path, mime_type), self.backoff)
        except (UpstreamQuotaExceeded, UpstreamTimeout):
            raise
        except Exception as exc:
            logger.error(f"Gemini upload failed: {exc}", exc_info=True)
            raise UploadFailed() from exc

        if not uploaded.name:
            raise UploadFailed("Gemini upload did not return a file name.")

        logger.info(f"Upload initiated (ID: {uploaded.name}). Polling Gemini...")
        active = await self.wait_until_active(uploaded.name)
        return MediaReference(uri=active.uri, mime_type=active.mime_type)

    async def wait_until_active(self, name: str) -> UploadedFile:
        """
        Poll the file store until the file leaves PROCESSING.

        Raises:
            IngestionFailed: The store reported FAILED or an unexpected state
            IngestionTimeout: Attempts or elapsed time exceeded the policy
        """
        started = time.monotonic()
        attempts = 0

        file = await with_backoff(lambda: self.gemini.get_file(name), self.backoff)
        while file.state == STATE_PROCESSING:
            attempts += 1
            elapsed = time.monotonic() - started
            if attempts > self.policy.max_attempts or elapsed >= self.policy.max_duration_seconds:
                logger.error(f"Gemini processing of {name} timed out after {attempts} polls ({elapsed:.0f}s)")
                raise IngestionTimeout()

            logger.info(f"Polling status for {name}: {file.state} (attempt {attempts})")
            await asyncio.sleep(self.policy.interval_seconds)
            file = await with_backoff(lambda: self.gemini.get_file(name), self.backoff)

        if file.state == STATE_FAILED:
            detail = file.error or "Unknown error"
            logger.error(f"Gemini processing failed for {name}: {detail}")
            raise IngestionFailed(f"Video processing failed on Gemini. Details: {detail}")

        if file.state != STATE_ACTIVE:
            raise IngestionFailed(f"Video processing ended in unexpected state: {file.state}")

        if not file.uri or not file.mime_type:
            raise IngestionFailed("Gemini processing succeeded but missing URI or MimeType.")

        logger.info(f"Gemini processing complete for {name} (ACTIVE)")
        return file
