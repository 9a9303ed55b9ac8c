"""
Gemini adapter built on the google-genai SDK.

Wraps the async surface of ``genai.Client`` for text generation, the File API
(upload + status polling) and Imagen image generation. Every SDK call is
funnelled through classify_upstream_error so quota and timeout failures reach
the client as 429/504 instead of a generic 500. Callers wrap model calls in
with_backoff so a transient 429 is retried before it reaches the client.
"""
import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import re
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Sequence, TypeVar

import httpx
from google import genai
from google.genai import types

from app.core.config import settings
from app.core.errors import GenerationMalformed, UpstreamQuotaExceeded, UpstreamTimeout

logger = logging.getLogger(__name__)

QUOTA_PATTERN = re.compile(r"RESOURCE_EXHAUSTED|Too Many Requests|Quota exceeded", re.IGNORECASE)
TIMEOUT_PATTERN = re.compile(r"timeout|timed out|DEADLINE_EXCEEDED", re.IGNORECASE)


def classify_upstream_error(exc: BaseException) -> BaseException:
    """
    Map an SDK/transport exception onto the domain error it represents.

    Args:
        exc: Exception raised by the SDK

    Returns:
        UpstreamQuotaExceeded, UpstreamTimeout, or the original exception
    """
    if isinstance(exc, (UpstreamQuotaExceeded, UpstreamTimeout)):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return UpstreamTimeout()

    code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    message = str(exc)
    if code == 429 or QUOTA_PATTERN.search(message):
        return UpstreamQuotaExceeded()
    if code == 504 or TIMEOUT_PATTERN.search(message):
        return UpstreamTimeout()
    return exc


@contextmanager
def upstream_errors() -> Iterator[None]:
    """Re-raise SDK errors as their domain equivalent where one applies."""
    try:
        yield
    except Exception as exc:
        mapped = classify_upstream_error(exc)
        if mapped is exc:
            raise
        raise mapped from exc


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry bounds for rate-limited (429) model calls."""
    max_retries: int = 3
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 30.0

    @classmethod
    def from_settings(cls) -> "BackoffPolicy":
        return cls(
            max_retries=settings.gemini_max_retries,
            base_delay_seconds=settings.gemini_retry_base_delay_seconds,
            max_delay_seconds=settings.gemini_retry_max_delay_seconds,
        )

    def delay(self, attempt: int) -> float:
        return min(self.base_delay_seconds * (2 ** attempt), self.max_delay_seconds)


T = TypeVar("T")


async def with_backoff(call: Callable[[], Awaitable[T]], policy: Optional[BackoffPolicy] = None) -> T:
    """
    Await ``call()``, retrying with exponential backoff while the model is rate limited.

    Only UpstreamQuotaExceeded is retried; every other error propagates on the
    first attempt.

    Args:
        call: Zero-argument coroutine factory, invoked once per attempt
        policy: Retry bounds (defaults to settings)

    Raises:
        UpstreamQuotaExceeded: Still rate limited after the last retry
    """
    policy = policy or BackoffPolicy.from_settings()
    attempt = 0
    while True:
        try:
            return await call()
        except UpstreamQuotaExceeded:
            if attempt >= policy.max_retries:
                logger.error(f"Backoff exhausted after {attempt + 1} attempts")
                raise
            wait_time = policy.delay(attempt)
            attempt += 1
            logger.warning(f"Gemini rate limited, retry {attempt}/{policy.max_retries} in {wait_time:.1f}s")
            await asyncio.sleep(wait_time)


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.5-flash"
    imagen_model: str = "imagen-3.0-generate-002"

    @classmethod
    def from_settings(cls) -> "GeminiConfig":
        return cls(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            imagen_model=settings.imagen_model,
        )


@dataclass
class UploadedFile:
    """Snapshot of a file in the Gemini file store."""
    name: str
    state: str
    uri: Optional[str] = None
    mime_type: Optional[str] = None
    error: Optional[str] = None


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str
    raw: Any = None


def _state_name(state: Any) -> str:
    if state is None:
        return "STATE_UNSPECIFIED"
    value = getattr(state, "value", state)
    return str(value).upper()


def _to_uploaded_file(file: Any) -> UploadedFile:
    error = getattr(file, "error", None)
    error_message = getattr(error, "message", None) if error is not None else None
    return UploadedFile(
        name=file.name,
        state=_state_name(getattr(file, "state", None)),
        uri=getattr(file, "uri", None),
        mime_type=getattr(file, "mime_type", None),
        error=error_message,
    )


def text_part(text: str) -> types.Part:
    return types.Part.from_text(text=text)


def video_part(uri: str, mime_type: str) -> types.Part:
    return types.Part.from_uri(file_uri=uri, mime_type=mime_type)


def image_part(data: bytes, mime_type: str) -> types.Part:
    return types.Part.from_bytes(data=data, mime_type=mime_type)


class GeminiClient:
    """Async Gemini adapter."""

    def __init__(self, config: GeminiConfig, client: Optional[genai.Client] = None):
        self.config = config
        self._client = client or genai.Client(api_key=config.api_key)

    @property
    def aio(self):
        return self._client.aio

    async def generate_text(
        self,
        parts: Sequence[Any],
        response_mime_type: Optional[str] = None,
        model: Optional[str] = None,
    ) -> str:
        """
        Run a single generate_content call and return the concatenated text.

        Args:
            parts: Ordered content parts (instructions first, media after)
            response_mime_type: e.g. "application/json" to force JSON output
            model: Override the configured text model

        Returns:
            Model text

        Raises:
            GenerationMalformed: If the model returned no text
        """
        config = None
        if response_mime_type:
            config = types.GenerateContentConfig(response_mime_type=response_mime_type)

        with upstream_errors():
            response = await self.aio.models.generate_content(
                model=model or self.config.model,
                contents=list(parts),
                config=config,
            )

        text = response.text
        if not text:
            raise GenerationMalformed("The AI model returned an empty response.")
        return text

    async def upload_file(self, path: str, mime_type: str) -> UploadedFile:
        with upstream_errors():
            file = await self.aio.files.upload(
                file=path,
                config=types.UploadFileConfig(mime_type=mime_type),
            )
        return _to_uploaded_file(file)

    async def get_file(self, name: str) -> UploadedFile:
        with upstream_errors():
            file = await self.aio.files.get(name=name)
        return _to_uploaded_file(file)

    async def generate_image(self, prompt: str) -> GeneratedImage:
        """
        Generate one image with Imagen.

        An empty ``data`` field means the model produced no image (typically a
        safety filter); ``raw`` keeps the full response for diagnostics.
        """
        with upstream_errors():
            response = await self.aio.models.generate_images(
                model=self.config.imagen_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(number_of_images=1),
            )

        generated: List[Any] = list(getattr(response, "generated_images", None) or [])
        for item in generated:
            image = getattr(item, "image", None)
            data = getattr(image, "image_bytes", None) if image is not None else None
            if data:
                return GeneratedImage(
                    data=bytes(data),
                    mime_type=getattr(image, "mime_type", None) or "image/png",
                    raw=response,
                )

        return GeneratedImage(data=b"", mime_type="", raw=response)
