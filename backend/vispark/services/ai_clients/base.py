"""
Interfaces and shared plumbing for external service clients.

The pipeline only sees the protocols below, so the HTTP clients can be
swapped for local sources or test fakes:
- TranscriptSource: caption segments for a video
- SummaryService: streamed summary bytes for a transcript
- VideoMetadataSource: video details (channel, title, ...)
"""

import logging
from abc import ABC
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable

import httpx

from vispark.models.schemas import TranscriptSegment, VideoMetadata

logger = logging.getLogger(__name__)

# Kept on AIClientResponseError for diagnostics
RESPONSE_BODY_LIMIT = 500


@dataclass
class AIClientConfig:
    """Endpoint, per-request timeout (seconds) and optional key."""

    base_url: str
    timeout: float = 30.0
    api_key: str | None = None


@runtime_checkable
class TranscriptSource(Protocol):
    """
    Source of transcript segments.

    Implementations raise TranscriptNotFoundError when the video has no
    usable captions and AIClientError for transport failures.
    """

    async def get_transcript(
        self,
        video_id: str,
        language: str | None = None,
    ) -> list[TranscriptSegment]:
        """Segments in playback order, in `language` when available."""
        ...


@runtime_checkable
class SummaryService(Protocol):
    """
    Streaming summary generator.

    The stream carries newline-delimited JSON records; each may hold
    choices[0].delta.content and/or choices[0].finish_reason == "stop".

    Example:
        async with service.stream_summary(transcript_text) as byte_stream:
            async for raw in byte_stream:
                ...
    """

    def stream_summary(
        self,
        transcript_text: str,
    ) -> AbstractAsyncContextManager[AsyncIterator[bytes]]:
        """Open a summary stream. Leaving the context closes the connection."""
        ...


@runtime_checkable
class VideoMetadataSource(Protocol):
    """Source of video details."""

    async def get_metadata(self, video_id: str) -> VideoMetadata | None:
        """VideoMetadata, or None if the video is unknown."""
        ...


class AIClientError(Exception):
    """
    A call to an external service failed.

    Attributes:
        message: Error description
        provider: Service name (transcript, summary, youtube)
        model: Model involved, for the summary service
        original_error: Underlying exception if available
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.original_error = original_error

    def __str__(self) -> str:
        labels = [("provider", self.provider), ("model", self.model)]
        return " | ".join(
            [self.message] + [f"{key}={value}" for key, value in labels if value]
        )


class AIClientTimeoutError(AIClientError):
    """The service did not answer in time."""


class AIClientConnectionError(AIClientError):
    """The service could not be reached."""


class AIClientResponseError(AIClientError):
    """
    The service answered with an error status or an unreadable body.

    Attributes:
        status_code: HTTP status, None for malformed payloads
        response_body: Start of the response body
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body


class TranscriptNotFoundError(AIClientError):
    """
    The video has no usable transcript.

    Covers missing videos, disabled captions and unavailable languages.
    `available_languages` lists what the source reported, if anything.
    """

    def __init__(
        self,
        message: str,
        video_id: str,
        available_languages: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.video_id = video_id
        self.available_languages = available_languages or []


class HttpServiceClient(ABC):
    """
    Base for clients that talk to one HTTP endpoint.

    Owns the httpx client unless a shared one is passed in, in which case
    close() leaves it open for its owner. Subclasses set `provider`.
    """

    provider: str = "service"

    def __init__(
        self,
        config: AIClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=None)

    def auth_headers(self) -> dict[str, str]:
        """Bearer authorization when an API key is configured."""
        if not self.config.api_key:
            return {}
        return {"Authorization": f"Bearer {self.config.api_key}"}

    def transport_error(
        self,
        error: httpx.HTTPError,
        action: str,
        model: str | None = None,
    ) -> AIClientError:
        """
        Translate an httpx failure into the client error hierarchy.

        Args:
            error: Exception raised by httpx
            action: What was attempted, e.g. "Transcript request"
            model: Model to attach to the error

        Returns:
            Error to raise (the caller chains it with `from`)
        """
        if isinstance(error, httpx.TimeoutException):
            logger.error(f"{action} timed out: {error}")
            return AIClientTimeoutError(
                f"{action} timeout",
                provider=self.provider,
                model=model,
                original_error=error,
            )
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            logger.error(f"{action} failed: HTTP {status}")
            return AIClientResponseError(
                f"{action} failed: HTTP {status}",
                status_code=status,
                response_body=error.response.text[:RESPONSE_BODY_LIMIT],
                provider=self.provider,
                model=model,
                original_error=error,
            )
        logger.error(f"Cannot connect to {self.provider} service: {error}")
        return AIClientConnectionError(
            f"Cannot connect to {self.provider} service at {self.config.base_url}",
            provider=self.provider,
            model=model,
            original_error=error,
        )

    async def check_service(self) -> bool:
        """True if the endpoint host answers with a non-5xx status."""
        try:
            response = await self.http_client.get(self.config.base_url, timeout=5.0)
            return response.status_code < 500
        except httpx.HTTPError as e:
            logger.debug(f"{self.provider} service not available: {e}")
            return False

    async def close(self) -> None:
        """Close the httpx client if this instance created it."""
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
