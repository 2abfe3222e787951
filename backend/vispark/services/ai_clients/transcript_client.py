"""
HTTP transcript client.

Calls the transcript function:

    POST {transcript_url}  {"videoId": "...", "lang": "en"}
    200 -> {"videoId": "...", "transcript": [{"text", "offset", "duration"}], "lang": "en"}
    404 -> no transcript for the video
"""

import logging

import httpx

from vispark.config import Settings
from vispark.models.schemas import TranscriptSegment
from vispark.services.ai_clients.base import (
    AIClientConfig,
    AIClientResponseError,
    HttpServiceClient,
    TranscriptNotFoundError,
)

logger = logging.getLogger(__name__)

BAD_PAYLOAD_MESSAGE = "Unexpected response format from transcript service."


class HttpTranscriptClient(HttpServiceClient):
    """
    Async HTTP client for the transcript service.

    Implements the TranscriptSource protocol. Requests are plain httpx
    calls, so cancelling the calling task aborts the request.

    Example:
        async with HttpTranscriptClient.from_settings(settings) as client:
            segments = await client.get_transcript("dQw4w9WgXcQ", "en")
    """

    provider = "transcript"

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "HttpTranscriptClient":
        """Create HttpTranscriptClient from application settings."""
        config = AIClientConfig(
            base_url=settings.transcript_url,
            timeout=settings.http_timeout,
            api_key=settings.transcript_api_key,
        )
        return cls(config, http_client)

    async def get_transcript(
        self,
        video_id: str,
        language: str | None = None,
    ) -> list[TranscriptSegment]:
        """
        Fetch transcript segments from the transcript service.

        Args:
            video_id: YouTube video ID
            language: Preferred language code

        Returns:
            Transcript segments

        Raises:
            TranscriptNotFoundError: If the service has no transcript (404)
            AIClientResponseError: On other error statuses or bad payloads
            AIClientTimeoutError: If the request times out
            AIClientConnectionError: If the service is unreachable
        """
        request_body: dict = {"videoId": video_id}
        if language:
            request_body["lang"] = language

        logger.debug(f"Fetching transcript for {video_id} (lang={language})")

        try:
            response = await self.http_client.post(
                self.config.base_url,
                json=request_body,
                headers=self.auth_headers(),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise TranscriptNotFoundError(
                    f"No transcript available for video {video_id}",
                    video_id=video_id,
                    provider=self.provider,
                    original_error=e,
                ) from e
            raise self.transport_error(e, "Transcript request") from e

        except httpx.HTTPError as e:
            raise self.transport_error(e, "Transcript request") from e

        except ValueError as e:
            raise AIClientResponseError(
                BAD_PAYLOAD_MESSAGE, provider=self.provider, original_error=e
            ) from e

        raw_segments = payload.get("transcript") if isinstance(payload, dict) else None
        if not isinstance(raw_segments, list):
            raise AIClientResponseError(BAD_PAYLOAD_MESSAGE, provider=self.provider)

        segments = [
            TranscriptSegment(
                text=str(item.get("text", "")),
                offset_ms=item.get("offset"),
                duration_ms=item.get("duration"),
            )
            for item in raw_segments
            if isinstance(item, dict)
        ]
        logger.debug(f"Transcript for {video_id}: {len(segments)} segments")
        return segments
