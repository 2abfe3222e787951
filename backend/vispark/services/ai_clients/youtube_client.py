"""
Direct YouTube clients.

- YouTubeTranscriptClient: captions via youtube-transcript-api (local
  development source, no transcript service needed)
- YouTubeMetadataClient: video details via the YouTube Data API v3
"""

import asyncio
import logging
from datetime import datetime

import httpx
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from vispark.config import Settings
from vispark.models.schemas import TranscriptSegment, VideoMetadata
from vispark.services.ai_clients.base import (
    AIClientConfig,
    AIClientError,
    HttpServiceClient,
    TranscriptNotFoundError,
)

logger = logging.getLogger(__name__)


class YouTubeTranscriptClient:
    """
    Transcript source backed by youtube-transcript-api.

    The library is synchronous; calls run in a worker thread. Cancelling
    the caller abandons the thread's result rather than interrupting it.

    If the requested language is missing, the first available transcript
    is used instead.

    Example:
        client = YouTubeTranscriptClient()
        segments = await client.get_transcript("dQw4w9WgXcQ", "en")
    """

    def __init__(self, api: YouTubeTranscriptApi | None = None):
        """
        Initialize client.

        Args:
            api: Configured YouTubeTranscriptApi (default instance if None)
        """
        self.api = api or YouTubeTranscriptApi()

    async def get_transcript(
        self,
        video_id: str,
        language: str | None = None,
    ) -> list[TranscriptSegment]:
        """
        Fetch transcript segments from YouTube.

        Args:
            video_id: YouTube video ID
            language: Preferred language code

        Returns:
            Transcript segments

        Raises:
            TranscriptNotFoundError: If captions are disabled or missing
            AIClientError: For other retrieval failures
        """
        return await asyncio.to_thread(self._fetch_sync, video_id, language)

    def _fetch_sync(
        self,
        video_id: str,
        language: str | None,
    ) -> list[TranscriptSegment]:
        """Blocking fetch with language fallback."""
        try:
            transcript_list = self.api.list(video_id)
            available = [t.language_code for t in transcript_list]
            if not available:
                raise TranscriptNotFoundError(
                    f"No transcript available for video {video_id}",
                    video_id=video_id,
                    provider="youtube",
                )

            if language and language in available:
                transcript = transcript_list.find_transcript([language])
            else:
                if language:
                    logger.info(
                        f"Requested language {language!r} not available for "
                        f"{video_id}. Falling back to {available[0]!r}"
                    )
                transcript = transcript_list.find_transcript([available[0]])

            fetched = transcript.fetch()

        except (TranscriptsDisabled, NoTranscriptFound, VideoUnavailable) as e:
            logger.warning(f"No transcript for {video_id}: {type(e).__name__}")
            raise TranscriptNotFoundError(
                f"No transcript available for video {video_id}",
                video_id=video_id,
                provider="youtube",
                original_error=e,
            ) from e

        except CouldNotRetrieveTranscript as e:
            logger.error(f"Transcript retrieval failed for {video_id}: {type(e).__name__}")
            raise AIClientError(
                f"Failed to retrieve transcript for video {video_id}",
                provider="youtube",
                original_error=e,
            ) from e

        return [
            TranscriptSegment(
                text=snippet.text,
                offset_ms=snippet.start * 1000,
                duration_ms=snippet.duration * 1000,
            )
            for snippet in fetched
        ]


class YouTubeMetadataClient(HttpServiceClient):
    """
    Async client for YouTube Data API v3 video details.

    Implements the VideoMetadataSource protocol. The API key travels as
    a query parameter, not a bearer header.

    Example:
        async with YouTubeMetadataClient.from_settings(settings) as client:
            metadata = await client.get_metadata("dQw4w9WgXcQ")
            print(metadata.channel_id)
    """

    provider = "youtube"

    def __init__(
        self,
        config: AIClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not config.api_key:
            raise ValueError(
                "YouTubeMetadataClient requires API key. "
                "Set YOUTUBE_API_KEY environment variable."
            )
        super().__init__(config, http_client)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "YouTubeMetadataClient":
        """
        Create YouTubeMetadataClient from application settings.

        Raises:
            ValueError: If YOUTUBE_API_KEY not set
        """
        config = AIClientConfig(
            base_url=settings.youtube_api_url,
            timeout=settings.http_timeout,
            api_key=settings.youtube_api_key,
        )
        return cls(config, http_client)

    async def get_metadata(self, video_id: str) -> VideoMetadata | None:
        """
        Fetch video details.

        Args:
            video_id: YouTube video ID

        Returns:
            VideoMetadata, or None if the API does not know the video

        Raises:
            AIClientError: On transport or HTTP errors
        """
        try:
            response = await self.http_client.get(
                f"{self.config.base_url}/videos",
                params={
                    "part": "snippet,contentDetails",
                    "id": video_id,
                    "key": self.config.api_key,
                },
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise self.transport_error(e, "Metadata request") from e

        items = payload.get("items") or []
        if not items:
            logger.info(f"YouTube Data API has no video {video_id}")
            return None

        return _parse_video_item(video_id, items[0])


def _parse_video_item(video_id: str, item: dict) -> VideoMetadata:
    """Convert a videos.list item to VideoMetadata."""
    snippet = item.get("snippet") or {}
    content_details = item.get("contentDetails") or {}

    published_at = None
    if snippet.get("publishedAt"):
        published_at = datetime.fromisoformat(snippet["publishedAt"].replace("Z", "+00:00"))

    thumbnails = {
        name: thumb["url"]
        for name, thumb in (snippet.get("thumbnails") or {}).items()
        if isinstance(thumb, dict) and thumb.get("url")
    }

    return VideoMetadata(
        video_id=video_id,
        title=snippet.get("title"),
        channel_id=snippet.get("channelId"),
        channel_title=snippet.get("channelTitle"),
        published_at=published_at,
        duration=content_details.get("duration"),
        default_language=snippet.get("defaultLanguage") or snippet.get("defaultAudioLanguage"),
        thumbnails=thumbnails,
    )
