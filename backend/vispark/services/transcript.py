"""
Transcript acquisition.

Fetches caption segments from the configured source and normalizes
them into a Transcript. Any failure surfaces as
TranscriptUnavailableError, which the coordinator maps to the
gathering stage.
"""

import logging

from vispark.config import Settings
from vispark.models.schemas import Transcript
from vispark.services.ai_clients import (
    HttpTranscriptClient,
    TranscriptNotFoundError,
    TranscriptSource,
    YouTubeTranscriptClient,
)

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "An unexpected error occurred while fetching the transcript."


class TranscriptUnavailableError(Exception):
    """
    Transcript could not be obtained for a video.

    Attributes:
        video_id: Requested video
        message: User-facing description
        cause: Original exception (if any)
    """

    def __init__(
        self,
        video_id: str,
        message: str = DEFAULT_MESSAGE,
        cause: Exception | None = None,
    ):
        self.video_id = video_id
        self.message = message
        self.cause = cause
        super().__init__(message)


class TranscriptAcquirer:
    """
    Fetches and normalizes transcripts.

    Retries are applied by the caller (RetryExecutor), not here.

    Example:
        acquirer = TranscriptAcquirer(HttpTranscriptClient.from_settings(settings))
        transcript = await acquirer.fetch("dQw4w9WgXcQ")
        print(transcript.text)
    """

    def __init__(self, source: TranscriptSource, language: str | None = None):
        """
        Initialize acquirer.

        Args:
            source: Transcript source implementation
            language: Preferred transcript language
        """
        self.source = source
        self.language = language

    @classmethod
    def from_settings(cls, settings: Settings, http_client=None) -> "TranscriptAcquirer":
        """
        Create acquirer with the source selected by TRANSCRIPT_BACKEND.

        Args:
            settings: Application settings
            http_client: Optional shared httpx client for the HTTP backend
        """
        source: TranscriptSource
        if settings.transcript_backend == "youtube":
            source = YouTubeTranscriptClient()
        else:
            source = HttpTranscriptClient.from_settings(settings, http_client=http_client)
        return cls(source, language=settings.transcript_language)

    async def fetch(self, video_id: str) -> Transcript:
        """
        Fetch and normalize the transcript for a video.

        Args:
            video_id: YouTube video ID

        Returns:
            Transcript with normalized text

        Raises:
            TranscriptUnavailableError: If the source fails or returns
                no usable text
        """
        try:
            segments = await self.source.get_transcript(video_id, self.language)
        except TranscriptNotFoundError as e:
            raise TranscriptUnavailableError(
                video_id,
                "No transcript is available for this video. "
                "Captions may be disabled.",
                cause=e,
            ) from e
        except Exception as e:
            logger.warning(f"Transcript fetch failed for {video_id}: {e}")
            raise TranscriptUnavailableError(video_id, cause=e) from e

        transcript = Transcript(
            video_id=video_id,
            segments=segments,
            language=self.language,
        )

        if not transcript.text:
            raise TranscriptUnavailableError(
                video_id,
                "The transcript for this video is empty.",
            )

        logger.info(
            f"Transcript for {video_id}: {len(segments)} segments, "
            f"{len(transcript.text)} chars"
        )
        return transcript
