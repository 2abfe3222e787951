"""
Clients for the external services the pipeline depends on.

- HttpTranscriptClient: transcript service over HTTP (production)
- YouTubeTranscriptClient: captions straight from YouTube (local development)
- SummaryStreamClient: streaming summary endpoint
- YouTubeMetadataClient: video details from the YouTube Data API

Usage:
    from vispark.services.ai_clients import SummaryStreamClient, SummaryService

    async with SummaryStreamClient.from_settings(settings) as client:
        async with client.stream_summary(transcript_text) as byte_stream:
            ...
"""

from vispark.services.ai_clients.base import (
    AIClientConfig,
    AIClientConnectionError,
    AIClientError,
    AIClientResponseError,
    AIClientTimeoutError,
    HttpServiceClient,
    SummaryService,
    TranscriptNotFoundError,
    TranscriptSource,
    VideoMetadataSource,
)
from vispark.services.ai_clients.summary_client import SummaryStreamClient
from vispark.services.ai_clients.transcript_client import HttpTranscriptClient
from vispark.services.ai_clients.youtube_client import (
    YouTubeMetadataClient,
    YouTubeTranscriptClient,
)

__all__ = [
    # Protocols and base classes
    "TranscriptSource",
    "SummaryService",
    "VideoMetadataSource",
    "HttpServiceClient",
    "AIClientConfig",
    # Errors
    "AIClientError",
    "AIClientTimeoutError",
    "AIClientConnectionError",
    "AIClientResponseError",
    "TranscriptNotFoundError",
    # Implementations
    "HttpTranscriptClient",
    "YouTubeTranscriptClient",
    "SummaryStreamClient",
    "YouTubeMetadataClient",
]
