"""
Streaming summary client.

Posts an OpenAI-compatible chat request with "stream": true and exposes
the raw response body as a byte iterator. The endpoint must answer with
newline-delimited JSON chunk records (see StreamSummaryParser).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from vispark.config import Settings, load_prompt
from vispark.services.ai_clients.base import AIClientConfig, HttpServiceClient

logger = logging.getLogger(__name__)


class SummaryStreamClient(HttpServiceClient):
    """
    Async HTTP client for the summary stream endpoint.

    Implements the SummaryService protocol. Leaving the stream context
    (normally, on error, or on task cancellation) closes the connection.

    Example:
        async with SummaryStreamClient.from_settings(settings) as client:
            async with client.stream_summary(transcript_text) as byte_stream:
                await parser.consume(byte_stream, on_chunk, on_complete, on_error)
    """

    provider = "summary"

    def __init__(
        self,
        config: AIClientConfig,
        model: str,
        system_prompt: str,
        user_template: str = "{transcript}",
        temperature: float = 0.3,
        read_timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize summary client.

        Args:
            config: Client configuration with summary endpoint URL
            model: Model name sent with each request
            system_prompt: System message for the summary request
            user_template: User message template with a {transcript} slot
            temperature: Sampling temperature
            read_timeout: Max seconds to wait between stream reads
            http_client: Shared httpx client (created if None)
        """
        super().__init__(config, http_client)
        self.model = model
        self.system_prompt = system_prompt
        self.user_template = user_template
        self.temperature = temperature
        self.read_timeout = read_timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> "SummaryStreamClient":
        """
        Create SummaryStreamClient from application settings.

        Args:
            settings: Application settings
            http_client: Optional shared httpx client

        Returns:
            Configured SummaryStreamClient instance
        """
        config = AIClientConfig(
            base_url=settings.summary_url,
            timeout=settings.http_timeout,
            api_key=settings.summary_api_key,
        )
        return cls(
            config=config,
            model=settings.summary_model,
            system_prompt=load_prompt("summary", "system", settings),
            user_template=load_prompt("summary", "user", settings),
            temperature=settings.summary_temperature,
            read_timeout=settings.summary_read_timeout,
            http_client=http_client,
        )

    def build_messages(self, transcript_text: str) -> list[dict]:
        """
        Build chat messages for a transcript.

        Args:
            transcript_text: Normalized transcript

        Returns:
            System and user messages
        """
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": self.user_template.replace("{transcript}", transcript_text),
            },
        ]

    @asynccontextmanager
    async def stream_summary(self, transcript_text: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open a summary stream for a transcript.

        Args:
            transcript_text: Normalized transcript

        Yields:
            Async iterator over raw response bytes

        Raises:
            AIClientResponseError: If the endpoint answers with an error status
            AIClientTimeoutError: If connecting or reading times out
            AIClientConnectionError: If the endpoint is unreachable
        """
        request_body = {
            "model": self.model,
            "messages": self.build_messages(transcript_text),
            "temperature": self.temperature,
            "stream": True,
        }
        headers = {"Accept": "application/x-ndjson", **self.auth_headers()}

        timeout = httpx.Timeout(self.config.timeout, read=self.read_timeout)

        logger.debug(
            f"Opening summary stream with {self.model}, "
            f"transcript length: {len(transcript_text)}"
        )

        try:
            async with self.http_client.stream(
                "POST",
                self.config.base_url,
                json=request_body,
                headers=headers,
                timeout=timeout,
            ) as response:
                if response.is_error:
                    # Load the body so the error can carry it
                    await response.aread()
                    response.raise_for_status()

                yield response.aiter_bytes()

        except httpx.HTTPError as e:
            raise self.transport_error(e, "Summary stream", model=self.model) from e
