"""
Processing coordinator.

Drives one ProcessingJob through the pipeline:

    idle ──► gathering ──► summarizing ──► complete
      │          │              │
      │          └──────────────┴──► error (error_step = gathering | summarizing)
      └──► complete (summary already saved)

Every resumption point compares the job's generation_token with the
coordinator's current generation. Submitting another video bumps the
generation and cancels the running task, so late callbacks from the old
job become no-ops.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from vispark.config import Settings, get_settings
from vispark.models.schemas import ErrorStep, ProcessingJob, Step, VideoMetadata
from vispark.services.ai_clients import SummaryService, VideoMetadataSource
from vispark.services.persistence import PersistenceGate
from vispark.services.retry import RetryExecutor
from vispark.services.stream_parser import StreamSummaryParser
from vispark.services.transcript import (
    DEFAULT_MESSAGE as TRANSCRIPT_DEFAULT_MESSAGE,
    TranscriptAcquirer,
    TranscriptUnavailableError,
)

logger = logging.getLogger(__name__)

SUMMARY_DEFAULT_MESSAGE = "An unexpected error occurred while generating the summary."

ProgressCallback = Callable[[ProcessingJob, str | None], Awaitable[None]]


class SummaryStreamError(Exception):
    """
    Summary stream faulted or ended without a stop marker.

    Attributes:
        message: User-facing description
        cause: Read error reported by the stream (if any)
    """

    def __init__(
        self,
        message: str = SUMMARY_DEFAULT_MESSAGE,
        cause: Exception | None = None,
    ):
        self.message = message
        self.cause = cause
        super().__init__(message)


class ProcessingCoordinator:
    """
    State machine for one consumer's current video.

    The coordinator owns its ProcessingJob exclusively. Observers get a
    snapshot through the progress callback after every state change;
    streaming updates also carry the new chunk as `delta`.

    Example:
        coordinator = ProcessingCoordinator(
            transcripts=TranscriptAcquirer.from_settings(settings),
            summary_service=SummaryStreamClient.from_settings(settings),
            gate=PersistenceGate(InMemorySummaryStore()),
            progress_callback=on_progress,
        )
        await coordinator.submit("dQw4w9WgXcQ")
        await coordinator.wait()
        print(coordinator.job.final_summary)
    """

    def __init__(
        self,
        transcripts: TranscriptAcquirer,
        summary_service: SummaryService,
        gate: PersistenceGate,
        settings: Settings | None = None,
        metadata_source: VideoMetadataSource | None = None,
        progress_callback: ProgressCallback | None = None,
        retry: RetryExecutor | None = None,
        parser: StreamSummaryParser | None = None,
    ):
        """
        Initialize coordinator.

        Args:
            transcripts: Transcript acquirer
            summary_service: Streaming summary service
            gate: Persistence gate (shared across coordinators)
            settings: Settings with retry budgets (global settings if None)
            metadata_source: Optional video metadata source. Details are
                fetched when a run starts and fill in the channel when
                none is given
            progress_callback: Async callback receiving (job, delta)
            retry: Retry executor
            parser: Stream parser
        """
        self.transcripts = transcripts
        self.summary_service = summary_service
        self.gate = gate
        self.settings = settings or get_settings()
        self.metadata_source = metadata_source
        self.progress_callback = progress_callback
        self.retry = retry or RetryExecutor()
        self.parser = parser or StreamSummaryParser()

        self._generation = 0
        self._job: ProcessingJob | None = None
        self._task: asyncio.Task | None = None
        self._generating_token: int | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def job(self) -> ProcessingJob | None:
        """Current job (None before the first submit or after discard)."""
        return self._job

    async def submit(self, video_id: str, channel_id: str | None = None) -> ProcessingJob:
        """
        Start processing a video.

        Resubmitting the current video is a no-op unless its job ended in
        error. Any other submit supersedes the current job.

        Args:
            video_id: YouTube video ID
            channel_id: Channel to store with the summary

        Returns:
            The job now owned by the coordinator
        """
        current = self._job
        if current is not None and current.video_id == video_id and current.step != Step.ERROR:
            logger.debug(f"Ignoring resubmit of {video_id} (step={current.step.value})")
            return current

        self._generation += 1
        token = self._generation
        await self._cancel_task()

        if token != self._generation:
            # A later submit won while the old task was shutting down
            return self._job

        self._job = ProcessingJob(
            video_id=video_id,
            generation_token=token,
            channel_id=channel_id,
        )
        logger.info(f"Submitted {video_id} (generation {token})")
        await self._notify(token)

        if token != self._generation:
            # Superseded while observers handled the idle state
            return self._job

        self._task = asyncio.create_task(
            self._run(token, channel_id),
            name=f"process-{video_id}-{token}",
        )
        return self._job

    async def wait(self) -> None:
        """Wait for the current pipeline run and any pending saves."""
        if self._task is not None:
            await asyncio.wait({self._task})
        if self._background:
            await asyncio.wait(set(self._background))

    async def discard(self) -> None:
        """Cancel in-flight work and drop the current job."""
        self._generation += 1
        await self._cancel_task()
        if self._job is not None:
            logger.info(f"Discarded job for {self._job.video_id}")
        self._job = None

    async def aclose(self) -> None:
        """Discard the job and let pending saves finish."""
        await self.discard()
        if self._background:
            await asyncio.wait(set(self._background))

    def _is_current(self, token: int) -> bool:
        return (
            token == self._generation
            and self._job is not None
            and self._job.generation_token == token
        )

    async def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
        logger.debug(f"Cancelled task {task.get_name()}")

    async def _run(self, token: int, channel_id: str | None) -> None:
        """Pipeline body. Ends in complete, error, or a stale no-op."""
        job = self._job
        video_id = job.video_id
        claimed = False
        handed_off = False
        metadata_task = self._start_metadata_lookup(token, video_id)

        try:
            existing = await self.gate.acquire(video_id)
            if existing is None:
                claimed = True
            if not self._is_current(token):
                return

            if existing is not None:
                job.final_summary = existing.summary_text
                job.channel_id = job.channel_id or existing.channel_id
                job.step = Step.COMPLETE
                job.completed_at = datetime.now()
                logger.info(f"Using saved summary for {video_id}")
                await self._notify(token)
                return

            # Gathering
            job.step = Step.GATHERING
            await self._notify(token)

            try:
                transcript = await self.retry.run(
                    lambda: self.transcripts.fetch(video_id),
                    max_retries=self.settings.transcript_max_retries,
                    base_delay_ms=self.settings.transcript_base_delay_ms,
                    is_cancelled=lambda: not self._is_current(token),
                )
            except Exception as e:
                if not self._is_current(token):
                    return
                message = (
                    e.message
                    if isinstance(e, TranscriptUnavailableError)
                    else TRANSCRIPT_DEFAULT_MESSAGE
                )
                logger.error(f"Gathering failed for {video_id}: {e}")
                await self._fail(token, ErrorStep.GATHERING, message)
                return

            if not self._is_current(token):
                return

            # Summarizing
            job.transcript_text = transcript.text
            job.step = Step.SUMMARIZING
            await self._notify(token)

            if not self._claim_generation(token):
                return

            try:
                full_text = await self.retry.run(
                    lambda: self._stream_attempt(token, transcript.text),
                    max_retries=self.settings.summary_max_retries,
                    base_delay_ms=self.settings.summary_base_delay_ms,
                    is_cancelled=lambda: not self._is_current(token),
                )
            except Exception as e:
                if not self._is_current(token):
                    return
                message = (
                    e.message
                    if isinstance(e, SummaryStreamError)
                    else SUMMARY_DEFAULT_MESSAGE
                )
                logger.error(f"Summarizing failed for {video_id}: {e}")
                await self._fail(token, ErrorStep.SUMMARIZING, message)
                return

            if not self._is_current(token):
                return

            job.final_summary = full_text
            job.streaming_buffer = ""
            job.step = Step.COMPLETE
            job.completed_at = datetime.now()
            logger.info(f"Summary complete for {video_id}: {len(full_text)} chars")
            await self._notify(token)

            self._spawn_save(video_id, channel_id, full_text, metadata_task)
            handed_off = True

        finally:
            if claimed and not handed_off:
                self.gate.release(video_id)

    def _claim_generation(self, token: int) -> bool:
        """Allow one summary generation per job."""
        if self._generating_token == token:
            logger.warning(f"Summary generation already started for generation {token}")
            return False
        self._generating_token = token
        return True

    async def _stream_attempt(self, token: int, transcript_text: str) -> str:
        """
        One full streaming attempt.

        Raises:
            SummaryStreamError: If the stream faults or ends without a
                stop marker
        """
        job = self._job
        if self._is_current(token) and job.streaming_buffer:
            job.streaming_buffer = ""
            await self._notify(token)

        full_text: str | None = None
        stream_error: Exception | None = None

        async def on_chunk(delta: str) -> None:
            if not self._is_current(token):
                return
            job.streaming_buffer += delta
            await self._notify(token, delta)

        async def on_complete(text: str) -> None:
            nonlocal full_text
            full_text = text

        async def on_error(error: Exception) -> None:
            nonlocal stream_error
            stream_error = error

        async with self.summary_service.stream_summary(transcript_text) as byte_stream:
            await self.parser.consume(byte_stream, on_chunk, on_complete, on_error)

        if stream_error is not None:
            raise SummaryStreamError(
                "The summary stream was interrupted. Please try again.",
                cause=stream_error,
            ) from stream_error
        if full_text is None:
            raise SummaryStreamError("The summary stream ended before the summary was complete.")
        return full_text

    async def _fail(self, token: int, error_step: ErrorStep, message: str) -> None:
        job = self._job
        job.step = Step.ERROR
        job.error_step = error_step
        job.error_message = message
        job.streaming_buffer = ""
        await self._notify(token)

    def _track(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    def _start_metadata_lookup(self, token: int, video_id: str) -> asyncio.Task | None:
        """Fetch video details alongside the pipeline (best effort)."""
        if self.metadata_source is None:
            return None
        return self._track(
            self._lookup_metadata(token, video_id),
            name=f"metadata-{video_id}-{token}",
        )

    async def _lookup_metadata(self, token: int, video_id: str) -> VideoMetadata | None:
        """
        Look up video details and attach them to the job if still current.

        A channel given at submit time is kept; otherwise the video's
        channel becomes the job's channel.

        Returns:
            VideoMetadata, or None if unknown or the lookup failed
        """
        try:
            metadata = await self.retry.run(
                lambda: self.metadata_source.get_metadata(video_id),
                max_retries=self.settings.metadata_max_retries,
                base_delay_ms=self.settings.metadata_base_delay_ms,
            )
        except Exception as e:
            logger.warning(f"Metadata lookup failed for {video_id}: {e}")
            return None

        if metadata is None:
            logger.debug(f"No metadata for {video_id}")
            return None

        if self._is_current(token):
            self._job.metadata = metadata
            if self._job.channel_id is None:
                self._job.channel_id = metadata.channel_id
            await self._notify(token)
        return metadata

    def _spawn_save(
        self,
        video_id: str,
        channel_id: str | None,
        summary_text: str,
        metadata_task: asyncio.Task | None,
    ) -> None:
        self._track(
            self._persist(video_id, channel_id, summary_text, metadata_task),
            name=f"save-{video_id}",
        )

    async def _persist(
        self,
        video_id: str,
        channel_id: str | None,
        summary_text: str,
        metadata_task: asyncio.Task | None,
    ) -> None:
        """Save with the given channel, else the looked-up one. Releases the gate claim."""
        try:
            if channel_id is None and metadata_task is not None:
                metadata = await metadata_task
                if metadata is not None:
                    channel_id = metadata.channel_id
            await self.gate.save(video_id, channel_id, summary_text)
        finally:
            self.gate.release(video_id)

    async def _notify(self, token: int, delta: str | None = None) -> None:
        if self.progress_callback is None or not self._is_current(token):
            return
        try:
            await self.progress_callback(self._job, delta)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
