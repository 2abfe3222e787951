"""
Session manager for video summarization.

Owns one ProcessingCoordinator per client session and broadcasts job
updates to WebSocket subscribers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

import httpx

from vispark.config import Settings, get_settings
from vispark.models.schemas import ProcessingJob
from vispark.services.ai_clients import (
    SummaryService,
    SummaryStreamClient,
    VideoMetadataSource,
    YouTubeMetadataClient,
)
from vispark.services.coordinator import ProcessingCoordinator, ProgressCallback
from vispark.services.persistence import PersistenceGate, create_store
from vispark.services.transcript import TranscriptAcquirer

logger = logging.getLogger(__name__)

CoordinatorFactory = Callable[[ProgressCallback], ProcessingCoordinator]


@dataclass
class PipelineServices:
    """External collaborators shared by every session."""

    settings: Settings
    transcripts: TranscriptAcquirer
    summary_service: SummaryService
    gate: PersistenceGate
    metadata_source: VideoMetadataSource | None = None
    http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineServices":
        """
        Build clients, store and gate from settings.

        One httpx client is shared by all HTTP collaborators.
        """
        http_client = httpx.AsyncClient(timeout=None)

        metadata_source: VideoMetadataSource | None = None
        if settings.youtube_api_key:
            metadata_source = YouTubeMetadataClient.from_settings(
                settings, http_client=http_client
            )
        else:
            logger.info("YOUTUBE_API_KEY not set, channel lookup disabled")

        return cls(
            settings=settings,
            transcripts=TranscriptAcquirer.from_settings(settings, http_client=http_client),
            summary_service=SummaryStreamClient.from_settings(settings, http_client=http_client),
            gate=PersistenceGate(create_store(settings)),
            metadata_source=metadata_source,
            http_client=http_client,
        )

    def coordinator_factory(self) -> CoordinatorFactory:
        """Factory creating coordinators wired to these services."""

        def create(progress_callback: ProgressCallback) -> ProcessingCoordinator:
            return ProcessingCoordinator(
                transcripts=self.transcripts,
                summary_service=self.summary_service,
                gate=self.gate,
                settings=self.settings,
                metadata_source=self.metadata_source,
                progress_callback=progress_callback,
            )

        return create

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        if self.http_client is not None:
            await self.http_client.aclose()


class SessionManager:
    """
    Manager for per-session coordinators with WebSocket broadcasting.

    Sessions live in memory. Messages pushed to subscribers:
        {"type": "state", "job": {...}}             after every state change
        {"type": "chunk", "video_id": "...", "delta": "..."}  while streaming

    Example:
        manager = SessionManager(services.coordinator_factory())
        queue = manager.subscribe("tab-1")
        job = await manager.submit("tab-1", "dQw4w9WgXcQ")
        message = await queue.get()
    """

    def __init__(self, coordinator_factory: CoordinatorFactory):
        """
        Initialize session manager.

        Args:
            coordinator_factory: Creates a coordinator given its progress
                callback
        """
        self._factory = coordinator_factory
        self._coordinators: dict[str, ProcessingCoordinator] = {}
        self._subscribers: dict[str, list[asyncio.Queue]] = {}

    def _coordinator_for(self, session_id: str) -> ProcessingCoordinator:
        coordinator = self._coordinators.get(session_id)
        if coordinator is None:

            async def on_progress(job: ProcessingJob, delta: str | None) -> None:
                await self._publish(session_id, job, delta)

            coordinator = self._factory(on_progress)
            self._coordinators[session_id] = coordinator
            logger.debug(f"Created coordinator for session {session_id}")
        return coordinator

    def get_job(self, session_id: str) -> ProcessingJob | None:
        """
        Get the current job of a session.

        Args:
            session_id: Session identifier

        Returns:
            ProcessingJob or None if the session has no job
        """
        coordinator = self._coordinators.get(session_id)
        return coordinator.job if coordinator else None

    def list_sessions(self) -> list[str]:
        """List session ids that have a coordinator."""
        return list(self._coordinators)

    async def submit(
        self,
        session_id: str,
        video_id: str,
        channel_id: str | None = None,
    ) -> ProcessingJob:
        """
        Submit a video for a session.

        Args:
            session_id: Session identifier
            video_id: Normalized YouTube video ID
            channel_id: Optional channel to store with the summary

        Returns:
            The session's current job
        """
        coordinator = self._coordinator_for(session_id)
        job = await coordinator.submit(video_id, channel_id=channel_id)
        logger.info(f"Session {session_id}: {job.video_id} is {job.step.value}")
        return job

    async def wait(self, session_id: str) -> None:
        """Wait for a session's pipeline and pending saves."""
        coordinator = self._coordinators.get(session_id)
        if coordinator is not None:
            await coordinator.wait()

    async def discard(self, session_id: str) -> bool:
        """
        Cancel a session's work and drop its coordinator.

        Returns:
            True if the session existed
        """
        coordinator = self._coordinators.pop(session_id, None)
        if coordinator is None:
            return False
        await coordinator.discard()
        logger.info(f"Session {session_id} discarded")
        return True

    async def close(self) -> None:
        """Close all sessions, letting pending saves finish."""
        coordinators = list(self._coordinators.values())
        self._coordinators.clear()
        for coordinator in coordinators:
            await coordinator.aclose()

    def subscribe(self, session_id: str) -> asyncio.Queue:
        """
        Subscribe to session updates.

        Args:
            session_id: Session identifier

        Returns:
            Queue that will receive update messages
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(session_id, []).append(queue)
        logger.debug(f"Client subscribed to session {session_id}")
        return queue

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        """
        Unsubscribe from session updates.

        Args:
            session_id: Session identifier
            queue: Queue to remove
        """
        queues = self._subscribers.get(session_id)
        if queues and queue in queues:
            queues.remove(queue)
            logger.debug(f"Client unsubscribed from session {session_id}")
        if not queues:
            self._subscribers.pop(session_id, None)

    async def _publish(
        self,
        session_id: str,
        job: ProcessingJob,
        delta: str | None,
    ) -> None:
        if delta is not None:
            message = {"type": "chunk", "video_id": job.video_id, "delta": delta}
        else:
            message = {"type": "state", "job": job.model_dump(mode="json")}
        await self._broadcast(session_id, message)

    async def _broadcast(self, session_id: str, message: dict) -> None:
        """
        Broadcast message to all subscribers of a session.

        Args:
            session_id: Session identifier
            message: Message to broadcast
        """
        for queue in self._subscribers.get(session_id, []):
            try:
                await queue.put(message)
            except Exception as e:
                logger.warning(f"Failed to broadcast to subscriber: {e}")


_services: PipelineServices | None = None
_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get global session manager, creating it on first use."""
    global _services, _session_manager
    if _session_manager is None:
        _services = PipelineServices.from_settings(get_settings())
        _session_manager = SessionManager(_services.coordinator_factory())
    return _session_manager


def get_pipeline_services() -> PipelineServices:
    """Get the services behind the global session manager."""
    get_session_manager()
    return _services


async def shutdown_session_manager() -> None:
    """Close the global session manager and its HTTP client."""
    global _services, _session_manager
    if _session_manager is not None:
        await _session_manager.close()
    if _services is not None:
        await _services.aclose()
    _services = None
    _session_manager = None
