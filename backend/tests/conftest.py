"""
Shared fixtures and fakes for tests.

The fakes stand in for the external collaborators (transcript source,
summary service, summary store) so pipeline tests run without network.
"""

import asyncio
import json
from contextlib import asynccontextmanager

import pytest

from vispark.config import Settings
from vispark.models.schemas import SavedSummary, TranscriptSegment
from vispark.services.coordinator import ProcessingCoordinator
from vispark.services.persistence import InMemorySummaryStore, PersistenceGate
from vispark.services.retry import RetryExecutor
from vispark.services.transcript import TranscriptAcquirer

VIDEO_A = "dQw4w9WgXcQ"
VIDEO_B = "9bZkp7q19f0"

# Marker inside a stream script: pause until the test releases the stream
BLOCK = object()


def content_line(text: str) -> bytes:
    return (json.dumps({"choices": [{"delta": {"content": text}}]}, ensure_ascii=False) + "\n").encode("utf-8")


def stop_line() -> bytes:
    return (json.dumps({"choices": [{"finish_reason": "stop"}]}) + "\n").encode()


def stream_of(*texts: str, stop: bool = True) -> list:
    """Stream script emitting one content record per text."""
    script: list = [content_line(t) for t in texts]
    if stop:
        script.append(stop_line())
    return script


class FakeTranscriptSource:
    """Transcript source returning scripted results in call order."""

    def __init__(self, *results):
        self.results = list(results) or [[TranscriptSegment(text="Some transcript")]]
        self.calls: list[tuple[str, str | None]] = []
        self.release = asyncio.Event()
        self.block = False

    async def get_transcript(self, video_id, language=None):
        self.calls.append((video_id, language))
        if self.block:
            await self.release.wait()
        result = self.results[min(len(self.calls), len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


class FakeSummaryService:
    """
    Summary service replaying one stream script per call.

    Script items are bytes (yielded), exceptions (raised as read
    errors) or BLOCK. The last script repeats for further calls.
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts) or [stream_of("Summary")]
        self.calls: list[str] = []
        self.opened = asyncio.Event()
        self.release = asyncio.Event()
        self.closed = 0

    async def _body(self, script):
        for item in script:
            if item is BLOCK:
                await self.release.wait()
            elif isinstance(item, Exception):
                raise item
            else:
                yield item

    @asynccontextmanager
    async def stream_summary(self, transcript_text):
        self.calls.append(transcript_text)
        script = self.scripts[min(len(self.calls), len(self.scripts)) - 1]
        if isinstance(script, Exception):
            raise script
        self.opened.set()
        try:
            yield self._body(script)
        finally:
            self.closed += 1


class FailingStore(InMemorySummaryStore):
    """Store whose writes always fail."""

    async def save_summary(self, summary: SavedSummary) -> None:
        raise OSError("disk full")


class FakeMetadataSource:
    def __init__(self, metadata=None, error: Exception | None = None):
        self.metadata = metadata
        self.error = error
        self.calls: list[str] = []

    async def get_metadata(self, video_id):
        self.calls.append(video_id)
        if self.error is not None:
            raise self.error
        return self.metadata


class SleepRecorder:
    """Async sleep replacement recording requested delays (seconds)."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        summary_store="memory",
        transcript_max_retries=2,
        summary_max_retries=3,
        metadata_max_retries=1,
    )


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def store():
    return InMemorySummaryStore()


@pytest.fixture
def gate(store):
    return PersistenceGate(store)


@pytest.fixture
def make_coordinator(settings, sleep, gate):
    """
    Build a coordinator around fakes.

    Returns a factory; the coordinator records (step, delta) for every
    progress notification in coordinator.events.
    """

    def factory(
        source=None,
        service=None,
        metadata_source=None,
        gate_override=None,
        progress_callback=None,
    ) -> ProcessingCoordinator:
        events: list[tuple] = []

        async def record(job, delta):
            events.append((job.video_id, job.step, delta))

        coordinator = ProcessingCoordinator(
            transcripts=TranscriptAcquirer(source or FakeTranscriptSource()),
            summary_service=service or FakeSummaryService(),
            gate=gate_override or gate,
            settings=settings,
            metadata_source=metadata_source,
            progress_callback=progress_callback or record,
            retry=RetryExecutor(sleep=sleep),
        )
        coordinator.events = events
        return coordinator

    return factory
