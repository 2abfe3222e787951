"""Services for transcript acquisition, summary streaming and persistence."""

from vispark.services.coordinator import (
    ProcessingCoordinator,
    SummaryStreamError,
)
from vispark.services.persistence import (
    InMemorySummaryStore,
    JsonFileSummaryStore,
    PersistenceGate,
    SummaryStore,
)
from vispark.services.retry import RetryExecutor
from vispark.services.stream_parser import StreamSummaryParser
from vispark.services.transcript import TranscriptAcquirer, TranscriptUnavailableError

__all__ = [
    "ProcessingCoordinator",
    "SummaryStreamError",
    "PersistenceGate",
    "SummaryStore",
    "InMemorySummaryStore",
    "JsonFileSummaryStore",
    "RetryExecutor",
    "StreamSummaryParser",
    "TranscriptAcquirer",
    "TranscriptUnavailableError",
]
