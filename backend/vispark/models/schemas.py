"""
Pydantic models for the video processing pipeline.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from vispark.utils.json_utils import extract_bullets


class Step(str, Enum):
    """Step of a processing job."""
    IDLE = "idle"
    GATHERING = "gathering"
    SUMMARIZING = "summarizing"
    COMPLETE = "complete"
    ERROR = "error"


class ErrorStep(str, Enum):
    """Stage that produced a job error."""
    GATHERING = "gathering"
    SUMMARIZING = "summarizing"


class TranscriptSegment(BaseModel):
    """Single timed unit of transcript text."""

    text: str
    offset_ms: float | None = None
    duration_ms: float | None = None


class Transcript(BaseModel):
    """Transcript fetched for a video."""

    video_id: str
    segments: list[TranscriptSegment]
    language: str | None = None

    @computed_field
    @property
    def text(self) -> str:
        """Normalized text: trimmed non-empty segments joined by newlines."""
        return "\n".join(
            seg.text.strip() for seg in self.segments if seg.text.strip()
        )


class VideoMetadata(BaseModel):
    """Video details from the YouTube Data API."""

    video_id: str
    title: str | None = None
    channel_id: str | None = None
    channel_title: str | None = None
    published_at: datetime | None = None
    duration: str | None = None  # ISO 8601 duration, e.g. "PT12M3S"
    default_language: str | None = None
    thumbnails: dict[str, str] = Field(default_factory=dict)


class SavedSummary(BaseModel):
    """Summary persisted for a video."""

    video_id: str
    channel_id: str | None = None
    summary_text: str
    created_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def bullets(self) -> list[str]:
        """Summary split into bullet points."""
        return extract_bullets(self.summary_text)


class ProcessingJob(BaseModel):
    """
    Unit of work for one video identifier.

    Owned and mutated only by ProcessingCoordinator. A job is replaced,
    never reset, when another video is submitted.

    Invariants:
        - error_step is set if and only if step == ERROR
        - streaming_buffer is cleared once final_summary is set
        - generation_token never changes for a given job; newer jobs
          always carry a larger token
    """

    video_id: str = Field(frozen=True)
    generation_token: int = Field(frozen=True)
    step: Step = Step.IDLE
    error_step: ErrorStep | None = None
    transcript_text: str = ""
    final_summary: str | None = None
    streaming_buffer: str = ""
    error_message: str | None = None
    channel_id: str | None = None
    metadata: VideoMetadata | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @computed_field
    @property
    def bullets(self) -> list[str]:
        """Final summary split into bullet points (empty until complete)."""
        return extract_bullets(self.final_summary)

    @computed_field
    @property
    def is_generating(self) -> bool:
        """True while the pipeline is fetching or summarizing."""
        return self.step in (Step.GATHERING, Step.SUMMARIZING)


# ═══════════════════════════════════════════════════════════════════════════
# API Models
# ═══════════════════════════════════════════════════════════════════════════


class SubmitRequest(BaseModel):
    """Request to process a video."""

    video_id: str = Field(..., min_length=1, description="Video ID or YouTube URL")
    channel_id: str | None = Field(
        default=None, description="Channel to associate with the saved summary"
    )


class ServicesStatus(BaseModel):
    """Availability of external collaborators."""

    transcript: bool
    summary: bool
    transcript_backend: str
    summary_url: str
    metadata_enabled: bool
