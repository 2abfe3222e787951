"""
Pydantic models for the video processing pipeline.
"""

from vispark.models.schemas import (
    ErrorStep,
    ProcessingJob,
    SavedSummary,
    ServicesStatus,
    Step,
    SubmitRequest,
    Transcript,
    TranscriptSegment,
    VideoMetadata,
)

__all__ = [
    "ErrorStep",
    "ProcessingJob",
    "SavedSummary",
    "ServicesStatus",
    "Step",
    "SubmitRequest",
    "Transcript",
    "TranscriptSegment",
    "VideoMetadata",
]
