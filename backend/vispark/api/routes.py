"""
HTTP API routes for video summarization.

Provides endpoints for:
- Submitting a video for a session
- Querying and discarding a session's job
- Reading saved summaries
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from vispark.models.schemas import ProcessingJob, SavedSummary, SubmitRequest
from vispark.services.session_manager import (
    PipelineServices,
    SessionManager,
    get_pipeline_services,
    get_session_manager,
)
from vispark.utils.youtube_utils import InvalidVideoIdError, normalize_video_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["summaries"])


@router.post("/sessions/{session_id}/submit", response_model=ProcessingJob)
async def submit_video(
    session_id: str,
    request: SubmitRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> ProcessingJob:
    """
    Submit a video for summarization.

    Supersedes whatever the session was processing. Use WebSocket
    /ws/{session_id} to receive streaming updates.

    Args:
        session_id: Client session identifier
        request: SubmitRequest with video ID or URL

    Returns:
        The session's current job

    Raises:
        HTTPException: 400 if video_id is not a YouTube ID or URL
    """
    try:
        video_id = normalize_video_id(request.video_id)
    except InvalidVideoIdError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return await manager.submit(session_id, video_id, channel_id=request.channel_id)


@router.get("/sessions/{session_id}", response_model=ProcessingJob)
async def get_session_job(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> ProcessingJob:
    """
    Get the current job of a session.

    Raises:
        HTTPException: 404 if the session has no job
    """
    job = manager.get_job(session_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"No job for session: {session_id}")
    return job


@router.delete("/sessions/{session_id}")
async def discard_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> dict:
    """
    Discard a session (client navigated away).

    In-flight work is cancelled; completed summaries stay saved.

    Raises:
        HTTPException: 404 if the session does not exist
    """
    if not await manager.discard(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return {"status": "discarded", "session_id": session_id}


@router.get("/summaries/{video_id}", response_model=SavedSummary)
async def get_saved_summary(
    video_id: str,
    services: PipelineServices = Depends(get_pipeline_services),
) -> SavedSummary:
    """
    Get the saved summary for a video.

    Raises:
        HTTPException: 400 for an invalid video ID, 404 if not saved
    """
    try:
        video_id = normalize_video_id(video_id)
    except InvalidVideoIdError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    summary = await services.gate.find_existing(video_id)
    if summary is None:
        raise HTTPException(status_code=404, detail=f"No saved summary for: {video_id}")
    return summary
