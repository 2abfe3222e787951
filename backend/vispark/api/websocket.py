"""
WebSocket handler for live summary updates.

Streams job state changes and summary chunks for a session.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from vispark.services.session_manager import SessionManager, get_session_manager

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

HEARTBEAT_INTERVAL = 30.0


@router.websocket("/ws/{session_id}")
async def session_updates_websocket(
    websocket: WebSocket,
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    """
    WebSocket endpoint for real-time session updates.

    The connection stays open across submits, so one socket follows a
    session through every video it processes. Messages:
        {"type": "state", "job": {...}}     current job snapshot
        {"type": "chunk", "video_id": "...", "delta": "..."}
        {"type": "heartbeat"}               every 30 s without updates

    Example client (Python):
        async with websockets.connect(f"ws://localhost:8801/ws/{session_id}") as ws:
            async for message in ws:
                data = json.loads(message)
                if data["type"] == "chunk":
                    print(data["delta"], end="")

    Args:
        websocket: WebSocket connection
        session_id: Session to follow
    """
    # Subscribed before the handshake completes
    queue = manager.subscribe(session_id)

    try:
        await websocket.accept()
        logger.info(f"WebSocket connected for session {session_id}")

        # Send current job state immediately
        job = manager.get_job(session_id)
        if job is not None:
            await websocket.send_json({"type": "state", "job": job.model_dump(mode="json")})

        while True:
            try:
                message = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_INTERVAL)
                await websocket.send_json(message)

            except asyncio.TimeoutError:
                # Send heartbeat to keep connection alive
                await websocket.send_json({"type": "heartbeat"})

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for session {session_id}")
    except Exception as e:
        logger.error(f"WebSocket error for session {session_id}: {e}")
    finally:
        manager.unsubscribe(session_id, queue)
        logger.info(f"WebSocket closed for session {session_id}")
