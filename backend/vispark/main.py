"""
FastAPI application for streaming video summaries.

HTTP routes submit and inspect per-tab sessions; /ws/{session_id}
streams summary chunks and job state to the browser.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vispark import __version__
from vispark.api import routes, websocket
from vispark.config import get_settings
from vispark.logging_config import setup_logging
from vispark.models.schemas import ServicesStatus
from vispark.services.ai_clients import HttpServiceClient
from vispark.services.session_manager import (
    PipelineServices,
    get_pipeline_services,
    shutdown_session_manager,
)

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the active configuration; close all sessions on shutdown."""
    logger.info(f"Starting Vispark API {__version__} (log level {settings.log_level})")
    logger.info(
        f"Transcript backend: {settings.transcript_backend}, "
        f"summary endpoint: {settings.summary_url}"
    )
    logger.info(f"Summary store: {settings.summary_store} ({settings.summaries_dir})")

    yield

    logger.info("Shutting down Vispark API")
    await shutdown_session_manager()


app = FastAPI(
    title="Vispark API",
    description="Streaming summaries of YouTube videos",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)
app.include_router(websocket.router)


@app.get("/health")
async def health_check() -> dict:
    """Liveness check."""
    return {"status": "ok"}


async def _reachable(client: object) -> bool:
    # Local sources (youtube-transcript-api, test fakes) have no endpoint to check
    if isinstance(client, HttpServiceClient):
        return await client.check_service()
    return True


@app.get("/health/services", response_model=ServicesStatus)
async def services_health(
    services: PipelineServices = Depends(get_pipeline_services),
) -> ServicesStatus:
    """
    Check external services availability.

    Returns:
        Reachability of the transcript and summary services
    """
    transcript_ok, summary_ok = await asyncio.gather(
        _reachable(services.transcripts.source),
        _reachable(services.summary_service),
    )
    return ServicesStatus(
        transcript=transcript_ok,
        summary=summary_ok,
        transcript_backend=services.settings.transcript_backend,
        summary_url=services.settings.summary_url,
        metadata_enabled=services.metadata_source is not None,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vispark.main:app",
        host="0.0.0.0",
        port=8801,
        reload=True,
    )
