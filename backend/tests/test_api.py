"""
Tests for HTTP and WebSocket endpoints.
"""

import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from conftest import VIDEO_A, VIDEO_B, FakeSummaryService, FakeTranscriptSource, stream_of
from vispark.main import app
from vispark.models.schemas import SavedSummary
from vispark.services.session_manager import (
    PipelineServices,
    SessionManager,
    get_pipeline_services,
    get_session_manager,
)
from vispark.services.transcript import TranscriptAcquirer


@pytest.fixture
def services(settings, gate):
    return PipelineServices(
        settings=settings,
        transcripts=TranscriptAcquirer(FakeTranscriptSource()),
        summary_service=FakeSummaryService(stream_of("Hello", " world")),
        gate=gate,
    )


@pytest.fixture
def manager(services):
    return SessionManager(services.coordinator_factory())


@pytest.fixture
def client(services, manager):
    app.dependency_overrides[get_session_manager] = lambda: manager
    app.dependency_overrides[get_pipeline_services] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def wait_for_step(client, session_id, step, attempts=100):
    """Poll a session until its job reaches step."""
    job = None
    for _ in range(attempts):
        response = client.get(f"/api/sessions/{session_id}")
        if response.status_code == 200:
            job = response.json()
            if job["step"] == step:
                return job
        time.sleep(0.02)
    raise AssertionError(f"session {session_id} never reached {step}: {job}")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_services_health_with_local_sources(client, settings):
    response = client.get("/health/services")

    assert response.status_code == 200
    assert response.json() == {
        "transcript": True,
        "summary": True,
        "transcript_backend": settings.transcript_backend,
        "summary_url": settings.summary_url,
        "metadata_enabled": False,
    }


def test_submit_runs_pipeline(client):
    response = client.post(
        "/api/sessions/tab-1/submit",
        json={"video_id": f"https://youtu.be/{VIDEO_A}", "channel_id": "UC1"},
    )

    assert response.status_code == 200
    assert response.json()["video_id"] == VIDEO_A

    job = wait_for_step(client, "tab-1", "complete")
    assert job["final_summary"] == "Hello world"
    assert job["bullets"] == ["Hello world"]
    assert job["is_generating"] is False
    assert job["error_step"] is None


def test_submit_rejects_invalid_video(client):
    response = client.post("/api/sessions/tab-1/submit", json={"video_id": "https://example.com/x"})

    assert response.status_code == 400


def test_submit_requires_video_id(client):
    response = client.post("/api/sessions/tab-1/submit", json={"video_id": ""})

    assert response.status_code == 422


def test_unknown_session_is_404(client):
    assert client.get("/api/sessions/nope").status_code == 404
    assert client.delete("/api/sessions/nope").status_code == 404


def test_discard_session(client, manager):
    client.post("/api/sessions/tab-1/submit", json={"video_id": VIDEO_A})
    wait_for_step(client, "tab-1", "complete")

    response = client.delete("/api/sessions/tab-1")

    assert response.status_code == 200
    assert response.json()["status"] == "discarded"
    assert client.get("/api/sessions/tab-1").status_code == 404
    assert manager.list_sessions() == []


def test_sessions_are_independent(client):
    client.post("/api/sessions/tab-1/submit", json={"video_id": VIDEO_A})
    client.post("/api/sessions/tab-2/submit", json={"video_id": VIDEO_B})

    assert wait_for_step(client, "tab-1", "complete")["video_id"] == VIDEO_A
    assert wait_for_step(client, "tab-2", "complete")["video_id"] == VIDEO_B


def test_saved_summary_endpoint(client, store):
    asyncio.run(store.save_summary(
        SavedSummary(video_id=VIDEO_B, channel_id="UC9", summary_text='{"bullets": ["x"]}')
    ))

    response = client.get(f"/api/summaries/{VIDEO_B}")

    assert response.status_code == 200
    assert response.json()["channel_id"] == "UC9"
    assert response.json()["bullets"] == ["x"]
    assert client.get(f"/api/summaries/{VIDEO_A}").status_code == 404
    assert client.get("/api/summaries/bad").status_code == 400


def test_websocket_streams_updates(client):
    with client.websocket_connect("/ws/tab-1") as ws:
        client.post("/api/sessions/tab-1/submit", json={"video_id": VIDEO_A})

        messages = []
        while True:
            message = ws.receive_json()
            messages.append(message)
            if message["type"] == "state" and message["job"]["step"] == "complete":
                break

    steps = [m["job"]["step"] for m in messages if m["type"] == "state"]
    deltas = [m["delta"] for m in messages if m["type"] == "chunk"]

    assert steps[0] == "idle"
    assert "gathering" in steps
    assert "summarizing" in steps
    assert steps[-1] == "complete"
    assert deltas == ["Hello", " world"]
    assert messages[-1]["job"]["final_summary"] == "Hello world"


def test_websocket_sends_current_state_on_connect(client):
    client.post("/api/sessions/tab-1/submit", json={"video_id": VIDEO_A})
    wait_for_step(client, "tab-1", "complete")

    with client.websocket_connect("/ws/tab-1") as ws:
        message = ws.receive_json()

    assert message["type"] == "state"
    assert message["job"]["step"] == "complete"
