"""
pytest configuration and shared fixtures for the VidGuard tests.

Key concern: tests must not sit through real stage delays (7 × 0.8 s per run).
STAGE_DELAY_SECONDS=0 is set before the app is imported so Settings picks it
up; the pipeline then yields to the event loop once per stage without waiting.

Session and rate-limit state live at module level, so both are reset around
every test.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STAGE_DELAY_SECONDS", "0")


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh session table and rate-limit counters for every test."""
    from vidguard.core.rate_limit import limiter
    from vidguard.routes.detector import reset_sessions

    reset_sessions()
    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass  # Some storage backends don't support reset — safe to ignore.

    yield

    reset_sessions()


@pytest.fixture()
async def client():
    """
    HTTPX async test client wired to the FastAPI app.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from vidguard.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def instant_clock(_delay: float) -> None:
    """Clock that never suspends: every stage fires immediately."""
    return None


class RecordingObserver:
    """Captures every notification an AnalysisSession sends."""

    def __init__(self):
        self.rejected = []
        self.progress = []
        self.completed = []

    def on_rejected(self, reason):
        self.rejected.append(reason)

    def on_progress(self, percent, label):
        self.progress.append((percent, label))

    def on_completed(self, result):
        self.completed.append(result)


@pytest.fixture()
def observer():
    return RecordingObserver()
