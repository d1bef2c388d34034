"""
detector.py — Video deepfake detection endpoints.

Routes:
  POST   /api/v1/detector/validate                — intake check only
  POST   /api/v1/detector/analyze                 — validate + full run, one response
  POST   /api/v1/detector/sessions/{id}/file      — submit a file into a named session
  POST   /api/v1/detector/sessions/{id}/run       — stream the run as NDJSON events
  GET    /api/v1/detector/sessions/{id}           — session state snapshot
  DELETE /api/v1/detector/sessions/{id}           — clear session, cancels any run

HOW THE DATA FLOWS
──────────────────
1. The upload UI reads name / size / type off the browser File object and
   posts them as a FileDescriptor. The video bytes never leave the browser.
2. The intake validator accepts or rejects. Rejections come back as 422 with
   the reason code, so the UI can show its "Invalid file type" / "File too
   large" toast.
3. On acceptance the analysis pipeline steps through seven progress stages
   (10 → 100%) and synthesises one DetectionResult.
4. /analyze returns everything at once; the session routes let the UI render
   progress live and cancel by clearing the session.

Sessions are kept in process memory. One uvicorn worker = one session table.
"""

import logging
from collections import OrderedDict

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from vidguard.ai.analysis_pipeline import analysis_pipeline
from vidguard.core.config import settings
from vidguard.core.rate_limit import limiter
from vidguard.models.detection import (
    AnalysisResponse,
    FileDescriptor,
    SessionStateResponse,
    ValidationOutcome,
    ValidationResponse,
)
from vidguard.services.analysis_session import (
    AnalysisSession,
    LoggingObserver,
    NoFileSubmitted,
    RunInProgress,
)
from vidguard.services.intake_validator import format_file_size, rejection_message, validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/detector", tags=["detector"])

# Least recently used first. Bounded by settings.max_sessions.
_sessions: "OrderedDict[str, AnalysisSession]" = OrderedDict()


# ── Helpers ────────────────────────────────────────────────────────────────────

def _reject(outcome: ValidationOutcome) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"reason": outcome.reason.value, "message": rejection_message(outcome.reason)},
    )


def _get_session(session_id: str) -> AnalysisSession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    _sessions.move_to_end(session_id)
    return session


def _register_session(session_id: str) -> AnalysisSession:
    """Create a session, evicting the least recently used ones past the cap."""
    session = AnalysisSession(observer=LoggingObserver(session_id))
    _sessions[session_id] = session
    while len(_sessions) > settings.max_sessions:
        evicted_id, evicted = _sessions.popitem(last=False)
        logger.info("Evicting session %s (table full)", evicted_id)
        evicted.clear()
    return session


def _snapshot(session_id: str, session: AnalysisSession) -> SessionStateResponse:
    return SessionStateResponse(
        session_id=session_id,
        state=session.state,
        file=session.file,
        percent=session.percent,
        label=session.label,
        result=session.result,
    )


def reset_sessions() -> None:
    """Cancel and forget every session (used by tests and on shutdown)."""
    for session in _sessions.values():
        session.clear()
    _sessions.clear()


# ── One-shot endpoints ─────────────────────────────────────────────────────────

@router.post("/validate", response_model=ValidationResponse, status_code=200)
@limiter.limit("60/minute")
async def validate_file(request: Request, payload: FileDescriptor):
    """Check a file descriptor against the type and size policy. Never starts a run."""
    outcome = validate(payload)
    return ValidationResponse(
        accepted=outcome.accepted,
        reason=outcome.reason,
        size_label=format_file_size(payload.size_bytes),
    )


@router.post("/analyze", response_model=AnalysisResponse, status_code=200)
@limiter.limit("20/minute")
async def analyze(request: Request, payload: FileDescriptor):
    """
    Validate the file and, if accepted, run the full staged analysis.

    Blocks for the whole run (seven stage delays). Returns the observed
    stages in order alongside the result and its summary.
    """
    outcome = validate(payload)
    if not outcome.accepted:
        logger.warning("Rejected %s: %s", payload.name, outcome.reason.value)
        raise _reject(outcome)

    stages, completed = await analysis_pipeline.run_to_completion(payload)
    return AnalysisResponse(
        file=payload,
        size_label=format_file_size(payload.size_bytes),
        stages=stages,
        result=completed.result,
        summary=completed.summary,
    )


# ── Session endpoints ──────────────────────────────────────────────────────────

@router.post("/sessions/{session_id}/file", response_model=SessionStateResponse)
@limiter.limit("60/minute")
async def submit_file(request: Request, session_id: str, payload: FileDescriptor):
    """
    Submit a file into a session, replacing (and cancelling) whatever it held.

    A session is only created once a file has been accepted, so rejected
    submissions never take up a slot in the session table.
    """
    session = _sessions.get(session_id)
    if session is None:
        outcome = validate(payload)
        if not outcome.accepted:
            raise _reject(outcome)
        session = _register_session(session_id)
    else:
        _sessions.move_to_end(session_id)

    outcome = session.submit(payload)
    if not outcome.accepted:
        raise _reject(outcome)
    return _snapshot(session_id, session)


@router.post("/sessions/{session_id}/run")
@limiter.limit("20/minute")
async def run_session(request: Request, session_id: str):
    """
    Start a run for the session's file and stream its events as NDJSON.

    Each line is a ProgressEvent or, last, a CompletedEvent. If the session
    is cleared or superseded mid-run the stream simply ends with no
    completed line.
    """
    session = _get_session(session_id)
    try:
        token = session.begin()
    except (NoFileSubmitted, RunInProgress) as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    async def _ndjson():
        async for event in session.stream(token):
            yield event.model_dump_json() + "\n"

    async def _release():
        # Async so it runs on the event loop rather than Starlette's threadpool.
        session.release(token)

    # The background task runs even if the body is never iterated (client gone
    # before the first chunk), so the token cannot stay claimed.
    return StreamingResponse(
        _ndjson(),
        media_type="application/x-ndjson",
        background=BackgroundTask(_release),
    )


@router.get("/sessions/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str):
    return _snapshot(session_id, _get_session(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def clear_session(session_id: str):
    """Clear the session. An in-flight run stops at its next stage without a result."""
    session = _sessions.pop(session_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    session.clear()
