"""
analysis_session.py — One logical submission context: a held file, at most
one active run, and the last result.

The session is the caller the pipeline expects. It runs the intake
validator, tells the observer about rejections, and never hands a rejected
file to the pipeline. It also decides what happens when a new run starts
while one is in flight:

  ReentryPolicy.CANCEL_PREVIOUS  the new run supersedes the old one (default)
  ReentryPolicy.REJECT           begin() raises RunInProgress

Run tokens come from a generation counter. Only the run whose token equals
`_active_token` may advance; cancel(), clear(), submit() and a superseding
begin() all move the token on, so a stale run stops at its next stage and
never produces a result.

USAGE
─────
    session = AnalysisSession(observer=my_toaster)
    if session.submit(file).accepted:
        result = await session.start()   # None if cancelled meanwhile
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Protocol

from vidguard.ai.analysis_pipeline import AnalysisPipeline, analysis_pipeline
from vidguard.core.config import settings
from vidguard.models.detection import (
    CompletedEvent,
    DetectionResult,
    FileDescriptor,
    PipelineEvent,
    ProgressEvent,
    RejectionReason,
    ValidationOutcome,
)
from vidguard.services.intake_validator import validate

logger = logging.getLogger(__name__)


class ReentryPolicy(str, Enum):
    CANCEL_PREVIOUS = "cancel_previous"
    REJECT = "reject"


class SessionError(Exception):
    """Base class for misuse of an AnalysisSession."""


class NoFileSubmitted(SessionError):
    """start()/begin() called without an accepted file."""


class RunInProgress(SessionError):
    """A run is already active and the policy is REJECT."""


class AnalysisObserver(Protocol):
    def on_rejected(self, reason: RejectionReason) -> None: ...
    def on_progress(self, percent: int, label: str) -> None: ...
    def on_completed(self, result: DetectionResult) -> None: ...


class LoggingObserver:
    """Default observer: writes every notification to the log."""

    def __init__(self, name: str = "session"):
        self.name = name

    def on_rejected(self, reason: RejectionReason) -> None:
        logger.warning("[%s] file rejected: %s", self.name, reason.value)

    def on_progress(self, percent: int, label: str) -> None:
        logger.debug("[%s] %d%% %s", self.name, percent, label)

    def on_completed(self, result: DetectionResult) -> None:
        logger.info(
            "[%s] verdict: is_deepfake=%s confidence=%.1f",
            self.name, result.is_deepfake, result.confidence,
        )


class AnalysisSession:
    def __init__(
        self,
        pipeline: AnalysisPipeline | None = None,
        observer: AnalysisObserver | None = None,
        policy: ReentryPolicy | None = None,
    ):
        self.pipeline = pipeline or analysis_pipeline
        self.observer: AnalysisObserver = observer or LoggingObserver()
        self.policy = ReentryPolicy(settings.reentry_policy) if policy is None else policy

        self.file: FileDescriptor | None = None
        self.result: DetectionResult | None = None
        self.percent = 0
        self.label: str | None = None

        self._generation = 0
        self._active_token: int | None = None

    # ── State ──────────────────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._active_token is not None

    @property
    def state(self) -> str:
        if self.is_running:
            return "running"
        if self.result is not None:
            return "completed"
        return "idle"

    def is_current(self, token: int) -> bool:
        return token == self._active_token

    def _reset_progress(self) -> None:
        self.result = None
        self.percent = 0
        self.label = None

    # ── Intake ─────────────────────────────────────────────────────────────────

    def submit(self, file: FileDescriptor) -> ValidationOutcome:
        """
        Validate and, if accepted, hold `file` for the next run.

        An accepted file replaces the previous one: any in-flight run is
        cancelled and the previous result is dropped. A rejected file is
        discarded and the session keeps whatever it had.
        """
        outcome = validate(file)
        if not outcome.accepted:
            self.observer.on_rejected(outcome.reason)
            return outcome

        self.cancel()
        self.file = file
        self._reset_progress()
        return outcome

    def clear(self) -> None:
        """Drop the held file and result; abandons any in-flight run."""
        self.cancel()
        self.file = None
        self._reset_progress()

    def cancel(self) -> bool:
        """Abandon the active run, if any. Returns True when a run was cancelled."""
        if self._active_token is None:
            return False
        logger.info("Cancelling run %d", self._active_token)
        self._active_token = None
        return True

    def release(self, token: int) -> None:
        """Give up `token` if it is still the active run. Stale tokens are ignored."""
        if self.is_current(token):
            logger.info("Releasing abandoned run %d", token)
            self._active_token = None

    # ── Runs ───────────────────────────────────────────────────────────────────

    def begin(self) -> int:
        """
        Claim a new run token for the held file, applying the re-entry policy.

        Split from stream() so callers (e.g. the HTTP layer) can surface
        NoFileSubmitted / RunInProgress before any event is produced.
        """
        if self.file is None:
            raise NoFileSubmitted("no accepted file has been submitted")
        if self.is_running:
            if self.policy is ReentryPolicy.REJECT:
                raise RunInProgress(f"run {self._active_token} is still in progress")
            self.cancel()

        self._generation += 1
        self._active_token = self._generation
        self._reset_progress()
        return self._active_token

    async def stream(self, token: int) -> AsyncIterator[PipelineEvent]:
        """Drive the run identified by `token`, notifying the observer as it goes."""
        file = self.file
        if file is None or not self.is_current(token):
            return
        try:
            async for event in self.pipeline.run(file, run_token=token, is_current=self.is_current):
                if isinstance(event, ProgressEvent):
                    self.percent = event.percent
                    self.label = event.label
                    self.observer.on_progress(event.percent, event.label)
                elif isinstance(event, CompletedEvent):
                    self.result = event.result
                    self._active_token = None
                    self.observer.on_completed(event.result)
                yield event
        finally:
            # Consumer walked away mid-run (e.g. client disconnect).
            self.release(token)

    async def start(self) -> DetectionResult | None:
        """Run the held file to completion. Returns None if the run was abandoned."""
        token = self.begin()
        async for event in self.stream(token):
            if isinstance(event, CompletedEvent):
                return event.result
        return None
