"""
detection.py — Pydantic models for the video deepfake detection workflow.

Covers the full lifecycle of one submission:
  - FileDescriptor       what the upload collaborator hands us (never mutated)
  - ValidationOutcome    accept / reject verdict from the intake validator
  - PipelineStage        one fixed step of the progress sequence
  - FrameAnalysis        per-frame detail inside a result
  - DetectionResult      the single record produced by a completed run
  - VerdictSummary       user-facing notification text derived from a result

Events emitted while a run is in flight (ProgressEvent, CompletedEvent) and
the HTTP request/response shapes live here too so routes and services share
one vocabulary.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ── Intake ─────────────────────────────────────────────────────────────────────

class FileDescriptor(BaseModel):
    """Name, size and MIME type of a candidate video. Immutable once submitted."""

    model_config = ConfigDict(frozen=True)

    name: str       = Field(..., min_length=1, description="Original filename")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")
    mime_type: str  = Field(..., description="Browser-reported MIME type, e.g. video/mp4")


class RejectionReason(str, Enum):
    NOT_A_VIDEO = "not_a_video"
    TOO_LARGE = "too_large"


class ValidationOutcome(BaseModel):
    """Accepted, or Rejected with exactly one reason."""

    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: RejectionReason | None = None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason)


# ── Pipeline ───────────────────────────────────────────────────────────────────

class PipelineStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    percent: int = Field(..., ge=0, le=100)
    label: str


class FrameAnalysis(BaseModel):
    """Simulated verdict for one sampled frame."""

    model_config = ConfigDict(frozen=True)

    frame_index: int         = Field(..., ge=0)
    timestamp_seconds: float = Field(..., ge=0.0)
    confidence: float        = Field(..., ge=0.0, le=100.0)
    anomalies: list[str]     = Field(default_factory=list, max_length=3)

    @property
    def is_suspicious(self) -> bool:
        # Frames above 70% are highlighted in the results view.
        return self.confidence > 70.0


class DetectionResult(BaseModel):
    """Outcome of one completed run. Replaced, never mutated, by the next run."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    confidence: float                    = Field(..., ge=0.0, le=100.0)
    is_deepfake: bool
    frame_analysis: list[FrameAnalysis]  = Field(..., min_length=5, max_length=5)
    processing_time_seconds: float
    model_used: str


class VerdictSummary(BaseModel):
    """Notification text for the presentation layer (toast + result banner)."""

    title: str        # "Deepfake Detected" | "Video Appears Authentic"
    description: str  # "Analysis complete with 87.3% confidence"
    variant: Literal["destructive", "default"]
    headline: str     # "DEEPFAKE DETECTED" | "AUTHENTIC VIDEO"


# ── Run events ─────────────────────────────────────────────────────────────────

class ProgressEvent(BaseModel):
    kind: Literal["progress"] = "progress"
    run_token: int
    percent: int
    label: str


class CompletedEvent(BaseModel):
    kind: Literal["completed"] = "completed"
    run_token: int
    result: DetectionResult
    summary: VerdictSummary


PipelineEvent = ProgressEvent | CompletedEvent


# ── Response models ────────────────────────────────────────────────────────────

class ValidationResponse(BaseModel):
    """Result of POST /validate."""

    accepted: bool
    reason: RejectionReason | None = None
    size_label: str  # e.g. "4.77 MB"


class AnalysisResponse(BaseModel):
    """Result of a one-shot POST /analyze."""

    file: FileDescriptor
    size_label: str
    stages: list[PipelineStage]   # progress steps observed, in order
    result: DetectionResult
    summary: VerdictSummary


class SessionStateResponse(BaseModel):
    """Snapshot of one named analysis session."""

    session_id: str
    state: Literal["idle", "running", "completed"]
    file: FileDescriptor | None = None
    percent: int = 0
    label: str | None = None
    result: DetectionResult | None = None
