"""
result_synthesizer.py — Simulated verdict generator for the analysis pipeline.

There is no real model behind this: the synthesizer draws a plausible
DetectionResult from a seeded or OS-seeded random source.

  1. is_deepfake     ~ Bernoulli(deepfake_probability)       (default 0.4)
  2. base confidence ~ U[75, 95) if deepfake, else U[15, 40)
  3. five frames at indices 1, 31, 61, 91, 121 (1.5 s apart), each jittered
     by U[-10, 10) around the base confidence and clamped to [0, 100];
     deepfake frames carry 1–3 anomaly labels, authentic frames none
  4. fixed processing time and model label

Pass `rng=random.Random(seed)` for reproducible output in tests and demos.
"""

from __future__ import annotations

import logging
import random

from vidguard.core.config import settings
from vidguard.models.detection import DetectionResult, FrameAnalysis, VerdictSummary

logger = logging.getLogger(__name__)

FRAME_COUNT = 5
FRAME_STRIDE = 30          # frames between samples
FRAME_INTERVAL_SECONDS = 1.5

ANOMALY_LABELS: tuple[str, ...] = (
    "Facial boundary inconsistencies",
    "Temporal flickering detected",
    "Compression artifacts mismatch",
)

_DEEPFAKE_BAND = (75.0, 95.0)
_AUTHENTIC_BAND = (15.0, 40.0)
_JITTER = 10.0


def _clamp(v: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, float(v)))


class ResultSynthesizer:
    """
    Draws one DetectionResult per call to synthesize().

    Anything left as None is read from settings at call time, so tests can
    flip settings without rebuilding the synthesizer.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        deepfake_probability: float | None = None,
        model_label: str | None = None,
        processing_time_seconds: float | None = None,
    ):
        if rng is None:
            rng = random.Random(settings.synth_seed)
        self._rng = rng
        self._deepfake_probability = deepfake_probability
        self._model_label = model_label
        self._processing_time = processing_time_seconds

    # ── Draws ──────────────────────────────────────────────────────────────────

    def _uniform(self, lo: float, hi: float) -> float:
        # random() is in [0, 1), which keeps the upper bound open.
        return lo + self._rng.random() * (hi - lo)

    def _draw_frame(self, i: int, base: float, is_deepfake: bool) -> FrameAnalysis:
        confidence = _clamp(base + self._uniform(-_JITTER, _JITTER))
        anomalies: list[str] = []
        if is_deepfake:
            k = 1 + int(self._rng.random() * len(ANOMALY_LABELS))
            anomalies = list(ANOMALY_LABELS[:k])
        return FrameAnalysis(
            frame_index=i * FRAME_STRIDE + 1,
            timestamp_seconds=i * FRAME_INTERVAL_SECONDS,
            confidence=confidence,
            anomalies=anomalies,
        )

    def synthesize(self) -> DetectionResult:
        p = settings.deepfake_probability if self._deepfake_probability is None else self._deepfake_probability
        is_deepfake = self._rng.random() < p
        band = _DEEPFAKE_BAND if is_deepfake else _AUTHENTIC_BAND
        base = self._uniform(*band)

        frames = [self._draw_frame(i, base, is_deepfake) for i in range(FRAME_COUNT)]

        logger.debug("Synthesised verdict: is_deepfake=%s confidence=%.1f", is_deepfake, base)
        return DetectionResult(
            confidence=base,
            is_deepfake=is_deepfake,
            frame_analysis=frames,
            processing_time_seconds=(
                settings.processing_time_seconds if self._processing_time is None else self._processing_time
            ),
            model_used=settings.model_label if self._model_label is None else self._model_label,
        )


def summarize(result: DetectionResult) -> VerdictSummary:
    """Notification text for a finished run, derived from verdict + confidence only."""
    if result.is_deepfake:
        return VerdictSummary(
            title="Deepfake Detected",
            description=f"Analysis complete with {result.confidence:.1f}% confidence",
            variant="destructive",
            headline="DEEPFAKE DETECTED",
        )
    return VerdictSummary(
        title="Video Appears Authentic",
        description=f"Analysis complete with {result.confidence:.1f}% confidence",
        variant="default",
        headline="AUTHENTIC VIDEO",
    )
