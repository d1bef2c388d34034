"""
analysis_pipeline.py — Staged analysis state machine for uploaded videos.

  Idle → Running(0) → Running(1) → … → Running(6) → Completed

Each stage waits one fixed delay on the injected clock, then emits its
progress percent. After the last stage (always 100%) the ResultSynthesizer
draws one DetectionResult and the run completes. There is no failure state:
a run on an accepted file always finishes unless it is abandoned.

Cancellation is cooperative. Every run carries a run token; before each
stage transition and before synthesis the pipeline asks `is_current(token)`.
Once that returns False the run stops silently and no result is ever built.

The clock is any `async def sleep(seconds)` — asyncio.sleep in production,
a no-op or a stepping clock in tests so stages advance without real delays.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

from vidguard.ai.result_synthesizer import ResultSynthesizer, summarize
from vidguard.core.config import settings
from vidguard.models.detection import (
    CompletedEvent,
    FileDescriptor,
    PipelineEvent,
    PipelineStage,
    ProgressEvent,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
TokenCheck = Callable[[int], bool]


STAGES: tuple[PipelineStage, ...] = (
    PipelineStage(percent=10,  label="Loading AI model..."),
    PipelineStage(percent=25,  label="Extracting video frames..."),
    PipelineStage(percent=40,  label="Analyzing facial features..."),
    PipelineStage(percent=60,  label="Running CNN detection..."),
    PipelineStage(percent=80,  label="Calculating confidence scores..."),
    PipelineStage(percent=95,  label="Generating report..."),
    PipelineStage(percent=100, label="Analysis complete"),
)


def check_stages(stages: Sequence[PipelineStage]) -> None:
    """Raise ValueError unless percents strictly increase and end at 100."""
    if not stages:
        raise ValueError("pipeline needs at least one stage")
    percents = [s.percent for s in stages]
    if any(b <= a for a, b in zip(percents, percents[1:])):
        raise ValueError(f"stage percents must strictly increase: {percents}")
    if percents[-1] != 100:
        raise ValueError(f"last stage must be 100%, got {percents[-1]}")


def _always_current(_token: int) -> bool:
    return True


class AnalysisPipeline:
    """
    Drives one run per call to run(). Holds no state between runs.

    stage_delay=None reads settings.stage_delay_seconds at run time.
    """

    def __init__(
        self,
        synthesizer: ResultSynthesizer | None = None,
        sleep: Sleep = asyncio.sleep,
        stage_delay: float | None = None,
        stages: Sequence[PipelineStage] = STAGES,
    ):
        check_stages(stages)
        self.synthesizer = synthesizer or ResultSynthesizer()
        self.stages: tuple[PipelineStage, ...] = tuple(stages)
        self._sleep = sleep
        self._stage_delay = stage_delay

    @property
    def stage_delay(self) -> float:
        return settings.stage_delay_seconds if self._stage_delay is None else self._stage_delay

    async def run(
        self,
        file: FileDescriptor,
        run_token: int = 0,
        is_current: TokenCheck = _always_current,
    ) -> AsyncIterator[PipelineEvent]:
        """
        Yield one ProgressEvent per stage, then exactly one CompletedEvent.

        The caller must only pass files the intake validator accepted.
        """
        logger.info("Starting analysis run %d (file=%s, %d bytes)", run_token, file.name, file.size_bytes)
        delay = self.stage_delay

        for index, stage in enumerate(self.stages):
            await self._sleep(delay)
            if not is_current(run_token):
                logger.info("Run %d abandoned before stage %d; no result", run_token, index)
                return
            logger.debug("Run %d stage %d: %d%% %s", run_token, index, stage.percent, stage.label)
            yield ProgressEvent(run_token=run_token, percent=stage.percent, label=stage.label)

        # The consumer may have cancelled while handling the final progress event.
        if not is_current(run_token):
            logger.info("Run %d abandoned before completion; no result", run_token)
            return

        result = self.synthesizer.synthesize()
        logger.info(
            "Run %d complete: is_deepfake=%s confidence=%.1f",
            run_token, result.is_deepfake, result.confidence,
        )
        yield CompletedEvent(run_token=run_token, result=result, summary=summarize(result))

    async def run_to_completion(self, file: FileDescriptor) -> tuple[list[PipelineStage], CompletedEvent]:
        """Run without a session and collect the observed stages plus the final event."""
        observed: list[PipelineStage] = []
        async for event in self.run(file):
            if isinstance(event, ProgressEvent):
                observed.append(PipelineStage(percent=event.percent, label=event.label))
            else:
                return observed, event
        # Unreachable with the default token check: unabandoned runs always complete.
        raise RuntimeError("analysis run ended without a result")


# Module-level singleton
analysis_pipeline = AnalysisPipeline()
