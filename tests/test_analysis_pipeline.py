"""
test_analysis_pipeline.py — Stage sequencing and cooperative cancellation.

All runs use an injected clock, so no test waits on real delays.

Run:
    pytest tests/test_analysis_pipeline.py -v
"""

import random

import pytest

from conftest import instant_clock
from vidguard.ai.analysis_pipeline import STAGES, AnalysisPipeline, check_stages
from vidguard.ai.result_synthesizer import ResultSynthesizer
from vidguard.models.detection import CompletedEvent, FileDescriptor, PipelineStage, ProgressEvent

CLIP = FileDescriptor(name="clip.mp4", size_bytes=5_000_000, mime_type="video/mp4")


def _pipeline(**kwargs):
    kwargs.setdefault("sleep", instant_clock)
    kwargs.setdefault("synthesizer", ResultSynthesizer(rng=random.Random(11)))
    return AnalysisPipeline(**kwargs)


async def _collect(pipeline, **kwargs):
    return [event async for event in pipeline.run(CLIP, **kwargs)]


# ── Stage table ──────────────────────────────────────────────────────────────

class TestStageTable:

    def test_seven_fixed_stages(self):
        assert [s.percent for s in STAGES] == [10, 25, 40, 60, 80, 95, 100]
        assert STAGES[0].label == "Loading AI model..."
        assert STAGES[-1].label == "Analysis complete"

    def test_default_table_passes_check(self):
        check_stages(STAGES)

    @pytest.mark.parametrize("percents", [[10, 10, 100], [50, 40, 100], [10, 90], []])
    def test_bad_tables_are_refused(self, percents):
        stages = [PipelineStage(percent=p, label=f"{p}%") for p in percents]
        with pytest.raises(ValueError):
            AnalysisPipeline(stages=stages)


# ── Completed runs ───────────────────────────────────────────────────────────

class TestCompletedRun:

    async def test_progress_then_exactly_one_result(self):
        events = await _collect(_pipeline())
        progress = [e for e in events if isinstance(e, ProgressEvent)]
        completed = [e for e in events if isinstance(e, CompletedEvent)]

        assert [e.percent for e in progress] == [10, 25, 40, 60, 80, 95, 100]
        assert len(completed) == 1
        assert events[-1] is completed[0]

    async def test_result_has_five_frames(self):
        events = await _collect(_pipeline())
        result = events[-1].result
        assert len(result.frame_analysis) == 5
        assert [f.frame_index for f in result.frame_analysis] == [1, 31, 61, 91, 121]

    async def test_summary_matches_result(self):
        events = await _collect(_pipeline())
        final = events[-1]
        expected = "Deepfake Detected" if final.result.is_deepfake else "Video Appears Authentic"
        assert final.summary.title == expected

    async def test_run_token_is_stamped_on_every_event(self):
        events = await _collect(_pipeline(), run_token=7)
        assert {e.run_token for e in events} == {7}

    async def test_one_delay_per_stage(self):
        delays = []

        async def recording_clock(seconds):
            delays.append(seconds)

        await _collect(_pipeline(sleep=recording_clock, stage_delay=0.8))
        assert delays == [0.8] * 7

    async def test_stage_delay_defaults_to_settings(self):
        import vidguard.core.config as cfg

        original = cfg.settings.stage_delay_seconds
        cfg.settings.stage_delay_seconds = 0.25
        try:
            assert _pipeline().stage_delay == 0.25
        finally:
            cfg.settings.stage_delay_seconds = original

    async def test_runs_are_independent(self):
        pipeline = _pipeline()
        first = await _collect(pipeline)
        second = await _collect(pipeline)
        assert len(first) == len(second) == 8

    async def test_run_to_completion_collects_stages(self):
        stages, completed = await _pipeline().run_to_completion(CLIP)
        assert stages == list(STAGES)
        assert isinstance(completed, CompletedEvent)


# ── Abandoned runs ───────────────────────────────────────────────────────────

class TestAbandonedRun:

    async def test_stale_token_emits_nothing(self):
        events = await _collect(_pipeline(), run_token=1, is_current=lambda token: False)
        assert events == []

    async def test_cancel_midway_stops_before_result(self):
        live = {"current": True}
        events = []
        async for event in _pipeline().run(CLIP, run_token=1, is_current=lambda t: live["current"]):
            events.append(event)
            if isinstance(event, ProgressEvent) and event.percent == 40:
                live["current"] = False

        assert [e.percent for e in events] == [10, 25, 40]
        assert not any(isinstance(e, CompletedEvent) for e in events)

    async def test_cancel_after_final_stage_skips_synthesis(self):
        calls = []

        class CountingSynth(ResultSynthesizer):
            def synthesize(self):
                calls.append(1)
                return super().synthesize()

        live = {"current": True}
        events = []
        pipeline = _pipeline(synthesizer=CountingSynth(rng=random.Random(0)))
        async for event in pipeline.run(CLIP, is_current=lambda t: live["current"]):
            events.append(event)
            if event.percent == 100:
                live["current"] = False

        assert len(events) == 7
        assert calls == []
