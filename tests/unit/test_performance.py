"""Unit tests for InferenceStatsTracker."""

from __future__ import annotations

import pytest

from facemesh_live.pipeline.metrics import InferenceStatsTracker


class TestInferenceStatsTracker:
    """Tests for the inference rate tracker."""

    def test_reports_inverse_mean_duration(self):
        """Test [10, 20, 30] ms over a second reports 50 FPS."""
        tracker = InferenceStatsTracker()
        for duration in (10.0, 20.0, 30.0):
            tracker.record(duration)

        report = tracker.maybe_report(1000.0)

        assert report is not None
        assert report.fps == pytest.approx(50.0)
        assert report.average_inference_ms == pytest.approx(20.0)
        assert report.samples == 3

    def test_resets_after_report(self):
        """Test the accumulator restarts after each emission."""
        tracker = InferenceStatsTracker()
        tracker.record(10.0)
        tracker.maybe_report(1000.0)

        assert tracker.sum_inference_ms == 0.0
        assert tracker.sample_count == 0
        assert tracker.last_report_ms == 1000.0
        assert tracker.maybe_report(1500.0) is None

    def test_no_report_before_interval(self):
        """Test nothing is emitted before a full interval elapsed."""
        tracker = InferenceStatsTracker()
        tracker.record(10.0)

        assert tracker.maybe_report(999.0) is None
        assert tracker.sample_count == 1

    def test_no_report_without_samples(self):
        """Test zero samples never emits."""
        tracker = InferenceStatsTracker()

        assert tracker.maybe_report(5000.0) is None
        assert tracker.last_report is None

    def test_rate_is_clamped(self):
        """Test very fast inference is clamped to max_fps."""
        tracker = InferenceStatsTracker(max_fps=120.0)
        tracker.record(1.0)

        report = tracker.maybe_report(1000.0)

        assert report.fps == 120.0

    def test_zero_duration_reports_max(self):
        """Test zero average duration does not divide by zero."""
        tracker = InferenceStatsTracker()
        tracker.record(0.0)

        assert tracker.maybe_report(1000.0).fps == tracker.max_fps

    def test_begin_end_uses_clock(self, clock):
        """Test begin/end measure with the injected clock."""
        reports = []
        tracker = InferenceStatsTracker(clock=clock, on_report=reports.append)

        clock.advance(1.0)
        tracker.begin()
        clock.advance(0.025)
        report = tracker.end()

        assert report is not None
        assert report.fps == pytest.approx(40.0)
        assert reports == [report]
        assert tracker.last_report is report

    def test_end_without_begin_is_ignored(self, clock):
        """Test an unmatched end records nothing."""
        tracker = InferenceStatsTracker(clock=clock)

        assert tracker.end() is None
        assert tracker.sample_count == 0

    def test_reset_drops_samples(self):
        """Test reset clears samples without reporting."""
        tracker = InferenceStatsTracker()
        tracker.record(10.0)

        tracker.reset()

        assert tracker.sample_count == 0
        assert tracker.maybe_report(1000.0) is None
