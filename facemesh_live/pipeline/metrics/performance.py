"""Inference rate accounting for the frame loop."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from loguru import logger

from facemesh_live.pipeline.types import FpsReport


if TYPE_CHECKING:
    from collections.abc import Callable


class InferenceStatsTracker:
    """Accumulate inference durations and report a rate once per interval.

    Only time spent inside ``estimate_faces`` counts, so the reported value is
    the detector's capacity, not the display refresh rate.
    """

    def __init__(
        self,
        report_interval_ms: float = 1000.0,
        max_fps: float = 120.0,
        *,
        clock: Callable[[], float] = time.perf_counter,
        on_report: Callable[[FpsReport], None] | None = None,
        last_report_ms: float = 0.0,
    ) -> None:
        """Create a tracker; ``clock`` returns seconds."""
        self.report_interval_ms = report_interval_ms
        self.max_fps = max_fps
        self._clock = clock
        self._on_report = on_report
        self.sum_inference_ms = 0.0
        self.sample_count = 0
        self.last_report_ms = last_report_ms
        self.last_report: FpsReport | None = None
        self._started_ms: float | None = None

    def now_ms(self) -> float:
        """Return the tracker clock in milliseconds."""
        return self._clock() * 1000.0

    def begin(self) -> None:
        """Mark the start of an inference call."""
        self._started_ms = self.now_ms()

    def end(self) -> FpsReport | None:
        """Mark the end of an inference call, record it, maybe report."""
        end_ms = self.now_ms()
        if self._started_ms is None:
            logger.warning("Inference end recorded without a matching begin")
            return None
        self.record(end_ms - self._started_ms)
        self._started_ms = None
        return self.maybe_report(end_ms)

    def record(self, duration_ms: float) -> None:
        """Add one inference duration."""
        self.sum_inference_ms += duration_ms
        self.sample_count += 1

    def maybe_report(self, now_ms: float) -> FpsReport | None:
        """Emit the rate if the interval elapsed and samples exist, then reset."""
        if now_ms - self.last_report_ms < self.report_interval_ms:
            return None
        if self.sample_count == 0:
            return None

        average_ms = self.sum_inference_ms / self.sample_count
        fps = 1000.0 / average_ms if average_ms > 0 else self.max_fps
        report = FpsReport(
            fps=min(fps, self.max_fps),
            average_inference_ms=average_ms,
            samples=self.sample_count,
            timestamp_ms=now_ms,
        )

        self.sum_inference_ms = 0.0
        self.sample_count = 0
        self.last_report_ms = now_ms
        self.last_report = report

        if self._on_report is not None:
            self._on_report(report)
        return report

    def reset(self) -> None:
        """Drop accumulated samples without reporting."""
        self.sum_inference_ms = 0.0
        self.sample_count = 0
        self._started_ms = None
