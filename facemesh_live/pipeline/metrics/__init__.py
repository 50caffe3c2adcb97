"""Performance metrics helpers for pipelines."""

from __future__ import annotations

from facemesh_live.pipeline.metrics.performance import InferenceStatsTracker


__all__ = [
    "InferenceStatsTracker",
]
