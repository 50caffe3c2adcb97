"""Facemesh Live: reconfigurable real-time face landmark inference."""

from facemesh_live.landmarks import (
    DetectorManager,
    FrameLoop,
    LiveConfig,
    create_detector,
)
from facemesh_live.pipeline import (
    CameraSource,
    InferenceStatsTracker,
    configure_logging,
)


__all__ = [
    "CameraSource",
    "DetectorManager",
    "FrameLoop",
    "InferenceStatsTracker",
    "LiveConfig",
    "configure_logging",
    "create_detector",
]
