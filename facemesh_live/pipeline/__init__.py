"""Model-agnostic building blocks for live camera inference."""

from __future__ import annotations

from facemesh_live.pipeline.capture import (
    CameraSource,
    CaptureProtocol,
    OpenCVCapture,
    setup_camera,
)
from facemesh_live.pipeline.errors import (
    BackendError,
    CameraError,
    CameraLost,
    CameraUnavailable,
    FacemeshLiveError,
    InferenceError,
    ModelLoadError,
)
from facemesh_live.pipeline.handles import OwnedHandle
from facemesh_live.pipeline.logging import configure_logging
from facemesh_live.pipeline.metrics.performance import InferenceStatsTracker
from facemesh_live.pipeline.types import (
    VIDEO_SIZES,
    BoundingBox,
    CameraParams,
    DetectorState,
    Face,
    FpsReport,
    InferenceResult,
    Keypoint,
)


__all__ = [
    "VIDEO_SIZES",
    "BackendError",
    "BoundingBox",
    "CameraError",
    "CameraLost",
    "CameraParams",
    "CameraSource",
    "CameraUnavailable",
    "CaptureProtocol",
    "DetectorState",
    "Face",
    "FacemeshLiveError",
    "FpsReport",
    "InferenceError",
    "InferenceResult",
    "InferenceStatsTracker",
    "Keypoint",
    "ModelLoadError",
    "OpenCVCapture",
    "OwnedHandle",
    "configure_logging",
    "setup_camera",
]
