"""Camera capture for the live landmark pipeline."""

from __future__ import annotations

from facemesh_live.pipeline.capture.core import (
    CameraSource,
    CaptureProtocol,
    setup_camera,
)
from facemesh_live.pipeline.capture.opencv import OpenCVCapture


__all__ = [
    "CameraSource",
    "CaptureProtocol",
    "OpenCVCapture",
    "setup_camera",
]
