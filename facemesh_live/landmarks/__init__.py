from __future__ import annotations

from facemesh_live.landmarks.cli import build_config, parse_args
from facemesh_live.landmarks.config import (
    BACKENDS,
    CAMERA_CHANGES,
    DETECTOR_CHANGES,
    MODEL_BACKENDS,
    SUPPORTED_MODELS,
    ChangeKind,
    ChangeSet,
    LiveConfig,
    ModelConfig,
    RenderOptions,
)
from facemesh_live.landmarks.controls import KeyboardControls
from facemesh_live.landmarks.detectors import (
    Detector,
    MediaPipeFaceDetector,
    MediaPipeFaceMesh,
    OnnxFaceMesh,
    create_detector,
)
from facemesh_live.landmarks.lifecycle import DetectorManager
from facemesh_live.landmarks.loop import FrameLoop, Notice, TickOutcome
from facemesh_live.landmarks.runtime import RuntimeSettings, apply_backend_and_flags


__all__ = [
    "BACKENDS",
    "CAMERA_CHANGES",
    "DETECTOR_CHANGES",
    "MODEL_BACKENDS",
    "SUPPORTED_MODELS",
    "ChangeKind",
    "ChangeSet",
    "Detector",
    "DetectorManager",
    "FrameLoop",
    "KeyboardControls",
    "LiveConfig",
    "MediaPipeFaceDetector",
    "MediaPipeFaceMesh",
    "ModelConfig",
    "Notice",
    "OnnxFaceMesh",
    "RenderOptions",
    "RuntimeSettings",
    "TickOutcome",
    "apply_backend_and_flags",
    "build_config",
    "create_detector",
    "parse_args",
]
