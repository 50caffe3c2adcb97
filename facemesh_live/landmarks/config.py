"""Live configuration state and the change-set protocol.

Every mutator assigns its field and marks exactly one ``ChangeKind`` in the
same call. Nothing but the consuming component clears a mark, through
``ChangeSet.consume``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, fields, replace
from enum import Enum

from loguru import logger

from facemesh_live.pipeline.types import (
    VIDEO_SIZES,
    CameraParams,
)


MEDIAPIPE_FACE_DETECTOR = "mediapipe_face_detector"
MEDIAPIPE_FACE_MESH = "mediapipe_face_mesh"

MEDIAPIPE_CPU = "mediapipe-cpu"
ONNXRUNTIME_CPU = "onnxruntime-cpu"
ONNXRUNTIME_CUDA = "onnxruntime-cuda"

MODEL_BACKENDS: dict[str, tuple[str, ...]] = {
    MEDIAPIPE_FACE_DETECTOR: (MEDIAPIPE_CPU,),
    MEDIAPIPE_FACE_MESH: (MEDIAPIPE_CPU, ONNXRUNTIME_CPU, ONNXRUNTIME_CUDA),
}
SUPPORTED_MODELS: tuple[str, ...] = tuple(MODEL_BACKENDS)
BACKENDS: tuple[str, ...] = (MEDIAPIPE_CPU, ONNXRUNTIME_CPU, ONNXRUNTIME_CUDA)
TARGET_FPS_CHOICES: tuple[int, ...] = (15, 30, 60)
MODEL_TYPES: tuple[str, ...] = ("short", "full")


class ChangeKind(Enum):
    """Which subsystem must react to a configuration change."""

    MODEL = "model"
    BACKEND = "backend"
    FLAGS = "flags"
    CAMERA_TARGET_FPS = "camera_target_fps"
    CAMERA_SIZE = "camera_size"


DETECTOR_CHANGES = (ChangeKind.MODEL, ChangeKind.BACKEND, ChangeKind.FLAGS)
CAMERA_CHANGES = (ChangeKind.CAMERA_TARGET_FPS, ChangeKind.CAMERA_SIZE)


class ChangeSet:
    """Pending configuration changes.

    Marks of the same kind coalesce until consumed. ``marked`` and ``consumed``
    count calls per kind for diagnostics and tests.
    """

    def __init__(self) -> None:
        """Create an empty change set."""
        self._pending: set[ChangeKind] = set()
        self.marked: Counter[ChangeKind] = Counter()
        self.consumed: Counter[ChangeKind] = Counter()

    def mark(self, kind: ChangeKind) -> None:
        """Record that ``kind`` changed."""
        self._pending.add(kind)
        self.marked[kind] += 1

    def is_pending(self, *kinds: ChangeKind) -> bool:
        """Return True if any of ``kinds`` (or any kind at all) is pending."""
        if not kinds:
            return bool(self._pending)
        return any(kind in self._pending for kind in kinds)

    def pending(self) -> frozenset[ChangeKind]:
        """Return a snapshot of the pending kinds."""
        return frozenset(self._pending)

    def consume(self, *kinds: ChangeKind) -> frozenset[ChangeKind]:
        """Clear ``kinds`` and return the ones that were pending."""
        taken = frozenset(kind for kind in kinds if kind in self._pending)
        self._pending -= taken
        self.consumed.update(taken)
        return taken

    def __contains__(self, kind: object) -> bool:
        return kind in self._pending

    def __bool__(self) -> bool:
        return bool(self._pending)

    def __repr__(self) -> str:
        names = sorted(kind.value for kind in self._pending)
        return f"ChangeSet({', '.join(names)})"


@dataclass(frozen=True)
class ModelConfig:
    """Detector construction options."""

    max_faces: int = 1
    min_detection_confidence: float = 0.5
    refine_landmarks: bool = True
    model_type: str = "short"
    model_path: str | None = None

    def __post_init__(self) -> None:
        if self.max_faces < 1:
            message = f"max_faces must be >= 1, got {self.max_faces}"
            raise ValueError(message)
        if not 0.0 <= self.min_detection_confidence <= 1.0:
            message = (
                "min_detection_confidence must be within [0, 1], "
                f"got {self.min_detection_confidence}"
            )
            raise ValueError(message)
        if self.model_type not in MODEL_TYPES:
            message = (
                f"model_type must be one of {MODEL_TYPES}, got {self.model_type!r}"
            )
            raise ValueError(message)


@dataclass
class RenderOptions:
    """Drawing options. These never require reconfiguration."""

    bounding_box: bool = True
    triangulate_mesh: bool = True
    keypoints: bool = True
    mirror: bool = True


def _check_model(model: str) -> None:
    if model not in MODEL_BACKENDS:
        message = f"Unknown model {model!r}; expected one of {SUPPORTED_MODELS}"
        raise ValueError(message)


def _check_pair(model: str, backend: str) -> None:
    _check_model(model)
    if backend not in BACKENDS:
        message = f"Unknown backend {backend!r}; expected one of {BACKENDS}"
        raise ValueError(message)
    if backend not in MODEL_BACKENDS[model]:
        message = (
            f"Backend {backend!r} does not support {model!r}; "
            f"use one of {MODEL_BACKENDS[model]}"
        )
        raise ValueError(message)


@dataclass
class LiveConfig:
    """Configuration shared by reference between the controls and the loop.

    Read fields directly; change them only through the mutators so the
    matching ``ChangeKind`` is marked.
    """

    target_model: str = MEDIAPIPE_FACE_MESH
    backend: str = MEDIAPIPE_CPU
    runtime_flags: dict[str, object] = field(default_factory=dict)
    camera: CameraParams = field(default_factory=CameraParams)
    model_config: ModelConfig = field(default_factory=ModelConfig)
    render: RenderOptions = field(default_factory=RenderOptions)
    changes: ChangeSet = field(default_factory=ChangeSet)

    def __post_init__(self) -> None:
        _check_pair(self.target_model, self.backend)
        if self.camera.size_option not in VIDEO_SIZES:
            message = f"Unknown size option {self.camera.size_option!r}"
            raise ValueError(message)
        if self.camera.target_fps <= 0:
            message = f"target_fps must be positive, got {self.camera.target_fps}"
            raise ValueError(message)

    def set_model(self, model: str) -> bool:
        """Select a model; its options reset to defaults, keeping ``model_path``."""
        _check_pair(model, self.backend)
        if model == self.target_model:
            return False
        self.target_model = model
        self.model_config = ModelConfig(model_path=self.model_config.model_path)
        self.changes.mark(ChangeKind.MODEL)
        logger.info("Model -> {}", model)
        return True

    def set_backend(self, backend: str) -> bool:
        """Select the inference backend for the current model."""
        _check_pair(self.target_model, backend)
        if backend == self.backend:
            return False
        self.backend = backend
        self.changes.mark(ChangeKind.BACKEND)
        logger.info("Backend -> {}", backend)
        return True

    def set_flag(self, name: str, value: object) -> bool:
        """Set one runtime flag."""
        if name in self.runtime_flags and self.runtime_flags[name] == value:
            return False
        self.runtime_flags = {**self.runtime_flags, name: value}
        self.changes.mark(ChangeKind.FLAGS)
        logger.info("Flag {} -> {!r}", name, value)
        return True

    def set_target_fps(self, target_fps: int) -> bool:
        """Change the camera's target frame rate."""
        if target_fps <= 0:
            message = f"target_fps must be positive, got {target_fps}"
            raise ValueError(message)
        if target_fps == self.camera.target_fps:
            return False
        self.camera = replace(self.camera, target_fps=target_fps)
        self.changes.mark(ChangeKind.CAMERA_TARGET_FPS)
        logger.info("Camera target FPS -> {}", target_fps)
        return True

    def set_size_option(self, size_option: str) -> bool:
        """Change the camera resolution by size option name."""
        if size_option not in VIDEO_SIZES:
            message = (
                f"Unknown size option {size_option!r}; "
                f"expected one of {tuple(VIDEO_SIZES)}"
            )
            raise ValueError(message)
        if size_option == self.camera.size_option:
            return False
        self.camera = replace(self.camera, size_option=size_option)
        self.changes.mark(ChangeKind.CAMERA_SIZE)
        logger.info("Camera size -> {}", size_option)
        return True

    def update_model_config(self, **changes: object) -> bool:
        """Change detector options; any effective change is a model change."""
        known = {f.name for f in fields(ModelConfig)}
        unknown = sorted(set(changes) - known)
        if unknown:
            message = f"Unknown model options: {', '.join(unknown)}"
            raise ValueError(message)
        updated = replace(self.model_config, **changes)
        if updated == self.model_config:
            return False
        self.model_config = updated
        self.changes.mark(ChangeKind.MODEL)
        logger.info("Model options -> {}", updated)
        return True
