"""Shared data structures for the live landmark pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


VIDEO_SIZES: dict[str, tuple[int, int]] = {
    "640 X 480": (640, 480),
    "640 X 360": (640, 360),
    "360 X 270": (360, 270),
}
DEFAULT_SIZE_OPTION = "640 X 480"
DEFAULT_TARGET_FPS = 60


class DetectorState(Enum):
    """Lifecycle states of the managed detector."""

    ABSENT = "absent"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass(frozen=True)
class CameraParams:
    """Camera acquisition settings."""

    device_index: int = 0
    size_option: str = DEFAULT_SIZE_OPTION
    target_fps: int = DEFAULT_TARGET_FPS

    @property
    def width(self) -> int:
        """Return the requested frame width."""
        return VIDEO_SIZES[self.size_option][0]

    @property
    def height(self) -> int:
        """Return the requested frame height."""
        return VIDEO_SIZES[self.size_option][1]


@dataclass(frozen=True)
class Keypoint:
    """Single landmark in frame pixel coordinates."""

    x: float
    y: float
    z: float | None = None
    name: str | None = None


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned face box in frame pixel coordinates."""

    x_min: float
    y_min: float
    width: float
    height: float

    @property
    def x_max(self) -> float:
        """Return the right edge."""
        return self.x_min + self.width

    @property
    def y_max(self) -> float:
        """Return the bottom edge."""
        return self.y_min + self.height

    @classmethod
    def from_keypoints(cls, keypoints: list[Keypoint]) -> BoundingBox:
        """Build the tightest box around a set of keypoints."""
        xs = [kp.x for kp in keypoints]
        ys = [kp.y for kp in keypoints]
        return cls(
            x_min=min(xs),
            y_min=min(ys),
            width=max(xs) - min(xs),
            height=max(ys) - min(ys),
        )


@dataclass(frozen=True)
class Face:
    """One detected face."""

    keypoints: list[Keypoint]
    box: BoundingBox | None = None
    score: float | None = None

    def keypoint(self, name: str) -> Keypoint | None:
        """Return the named keypoint, if the model provides it."""
        return next((kp for kp in self.keypoints if kp.name == name), None)


@dataclass
class InferenceResult:
    """Faces produced for one frame by one detector generation."""

    faces: list[Face] = field(default_factory=list)
    generation: int = 0

    def is_drawable(self, current_generation: int) -> bool:
        """Return True when the result is non-empty and not stale."""
        return bool(self.faces) and self.generation == current_generation


@dataclass(frozen=True)
class FpsReport:
    """Inference rate emitted by the stats tracker."""

    fps: float
    average_inference_ms: float
    samples: int
    timestamp_ms: float
