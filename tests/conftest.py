"""Shared fakes for camera, detector, display and clock."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import pytest

from facemesh_live.landmarks.config import LiveConfig
from facemesh_live.landmarks.lifecycle import DetectorManager
from facemesh_live.landmarks.loop import FrameLoop
from facemesh_live.landmarks.runtime import RuntimeSettings, runtime_of
from facemesh_live.pipeline.capture import CameraSource
from facemesh_live.pipeline.errors import (
    BackendError,
    CameraUnavailable,
    InferenceError,
    ModelLoadError,
)
from facemesh_live.pipeline.metrics import InferenceStatsTracker
from facemesh_live.pipeline.types import BoundingBox, Face, Keypoint


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_frame(width: int = 64, height: int = 48) -> np.ndarray:
    return np.zeros((height, width, 3), dtype=np.uint8)


def make_face(x: float = 10.0, y: float = 10.0) -> Face:
    keypoints = [Keypoint(x=x, y=y), Keypoint(x=x + 10, y=y + 10)]
    return Face(keypoints=keypoints, box=BoundingBox.from_keypoints(keypoints))


class FakeCapture:
    """Capture device that yields frames after an optional warm-up."""

    def __init__(self, params, warmup_reads: int = 0, registry=None) -> None:
        self.params = params
        self.warmup_reads = warmup_reads
        self.released = False
        self.stalled = False
        self.reads = 0
        self._registry = registry

    def open(self) -> bool:
        return True

    def read(self):
        self.reads += 1
        if self.stalled or self.reads <= self.warmup_reads:
            return False, None
        return True, make_frame(self.params.width // 10, self.params.height // 10)

    def release(self) -> None:
        if not self.released and self._registry is not None:
            self._registry.releases += 1
        self.released = True

    def is_opened(self) -> bool:
        return not self.released

    def get_info(self) -> dict:
        return {"backend": "Fake", "device": self.params.device_index}


@dataclass
class CameraRegistry:
    """Records every camera setup call."""

    fail: bool = False
    warmup_reads: int = 0
    setups: list = field(default_factory=list)
    captures: list = field(default_factory=list)
    releases: int = 0
    on_setup: object = None

    def setup(self, params):
        self.setups.append(params)
        if self.on_setup is not None:
            self.on_setup()
        if self.fail:
            message = "Permission denied"
            raise CameraUnavailable(message)
        capture = FakeCapture(params, self.warmup_reads, registry=self)
        self.captures.append(capture)
        return capture


class FakeDetector:
    """Detector whose calls and lifetime are tracked by a registry."""

    mesh_connections = ((0, 1),)

    def __init__(self, registry: DetectorRegistry, name: str) -> None:
        self.registry = registry
        self.name = name
        self.disposed = False
        self.instance_id = registry.created

    def estimate_faces(self, frame, *, flip_horizontal=False):
        self.registry.calls += 1
        if self.registry.on_call is not None:
            self.registry.on_call()
        if self.registry.calls in self.registry.fail_on_calls:
            message = "Unexpected output shape"
            raise InferenceError(message)
        return [make_face() for _ in range(self.registry.faces_per_frame)]

    def dispose(self) -> None:
        if not self.disposed:
            self.disposed = True
            self.registry.live -= 1
            self.registry.events.append(("dispose", self.instance_id))


@dataclass
class DetectorRegistry:
    """Counts detector instances; ``max_live`` must never exceed one."""

    created: int = 0
    live: int = 0
    max_live: int = 0
    calls: int = 0
    faces_per_frame: int = 1
    fail_create: bool = False
    fail_backend: bool = False
    fail_on_calls: set = field(default_factory=set)
    on_call: object = None
    on_create: object = None
    on_backend: object = None
    backend_calls: list = field(default_factory=list)
    events: list = field(default_factory=list)

    def factory(self, model, model_config, runtime):
        if self.on_create is not None:
            self.on_create()
        if self.fail_create:
            message = f"Cannot load {model}"
            raise ModelLoadError(message)
        self.created += 1
        self.live += 1
        self.max_live = max(self.max_live, self.live)
        self.events.append(("create", self.created))
        return FakeDetector(self, model)

    def apply_backend(self, flags, backend):
        self.backend_calls.append((dict(flags), backend))
        if self.on_backend is not None:
            self.on_backend()
        if self.fail_backend:
            message = f"{backend} unavailable"
            raise BackendError(message)
        return RuntimeSettings(
            backend=backend, runtime=runtime_of(backend), flags=flags
        )


class FakeDisplay:
    """Display that records what each tick drew."""

    def __init__(self) -> None:
        self.frames = 0
        self.placeholders = 0
        self.results: list = []
        self.presented: list = []
        self.keys: list[int] = []
        self.open = True
        self.closed = False

    def draw_frame(self, frame, options) -> None:
        self.frames += 1

    def draw_placeholder(self, width, height, text) -> None:
        self.placeholders += 1

    def draw_results(self, faces, mesh_connections, options) -> None:
        self.results.append(list(faces))

    def present(self, fps_report, status_lines=(), notice=None):
        self.presented.append((fps_report, list(status_lines), notice))

    def poll_key(self) -> int:
        return self.keys.pop(0) if self.keys else -1

    def is_open(self) -> bool:
        return self.open

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cameras() -> CameraRegistry:
    return CameraRegistry()


@pytest.fixture
def detectors() -> DetectorRegistry:
    return DetectorRegistry()


@pytest.fixture
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture
def config() -> LiveConfig:
    return LiveConfig()


@pytest.fixture
def manager(detectors: DetectorRegistry) -> DetectorManager:
    return DetectorManager(
        factory=detectors.factory, apply_backend=detectors.apply_backend
    )


@pytest.fixture
def frame_loop(config, cameras, manager, display, clock) -> FrameLoop:
    stats = InferenceStatsTracker(clock=clock)
    return FrameLoop(
        config,
        CameraSource(setup=cameras.setup),
        manager,
        stats,
        display,
        clock=clock,
    )
