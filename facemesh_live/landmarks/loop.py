"""Tick-driven frame loop tying camera, detector, stats and display together."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from loguru import logger

from facemesh_live.landmarks.config import (
    CAMERA_CHANGES,
    DETECTOR_CHANGES,
    ChangeKind,
)
from facemesh_live.landmarks.controls import KeyboardControls
from facemesh_live.pipeline.errors import CameraError, CameraLost
from facemesh_live.pipeline.types import DetectorState


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    import numpy as np

    from facemesh_live.landmarks.config import LiveConfig, RenderOptions
    from facemesh_live.landmarks.lifecycle import DetectorManager
    from facemesh_live.pipeline.capture import CameraSource
    from facemesh_live.pipeline.errors import FacemeshLiveError
    from facemesh_live.pipeline.metrics import InferenceStatsTracker
    from facemesh_live.pipeline.types import Face, FpsReport


class Display(Protocol):
    """Rendering surface driven once per tick."""

    def draw_frame(self, frame: np.ndarray, options: RenderOptions) -> None:
        """Start a canvas from a camera frame."""
        ...

    def draw_placeholder(self, width: int, height: int, text: str) -> None:
        """Start a canvas without a camera frame."""
        ...

    def draw_results(
        self,
        faces: Sequence[Face],
        mesh_connections: Sequence[tuple[int, int]],
        options: RenderOptions,
    ) -> None:
        """Overlay faces on the canvas."""
        ...

    def present(
        self,
        fps_report: FpsReport | None,
        status_lines: Sequence[str] = (),
        notice: str | None = None,
    ) -> object:
        """Finish and show the canvas."""
        ...

    def poll_key(self) -> int:
        """Return the pressed key code or -1."""
        ...

    def is_open(self) -> bool:
        """Return False once the surface was closed."""
        ...

    def close(self) -> None:
        """Release the surface."""
        ...


@dataclass
class TickOutcome:
    """What one tick did."""

    index: int
    reconfigured_camera: bool = False
    reconfigured_detector: bool = False
    skipped: bool = False
    waiting_for_frame: bool = False
    camera_lost: bool = False
    inferred: bool = False
    faces: list[Face] = field(default_factory=list)
    overlay_drawn: bool = False
    fps: FpsReport | None = None


@dataclass(frozen=True)
class Notice:
    """User-visible error message."""

    text: str
    timestamp: float


class FrameLoop:
    """Drive one camera and one detector, one tick at a time.

    Each tick applies pending configuration changes (camera first, then the
    detector), waits for the camera's first frame, runs inference when the
    detector is active, and renders. Errors from any collaborator become
    notices; none of them ends the loop.
    """

    def __init__(
        self,
        config: LiveConfig,
        camera: CameraSource,
        detectors: DetectorManager,
        stats: InferenceStatsTracker,
        display: Display,
        *,
        clock: Callable[[], float] = time.perf_counter,
        controls: KeyboardControls | None = None,
        notice_seconds: float = 5.0,
        max_notices: int = 20,
    ) -> None:
        """Wire the loop; nothing is acquired until ``start``."""
        self.config = config
        self.camera = camera
        self.detectors = detectors
        self.stats = stats
        self.display = display
        self.controls = controls or KeyboardControls()
        self.notice_seconds = notice_seconds
        self.notices: deque[Notice] = deque(maxlen=max_notices)
        self._clock = clock
        self.detectors.notify = self._notify

        self.started = False
        self.closed = False
        self.tick_count = 0
        self.inference_count = 0
        self.overlay_count = 0
        self.error_count = 0
        self._started_at: float | None = None
        self._camera_lost = False

    def start(self) -> None:
        """Acquire the camera and build the first detector."""
        logger.info("=" * 60)
        logger.info("Facemesh Live")
        logger.info("=" * 60)
        self._started_at = self._clock()
        self.started = True

        self._acquire_camera()
        self.config.changes.consume(*CAMERA_CHANGES)
        if self.detectors.reconfigure(self.config) is DetectorState.ACTIVE:
            self.stats.reset()

    def tick(self) -> TickOutcome:
        """Run one iteration of the loop."""
        self.tick_count += 1
        outcome = TickOutcome(index=self.tick_count)
        changes = self.config.changes

        if changes.is_pending(*CAMERA_CHANGES):
            self._acquire_camera()
            changes.consume(*CAMERA_CHANGES)
            outcome.reconfigured_camera = True

        if changes.is_pending(*DETECTOR_CHANGES):
            if self.detectors.reconfigure(self.config) is DetectorState.ACTIVE:
                self.stats.reset()
            outcome.reconfigured_detector = True

        if changes.is_pending(*DETECTOR_CHANGES) or self.detectors.reconfiguring:
            logger.debug("Detector swap in progress; skipping tick {}", outcome.index)
            outcome.skipped = True
            return outcome

        if not self.camera.is_acquired:
            self._present_placeholder("No camera")
            return outcome

        frame = self.camera.read_frame()
        if frame is None:
            if not self.camera.ready:
                outcome.waiting_for_frame = True
                return outcome
            if not self._camera_lost:
                self._camera_lost = True
                message = "Camera stopped delivering frames"
                logger.warning(message)
                self._notify(CameraLost(message))
            outcome.camera_lost = True
            self._present_placeholder("Camera lost")
            return outcome
        if self._camera_lost:
            self._camera_lost = False
            logger.info("Camera frames resumed")

        result = None
        detector = self.detectors.detector
        if self.detectors.is_active:
            self.stats.begin()
            result = self.detectors.estimate_faces(frame, flip_horizontal=False)
            outcome.fps = self.stats.end()
            outcome.inferred = True
            self.inference_count += 1
            if outcome.fps is not None:
                logger.info(
                    "Inference: {:.1f} FPS ({:.1f} ms avg over {} frames)",
                    outcome.fps.fps,
                    outcome.fps.average_inference_ms,
                    outcome.fps.samples,
                )

        self.display.draw_frame(frame, self.config.render)
        if result is not None:
            outcome.faces = result.faces
            if (
                detector is not None
                and result.is_drawable(self.detectors.generation)
                and not changes.is_pending(ChangeKind.MODEL)
            ):
                self.display.draw_results(
                    result.faces, detector.mesh_connections, self.config.render
                )
                outcome.overlay_drawn = True
                self.overlay_count += 1
        self._present()
        return outcome

    def run(self, max_ticks: int | None = None) -> int:
        """Tick until quit, interrupt, closed window or ``max_ticks``."""
        if not self.started:
            self.start()
        logger.info("Starting frame loop. Press 'q' to quit.")
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                self.tick()
                ticks += 1
                key = self.display.poll_key()
                if key != -1 and not self.controls.handle_key(key, self.config):
                    logger.info("Quit requested by user")
                    break
                if not self.display.is_open():
                    logger.info("Display window closed")
                    break
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self.shutdown()
        return ticks

    def shutdown(self) -> None:
        """Dispose the detector, release the camera and close the display."""
        if self.closed:
            return
        self.closed = True

        logger.info("=" * 60)
        logger.info("Session Summary")
        if self._started_at is not None:
            logger.info("Duration: {:.1f}s", self._clock() - self._started_at)
        logger.info("Ticks: {}", self.tick_count)
        logger.info("Inferences: {}", self.inference_count)
        logger.info("Overlays drawn: {}", self.overlay_count)
        logger.info("Errors: {}", self.error_count)
        if self.stats.last_report is not None:
            logger.info("Last rate: {:.1f} FPS", self.stats.last_report.fps)

        self.detectors.dispose()
        self.camera.release()
        self.display.close()
        logger.success("Cleanup complete. Goodbye!")

    def current_notice(self) -> str | None:
        """Return the newest notice while it is still fresh."""
        if not self.notices:
            return None
        latest = self.notices[-1]
        if self._clock() - latest.timestamp > self.notice_seconds:
            return None
        return latest.text

    def status_lines(self) -> list[str]:
        """Return the HUD lines describing the active configuration."""
        camera = self.config.camera
        return [
            f"{self.config.target_model} on {self.config.backend} "
            f"[{self.detectors.state.value}]",
            f"{camera.size_option} @ {camera.target_fps} FPS target",
        ]

    def _acquire_camera(self) -> bool:
        self._camera_lost = False
        try:
            self.camera.acquire(self.config.camera)
        except CameraError as exc:
            logger.error("Camera acquisition failed: {}", exc)
            self._notify(exc)
            return False
        logger.success("Camera acquired: {}", self.camera.get_info().get("backend"))
        return True

    def _notify(self, exc: FacemeshLiveError) -> None:
        self.error_count += 1
        self.notices.append(
            Notice(text=f"{type(exc).__name__}: {exc}", timestamp=self._clock())
        )

    def _present_placeholder(self, text: str) -> None:
        params = self.config.camera
        self.display.draw_placeholder(params.width, params.height, text)
        self._present()

    def _present(self) -> None:
        self.display.present(
            self.stats.last_report,
            self.status_lines(),
            self.current_notice(),
        )
