"""Camera source: owns the capture device and its readiness."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loguru import logger

from facemesh_live.pipeline.capture.opencv import OpenCVCapture
from facemesh_live.pipeline.errors import CameraError, CameraUnavailable
from facemesh_live.pipeline.handles import OwnedHandle


if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from facemesh_live.pipeline.types import CameraParams


class CaptureProtocol(Protocol):
    """Protocol for capture backends."""

    def open(self) -> bool:
        """Open the capture backend."""
        ...

    def read(self) -> tuple[bool, np.ndarray | None]:
        """Read a frame from the backend."""
        ...

    def release(self) -> None:
        """Release backend resources."""
        ...

    def is_opened(self) -> bool:
        """Return True when the backend is open."""
        ...

    def get_info(self) -> dict:
        """Return backend metadata for diagnostics."""
        ...


def setup_camera(
    params: CameraParams,
    opener: Callable[[CameraParams], CaptureProtocol] = OpenCVCapture,
) -> CaptureProtocol:
    """Open a capture device matching ``params``.

    Raises:
        CameraUnavailable: no device granted access.
    """
    capture = opener(params)
    if not capture.open():
        message = (
            f"Camera {params.device_index} unavailable "
            f"({params.size_option} @ {params.target_fps} FPS)"
        )
        raise CameraUnavailable(message)
    return capture


class CameraSource:
    """Single owner of the capture handle.

    A freshly acquired camera is not ready until its first frame arrives;
    callers poll ``read_frame`` and must not draw before ``ready`` is True.
    """

    def __init__(
        self,
        setup: Callable[[CameraParams], CaptureProtocol] = setup_camera,
    ) -> None:
        """Create an empty camera source using ``setup`` to open devices."""
        self._setup = setup
        self._handle: OwnedHandle[CaptureProtocol] = OwnedHandle(
            lambda capture: capture.release(), label="camera"
        )
        self.params: CameraParams | None = None
        self.ready = False
        self.acquisitions = 0

    @property
    def is_acquired(self) -> bool:
        """Return True while a capture handle is held."""
        return bool(self._handle)

    def acquire(self, params: CameraParams) -> CaptureProtocol:
        """Release the current device, then open one for ``params``.

        On failure no device is held and a ``CameraError`` propagates.
        """
        self.ready = False
        self.params = params
        logger.info(
            "Acquiring camera {} ({} @ {} FPS)",
            params.device_index,
            params.size_option,
            params.target_fps,
        )
        try:
            capture = self._handle.replace(lambda: self._setup(params))
        except CameraError:
            raise
        except Exception as exc:
            message = f"Camera {params.device_index} failed to open: {exc}"
            raise CameraUnavailable(message) from exc
        self.acquisitions += 1
        return capture

    def read_frame(self) -> np.ndarray | None:
        """Grab the next frame, or None if there is none yet."""
        capture = self._handle.current
        if capture is None:
            return None
        ok, frame = capture.read()
        if not ok or frame is None:
            logger.trace("No frame available")
            return None
        if not self.ready:
            self.ready = True
            logger.debug("First frame received: {}x{}", frame.shape[1], frame.shape[0])
        return frame

    def get_info(self) -> dict:
        """Return metadata of the held device."""
        capture = self._handle.current
        if capture is not None:
            return capture.get_info()
        return {"backend": "None", "device": None, "width": 0, "height": 0, "fps": 0}

    def release(self) -> None:
        """Release the held device."""
        self.ready = False
        self._handle.release()
