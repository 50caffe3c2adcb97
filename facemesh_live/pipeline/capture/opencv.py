"""OpenCV device that negotiates the requested size and frame rate."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
from loguru import logger


if TYPE_CHECKING:
    import numpy as np

    from facemesh_live.pipeline.types import CameraParams


# Drivers report rates such as 29.97 for a requested 30.
FPS_TOLERANCE = 1.0


class OpenCVCapture:
    """``cv2.VideoCapture`` opened for one ``CameraParams``.

    After requesting width, height and rate the device is asked what it
    actually delivers. Differences are logged and listed in ``mismatches``;
    the stream is still used, since many webcams only offer a fixed set of
    modes.
    """

    def __init__(self, params: CameraParams) -> None:
        self.params = params
        self.cap: cv2.VideoCapture | None = None
        self.negotiated: tuple[int, int, float] = (0, 0, 0.0)
        self.mismatches: dict[str, tuple[float, float]] = {}

    def open(self) -> bool:
        """Open the device and negotiate the stream; False if access fails."""
        params = self.params
        cap = cv2.VideoCapture(params.device_index)
        if not cap.isOpened():
            logger.error("Camera {} refused access", params.device_index)
            cap.release()
            return False

        for prop, value in (
            (cv2.CAP_PROP_FRAME_WIDTH, params.width),
            (cv2.CAP_PROP_FRAME_HEIGHT, params.height),
            (cv2.CAP_PROP_FPS, params.target_fps),
            (cv2.CAP_PROP_BUFFERSIZE, 1),
        ):
            if not cap.set(prop, value):
                logger.debug("Camera ignored property {}={}", prop, value)

        self.cap = cap
        self.negotiated = (
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            float(cap.get(cv2.CAP_PROP_FPS)),
        )
        self.mismatches = self._compare()
        if self.mismatches:
            logger.warning(
                "Camera {} delivers {}x{} @ {:.1f} FPS instead of {} @ {} FPS",
                params.device_index,
                *self.negotiated,
                params.size_option,
                params.target_fps,
            )
        else:
            logger.success(
                "Camera {} streaming {} @ {} FPS",
                params.device_index,
                params.size_option,
                params.target_fps,
            )
        return True

    def _compare(self) -> dict[str, tuple[float, float]]:
        width, height, fps = self.negotiated
        params = self.params
        found: dict[str, tuple[float, float]] = {}
        if width != params.width:
            found["width"] = (params.width, width)
        if height != params.height:
            found["height"] = (params.height, height)
        # Some backends report 0 when the rate is unknown.
        if fps > 0 and abs(fps - params.target_fps) > FPS_TOLERANCE:
            found["fps"] = (params.target_fps, fps)
        return found

    @property
    def matches_request(self) -> bool:
        """Return True when the device delivers what was asked for."""
        return self.cap is not None and not self.mismatches

    def read(self) -> tuple[bool, np.ndarray | None]:
        if self.cap is None:
            return False, None
        return self.cap.read()

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None

    def is_opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def get_info(self) -> dict:
        """Return requested and negotiated stream settings."""
        width, height, fps = self.negotiated
        return {
            "backend": "OpenCV",
            "device": self.params.device_index,
            "requested": (
                self.params.width,
                self.params.height,
                self.params.target_fps,
            ),
            "width": width,
            "height": height,
            "fps": fps,
            "mismatches": dict(self.mismatches),
        }
