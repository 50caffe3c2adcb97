"""OpenCV window display for the live demo."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
from loguru import logger

from facemesh_live.landmarks.ui.draw import (
    draw_faces,
    draw_notice,
    draw_stats_panel,
    placeholder_frame,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

    from facemesh_live.landmarks.config import RenderOptions
    from facemesh_live.pipeline.types import Face, FpsReport


class OpenCVDisplay:
    """Compose one frame per tick and show it in a ``cv2.imshow`` window.

    Call order per tick: ``draw_frame`` (or ``draw_placeholder``), then
    optionally ``draw_results``, then ``present``.
    """

    def __init__(self, title: str = "Facemesh Live (q to quit)") -> None:
        """Create the display; the window opens on the first ``present``."""
        self.title = title
        self._canvas: np.ndarray | None = None
        self._shown = False
        self._mirror = True

    def draw_frame(self, frame: np.ndarray, options: RenderOptions) -> None:
        """Start a new canvas from a camera frame."""
        self._canvas = frame.copy()
        self._mirror = options.mirror

    def draw_placeholder(self, width: int, height: int, text: str) -> None:
        """Start a new canvas without a camera frame."""
        self._canvas = placeholder_frame(width, height, text)
        self._mirror = False

    def draw_results(
        self,
        faces: Sequence[Face],
        mesh_connections: Sequence[tuple[int, int]],
        options: RenderOptions,
    ) -> None:
        """Overlay detected faces on the current canvas."""
        if self._canvas is None:
            logger.warning("draw_results called before draw_frame")
            return
        draw_faces(
            self._canvas,
            faces,
            mesh_connections=mesh_connections,
            bounding_box=options.bounding_box,
            triangulate_mesh=options.triangulate_mesh,
            keypoints=options.keypoints,
        )

    def present(
        self,
        fps_report: FpsReport | None,
        status_lines: Sequence[str] = (),
        notice: str | None = None,
    ) -> np.ndarray | None:
        """Mirror the canvas if requested, draw the HUD and show it."""
        if self._canvas is None:
            return None
        canvas = cv2.flip(self._canvas, 1) if self._mirror else self._canvas
        draw_stats_panel(canvas, fps_report, status_lines)
        if notice:
            draw_notice(canvas, notice)
        cv2.imshow(self.title, canvas)
        self._shown = True
        self._canvas = None
        return canvas

    def poll_key(self) -> int:
        """Pump window events; return the pressed key code or -1."""
        key = cv2.waitKey(1)
        return -1 if key < 0 else key & 0xFF

    def is_open(self) -> bool:
        """Return False once the user closed the window."""
        if not self._shown:
            return True
        try:
            return cv2.getWindowProperty(self.title, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return False

    def close(self) -> None:
        """Destroy the window."""
        if self._shown:
            cv2.destroyWindow(self.title)
            self._shown = False
