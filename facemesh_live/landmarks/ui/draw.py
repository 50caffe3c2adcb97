"""OpenCV drawing helpers for landmark overlays and the HUD."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np


if TYPE_CHECKING:
    from collections.abc import Sequence

    from facemesh_live.pipeline.types import Face, FpsReport


# BGR
GREEN = (219, 238, 50)
RED = (53, 44, 255)
GREY = (150, 150, 150)


def get_color_by_fps(fps: float) -> tuple[int, int, int]:
    """Return a traffic-light color for an inference rate."""
    if fps >= 30:
        return (0, 255, 0)
    if fps >= 15:
        return (0, 165, 255)
    return (0, 0, 255)


def _clip_point(x: float, y: float, w: int, h: int) -> tuple[int, int]:
    return int(np.clip(x, 0, w - 1)), int(np.clip(y, 0, h - 1))


def draw_faces(
    frame: np.ndarray,
    faces: Sequence[Face],
    *,
    mesh_connections: Sequence[tuple[int, int]] = (),
    bounding_box: bool = True,
    triangulate_mesh: bool = True,
    keypoints: bool = True,
) -> np.ndarray:
    """Draw boxes, mesh edges and keypoints onto ``frame`` in place."""
    if frame is None or frame.size == 0:
        return frame

    h, w = frame.shape[:2]

    for face in faces:
        points = face.keypoints

        if triangulate_mesh and mesh_connections:
            for start, end in mesh_connections:
                if start >= len(points) or end >= len(points):
                    continue
                cv2.line(
                    frame,
                    _clip_point(points[start].x, points[start].y, w, h),
                    _clip_point(points[end].x, points[end].y, w, h),
                    GREY,
                    1,
                    cv2.LINE_AA,
                )

        if keypoints:
            for kp in points:
                radius, color = (3, RED) if kp.name else (1, GREEN)
                cv2.circle(frame, _clip_point(kp.x, kp.y, w, h), radius, color, -1)

        if bounding_box and face.box is not None:
            x1, y1 = _clip_point(face.box.x_min, face.box.y_min, w, h)
            x2, y2 = _clip_point(face.box.x_max, face.box.y_max, w, h)
            if x2 > x1 and y2 > y1:
                cv2.rectangle(frame, (x1, y1), (x2, y2), RED, 2)
                if face.score is not None:
                    cv2.putText(
                        frame,
                        f"{face.score:.2f}",
                        (x1, max(12, y1 - 6)),
                        cv2.FONT_HERSHEY_SIMPLEX,
                        0.5,
                        RED,
                        1,
                        cv2.LINE_AA,
                    )

    return frame


def draw_stats_panel(
    frame: np.ndarray,
    fps_report: FpsReport | None,
    status_lines: Sequence[str] = (),
) -> np.ndarray:
    """Draw the FPS readout and status lines in the top-left corner."""
    line_height = 20
    panel_height = 34 + line_height * len(status_lines)
    panel_width = min(frame.shape[1] - 10, 330)
    cv2.rectangle(frame, (5, 5), (panel_width, panel_height), (0, 0, 0), -1)
    cv2.rectangle(frame, (5, 5), (panel_width, panel_height), (100, 100, 100), 1)

    if fps_report is None:
        fps_text, fps_color = "FPS: --", GREY
    else:
        fps_text = (
            f"FPS: {fps_report.fps:.1f} ({fps_report.average_inference_ms:.1f} ms)"
        )
        fps_color = get_color_by_fps(fps_report.fps)
    cv2.putText(
        frame,
        fps_text,
        (10, 25),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.55,
        fps_color,
        1,
        cv2.LINE_AA,
    )

    y_offset = 25 + line_height
    for line in status_lines:
        cv2.putText(
            frame,
            line,
            (10, y_offset),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.45,
            GREY,
            1,
            cv2.LINE_AA,
        )
        y_offset += line_height
    return frame


def draw_notice(frame: np.ndarray, text: str) -> np.ndarray:
    """Draw an error notice along the bottom edge."""
    h, w = frame.shape[:2]
    cv2.rectangle(frame, (0, h - 30), (w, h), (0, 0, 0), -1)
    cv2.putText(
        frame,
        text[:90],
        (8, h - 10),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        (0, 0, 255),
        1,
        cv2.LINE_AA,
    )
    return frame


def placeholder_frame(width: int, height: int, text: str = "No camera") -> np.ndarray:
    """Return a black frame with centered text."""
    frame = np.zeros((max(1, height), max(1, width), 3), dtype=np.uint8)
    (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.8, 2)
    cv2.putText(
        frame,
        text,
        ((frame.shape[1] - tw) // 2, (frame.shape[0] + th) // 2),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.8,
        GREY,
        2,
        cv2.LINE_AA,
    )
    return frame
