"""UI overlays and the display window."""

from __future__ import annotations

from facemesh_live.landmarks.ui.display import OpenCVDisplay
from facemesh_live.landmarks.ui.draw import (
    draw_faces,
    draw_notice,
    draw_stats_panel,
    get_color_by_fps,
    placeholder_frame,
)


__all__ = [
    "OpenCVDisplay",
    "draw_faces",
    "draw_notice",
    "draw_stats_panel",
    "get_color_by_fps",
    "placeholder_frame",
]
