"""Letterboxing for the ONNX face mesh input and mapping landmarks back."""

from __future__ import annotations

import cv2
import numpy as np


DEFAULT_MESH_INPUT = (192, 192)


def infer_input_size(
    input_shape: list[object] | None,
    default: tuple[int, int] = DEFAULT_MESH_INPUT,
) -> tuple[int, int]:
    """Infer (height, width) from an NCHW ONNX input shape."""
    if not input_shape or len(input_shape) < 4:
        return default

    height = input_shape[-2]
    width = input_shape[-1]

    if isinstance(height, int) and isinstance(width, int):
        return (height, width)

    return default


def letterbox(
    frame: np.ndarray,
    input_size: tuple[int, int] = DEFAULT_MESH_INPUT,
) -> tuple[np.ndarray, float, int, int]:
    """Resize ``frame`` into ``input_size`` keeping aspect, as an RGB NCHW blob."""
    original_h, original_w = frame.shape[:2]

    scale = min(input_size[0] / original_h, input_size[1] / original_w)
    new_w, new_h = max(1, int(original_w * scale)), max(1, int(original_h * scale))

    resized = cv2.resize(frame, (new_w, new_h))

    padded = np.zeros((input_size[0], input_size[1], 3), dtype=np.uint8)
    pad_x, pad_y = (input_size[1] - new_w) // 2, (input_size[0] - new_h) // 2
    padded[pad_y : pad_y + new_h, pad_x : pad_x + new_w] = resized

    blob = padded[:, :, ::-1].astype(np.float32) / 255.0
    blob = blob.transpose(2, 0, 1)[np.newaxis, ...]

    return blob, scale, pad_x, pad_y


def unletterbox(
    points: np.ndarray,
    scale: float,
    pad_x: int,
    pad_y: int,
) -> np.ndarray:
    """Map ``(N, 3)`` model-input coordinates back to frame pixels."""
    out = points.astype(np.float32).copy()
    out[:, 0] = (out[:, 0] - pad_x) / scale
    out[:, 1] = (out[:, 1] - pad_y) / scale
    out[:, 2] = out[:, 2] / scale
    return out
