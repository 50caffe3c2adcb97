"""Keyboard hotkeys mapped onto ``LiveConfig`` mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from facemesh_live.landmarks.config import (
    MEDIAPIPE_CPU,
    MODEL_BACKENDS,
    SUPPORTED_MODELS,
    TARGET_FPS_CHOICES,
)
from facemesh_live.pipeline.types import VIDEO_SIZES


if TYPE_CHECKING:
    from facemesh_live.landmarks.config import LiveConfig


ESCAPE = 27
QUIT_KEYS = (ord("q"), ESCAPE)

HELP_TEXT = (
    "m: model | b: backend | s: size | f: target fps | r: refine | "
    "+/-: max faces | x: box | t: mesh | q: quit"
)


def _next_item(items: tuple[object, ...], current: object) -> object:
    if current not in items:
        return items[0]
    return items[(items.index(current) + 1) % len(items)]


class KeyboardControls:
    """Translate key codes into configuration changes."""

    def handle_key(self, key: int, config: LiveConfig) -> bool:
        """Apply the action bound to ``key``; return False to quit."""
        if key in QUIT_KEYS:
            return False
        char = chr(key) if 0 <= key < 256 else ""
        handler = {
            "m": self.next_model,
            "b": self.next_backend,
            "s": self.next_size,
            "f": self.next_target_fps,
            "r": self.toggle_refine,
            "+": self.more_faces,
            "=": self.more_faces,
            "-": self.fewer_faces,
            "x": self.toggle_box,
            "t": self.toggle_mesh,
        }.get(char)
        if handler is None:
            return True
        try:
            handler(config)
        except ValueError as exc:
            logger.warning("Ignored '{}': {}", char, exc)
        return True

    def next_model(self, config: LiveConfig) -> None:
        """Switch to the next model, moving to a backend it supports first."""
        model = _next_item(SUPPORTED_MODELS, config.target_model)
        if config.backend not in MODEL_BACKENDS[model]:
            config.set_backend(MEDIAPIPE_CPU)
        config.set_model(model)

    def next_backend(self, config: LiveConfig) -> None:
        """Cycle through the backends the current model runs on."""
        backends = MODEL_BACKENDS[config.target_model]
        config.set_backend(_next_item(backends, config.backend))

    def next_size(self, config: LiveConfig) -> None:
        """Cycle the camera size option."""
        sizes = tuple(VIDEO_SIZES)
        config.set_size_option(_next_item(sizes, config.camera.size_option))

    def next_target_fps(self, config: LiveConfig) -> None:
        """Cycle the camera target frame rate."""
        config.set_target_fps(_next_item(TARGET_FPS_CHOICES, config.camera.target_fps))

    def toggle_refine(self, config: LiveConfig) -> None:
        """Toggle refined iris landmarks."""
        config.update_model_config(
            refine_landmarks=not config.model_config.refine_landmarks
        )

    def more_faces(self, config: LiveConfig) -> None:
        """Allow one more face."""
        config.update_model_config(max_faces=config.model_config.max_faces + 1)

    def fewer_faces(self, config: LiveConfig) -> None:
        """Allow one face fewer."""
        config.update_model_config(max_faces=config.model_config.max_faces - 1)

    def toggle_box(self, config: LiveConfig) -> None:
        """Toggle bounding boxes."""
        config.render.bounding_box = not config.render.bounding_box

    def toggle_mesh(self, config: LiveConfig) -> None:
        """Toggle mesh edges."""
        config.render.triangulate_mesh = not config.render.triangulate_mesh
