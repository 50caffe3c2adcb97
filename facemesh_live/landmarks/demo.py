"""Console entry point for the live face landmark demo."""

from __future__ import annotations

import platform

import cv2
from loguru import logger

from facemesh_live.landmarks.cli import build_config, parse_args
from facemesh_live.landmarks.controls import HELP_TEXT, KeyboardControls
from facemesh_live.landmarks.lifecycle import DetectorManager
from facemesh_live.landmarks.loop import FrameLoop
from facemesh_live.landmarks.ui.display import OpenCVDisplay
from facemesh_live.pipeline.capture import CameraSource
from facemesh_live.pipeline.logging import configure_logging
from facemesh_live.pipeline.metrics import InferenceStatsTracker


def run_live_demo(argv: list[str] | None = None) -> int:
    """Entry point for running the live demo."""
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_dir, json_logs=args.json_logs)

    try:
        config = build_config(args)
    except ValueError as exc:
        logger.error("Invalid configuration: {}", exc)
        return 2

    logger.info("Platform: {} {}", platform.system(), platform.release())
    logger.info("Python: {}", platform.python_version())
    logger.info("OpenCV: {}", cv2.__version__)
    logger.info("Model: {} on {}", config.target_model, config.backend)
    logger.info(
        "Requested: {} @ {} FPS (camera {})",
        config.camera.size_option,
        config.camera.target_fps,
        config.camera.device_index,
    )
    logger.info("Keys: {}", HELP_TEXT)

    loop = FrameLoop(
        config,
        CameraSource(),
        DetectorManager(),
        InferenceStatsTracker(),
        OpenCVDisplay(),
        controls=KeyboardControls(),
    )
    loop.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(run_live_demo())
