from __future__ import annotations

import argparse
from urllib.parse import parse_qs

from facemesh_live.landmarks.config import (
    BACKENDS,
    SUPPORTED_MODELS,
    LiveConfig,
    ModelConfig,
    RenderOptions,
)
from facemesh_live.pipeline.types import (
    DEFAULT_SIZE_OPTION,
    DEFAULT_TARGET_FPS,
    VIDEO_SIZES,
    CameraParams,
)


QUERY_KEYS = ("model", "backend", "size", "fps", "camera", "max_faces")


def parse_flag_value(text: str) -> object:
    """Parse a flag value as bool, int, float or plain string."""
    lowered = text.strip().lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return text


def parse_flag(text: str) -> tuple[str, object]:
    """Split ``KEY=VALUE`` into a flag name and parsed value."""
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        message = f"expected KEY=VALUE, got {text!r}"
        raise argparse.ArgumentTypeError(message)
    return name.strip(), parse_flag_value(value)


def normalize_size(text: str) -> str:
    """Map ``640x480`` style input onto a size option name."""
    width, sep, height = text.lower().replace(" ", "").partition("x")
    candidate = f"{width} X {height}" if sep else text
    if candidate not in VIDEO_SIZES:
        message = f"unknown size {text!r}; expected one of {tuple(VIDEO_SIZES)}"
        raise argparse.ArgumentTypeError(message)
    return candidate


def parse_query_params(query: str) -> dict[str, str]:
    """Parse a URL-style query string, keeping the last value of each key."""
    parsed = parse_qs(query.lstrip("?"), keep_blank_values=False)
    return {key: values[-1] for key, values in parsed.items() if values}


def _apply_query(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    params = parse_query_params(args.params)
    unknown = sorted(set(params) - set(QUERY_KEYS))
    if unknown:
        parser.error(f"unknown query parameters: {', '.join(unknown)}")

    if "model" in params:
        if params["model"] not in SUPPORTED_MODELS:
            parser.error(
                f"unknown model {params['model']!r}; "
                f"expected one of {', '.join(SUPPORTED_MODELS)}"
            )
        args.model = params["model"]
    if "backend" in params:
        if params["backend"] not in BACKENDS:
            parser.error(f"unknown backend {params['backend']!r}")
        args.backend = params["backend"]
    try:
        if "size" in params:
            args.size = normalize_size(params["size"])
        if "fps" in params:
            args.target_fps = int(params["fps"])
        if "camera" in params:
            args.camera = int(params["camera"])
        if "max_faces" in params:
            args.max_faces = int(params["max_faces"])
    except (ValueError, argparse.ArgumentTypeError) as exc:
        parser.error(str(exc))


def parse_args(argv: list | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Live webcam face landmarks with hot-swappable models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  facemesh-live
  facemesh-live --model mediapipe_face_detector --size 640x360
  facemesh-live --backend onnxruntime-cuda --model-path face_mesh.onnx
  facemesh-live --params "model=mediapipe_face_mesh&backend=mediapipe-cpu"
  facemesh-live --flag opencv_num_threads=2 --flag intra_op_num_threads=4
		""",
    )

    parser.add_argument(
        "--model", type=str, choices=SUPPORTED_MODELS, default=SUPPORTED_MODELS[1]
    )
    parser.add_argument("--backend", type=str, choices=BACKENDS, default=BACKENDS[0])
    parser.add_argument("--camera", type=int, default=0)
    parser.add_argument(
        "--size",
        type=normalize_size,
        default=DEFAULT_SIZE_OPTION,
        help="Camera size, e.g. 640x480, 640x360 or 360x270",
    )
    parser.add_argument("--target-fps", type=int, default=DEFAULT_TARGET_FPS)
    parser.add_argument(
        "--model-path",
        type=str,
        default=None,
        help="ONNX face mesh model for the onnxruntime backends",
    )
    parser.add_argument("--max-faces", type=int, default=1)
    parser.add_argument(
        "--flag",
        type=parse_flag,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Runtime flag applied with the backend (repeatable)",
    )
    parser.add_argument(
        "--params",
        type=str,
        default="",
        help="URL-style query string; its values override the options above",
    )
    parser.add_argument(
        "--no-mirror",
        action="store_true",
        help="Show the camera image unmirrored",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument("--log-dir", type=str, default="logs")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Also write serialized JSON log lines",
    )

    args = parser.parse_args(argv)
    if args.params:
        _apply_query(parser, args)
    return args


def build_config(args: argparse.Namespace) -> LiveConfig:
    """Build the initial configuration; no change is pending afterwards.

    Raises:
        ValueError: the options describe an invalid configuration.
    """
    return LiveConfig(
        target_model=args.model,
        backend=args.backend,
        runtime_flags=dict(args.flag),
        camera=CameraParams(
            device_index=args.camera,
            size_option=args.size,
            target_fps=args.target_fps,
        ),
        model_config=ModelConfig(max_faces=args.max_faces, model_path=args.model_path),
        render=RenderOptions(mirror=not args.no_mirror),
    )
