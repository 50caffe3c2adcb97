"""Backend selection and runtime flag application."""

from __future__ import annotations

from dataclasses import dataclass, field

import cv2
import onnxruntime as ort
from loguru import logger

from facemesh_live.landmarks.config import BACKENDS, ONNXRUNTIME_CUDA
from facemesh_live.pipeline.errors import BackendError


MEDIAPIPE = "mediapipe"
ONNXRUNTIME = "onnxruntime"

GRAPH_OPTIMIZATION_LEVELS = {
    "disable": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}


@dataclass(frozen=True)
class FlagSpec:
    """Type and scope of a runtime flag."""

    kind: type
    runtimes: frozenset[str] = frozenset()
    choices: tuple[str, ...] = ()


FLAG_SPECS: dict[str, FlagSpec] = {
    "opencv_num_threads": FlagSpec(int),
    "intra_op_num_threads": FlagSpec(int, frozenset({ONNXRUNTIME})),
    "inter_op_num_threads": FlagSpec(int, frozenset({ONNXRUNTIME})),
    "graph_optimization_level": FlagSpec(
        str, frozenset({ONNXRUNTIME}), tuple(GRAPH_OPTIMIZATION_LEVELS)
    ),
    "enable_mem_pattern": FlagSpec(bool, frozenset({ONNXRUNTIME})),
    "cuda_device_id": FlagSpec(int, frozenset({ONNXRUNTIME})),
}


@dataclass(frozen=True)
class RuntimeSettings:
    """Resolved backend state handed to detector construction."""

    backend: str
    runtime: str
    flags: dict[str, object] = field(default_factory=dict)
    providers: tuple[object, ...] = ()
    session_options: ort.SessionOptions | None = None


def runtime_of(backend: str) -> str:
    """Return the runtime family of a backend name."""
    return backend.split("-", 1)[0]


def _coerce_flag(name: str, value: object) -> object:
    spec = FLAG_SPECS.get(name)
    if spec is None:
        message = f"Unknown runtime flag {name!r}; expected one of {sorted(FLAG_SPECS)}"
        raise BackendError(message)

    if spec.kind is bool:
        if not isinstance(value, bool):
            message = f"Flag {name!r} expects a bool, got {value!r}"
            raise BackendError(message)
        return value

    if spec.kind is int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            message = f"Flag {name!r} expects a non-negative int, got {value!r}"
            raise BackendError(message)
        return value

    text = str(value).lower()
    if spec.choices and text not in spec.choices:
        message = f"Flag {name!r} expects one of {spec.choices}, got {value!r}"
        raise BackendError(message)
    return text


def _resolve_providers(backend: str, flags: dict[str, object]) -> tuple[object, ...]:
    if backend != ONNXRUNTIME_CUDA:
        return ("CPUExecutionProvider",)

    available = ort.get_available_providers()
    if "CUDAExecutionProvider" not in available:
        message = f"CUDAExecutionProvider not available (have: {', '.join(available)})"
        raise BackendError(message)
    return (
        (
            "CUDAExecutionProvider",
            {
                "device_id": int(flags.get("cuda_device_id", 0)),
                "arena_extend_strategy": "kNextPowerOfTwo",
            },
        ),
        "CPUExecutionProvider",
    )


def _build_session_options(flags: dict[str, object]) -> ort.SessionOptions:
    options = ort.SessionOptions()
    if "intra_op_num_threads" in flags:
        options.intra_op_num_threads = int(flags["intra_op_num_threads"])
    if "inter_op_num_threads" in flags:
        options.inter_op_num_threads = int(flags["inter_op_num_threads"])
    if "graph_optimization_level" in flags:
        options.graph_optimization_level = GRAPH_OPTIMIZATION_LEVELS[
            str(flags["graph_optimization_level"])
        ]
    if "enable_mem_pattern" in flags:
        options.enable_mem_pattern = bool(flags["enable_mem_pattern"])
    return options


def apply_backend_and_flags(
    flags: dict[str, object],
    backend: str,
) -> RuntimeSettings:
    """Validate and apply ``flags`` for ``backend``.

    Process-wide flags (OpenCV threading) take effect immediately; the rest
    are resolved into settings for the next detector.

    Raises:
        BackendError: unknown backend, unavailable provider or invalid flag.
    """
    if backend not in BACKENDS:
        message = f"Unknown backend {backend!r}; expected one of {BACKENDS}"
        raise BackendError(message)

    runtime = runtime_of(backend)
    resolved = {name: _coerce_flag(name, value) for name, value in flags.items()}

    ignored = sorted(
        name
        for name in resolved
        if FLAG_SPECS[name].runtimes and runtime not in FLAG_SPECS[name].runtimes
    )
    if ignored:
        logger.warning("Flags not used by {}: {}", backend, ", ".join(ignored))

    if "opencv_num_threads" in resolved:
        cv2.setNumThreads(int(resolved["opencv_num_threads"]))
        logger.debug("OpenCV threads: {}", cv2.getNumThreads())

    if runtime != ONNXRUNTIME:
        logger.success("Backend ready: {}", backend)
        return RuntimeSettings(backend=backend, runtime=runtime, flags=resolved)

    try:
        providers = _resolve_providers(backend, resolved)
        session_options = _build_session_options(resolved)
    except BackendError:
        raise
    except Exception as exc:
        message = f"Failed to configure {backend}: {exc}"
        raise BackendError(message) from exc

    logger.success("Backend ready: {} (providers: {})", backend, providers)
    return RuntimeSettings(
        backend=backend,
        runtime=runtime,
        flags=resolved,
        providers=providers,
        session_options=session_options,
    )
