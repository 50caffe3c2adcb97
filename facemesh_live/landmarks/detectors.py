"""Face detectors behind a common ``estimate_faces`` / ``dispose`` interface."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np
import onnxruntime as ort
from loguru import logger

from facemesh_live.landmarks.config import (
    MEDIAPIPE_FACE_DETECTOR,
    MEDIAPIPE_FACE_MESH,
    MODEL_BACKENDS,
    SUPPORTED_MODELS,
)
from facemesh_live.landmarks.preprocess import infer_input_size, letterbox, unletterbox
from facemesh_live.landmarks.runtime import MEDIAPIPE, ONNXRUNTIME
from facemesh_live.pipeline.errors import InferenceError, ModelLoadError
from facemesh_live.pipeline.types import BoundingBox, Face, Keypoint


if TYPE_CHECKING:
    from collections.abc import Callable

    from facemesh_live.landmarks.config import ModelConfig
    from facemesh_live.landmarks.runtime import RuntimeSettings


FACE_DETECTOR_KEYPOINTS = (
    "rightEye",
    "leftEye",
    "noseTip",
    "mouthCenter",
    "rightEarTragion",
    "leftEarTragion",
)


class Detector(Protocol):
    """Opaque frame -> faces capability."""

    name: str
    mesh_connections: tuple[tuple[int, int], ...]

    def estimate_faces(
        self,
        frame: np.ndarray,
        *,
        flip_horizontal: bool = False,
    ) -> list[Face]:
        """Return the faces found in a BGR frame."""
        ...

    def dispose(self) -> None:
        """Free model resources. Safe to call twice."""
        ...


def _load_mediapipe_solutions() -> object:
    try:
        import mediapipe as mp

        return mp.solutions
    except (ImportError, AttributeError) as exc:
        message = f"MediaPipe solutions are not available: {exc}"
        raise ModelLoadError(message) from exc


def _validate_frame(frame: object) -> np.ndarray:
    if not isinstance(frame, np.ndarray) or frame.size == 0:
        message = "Frame is empty or not an image array"
        raise InferenceError(message)
    if frame.ndim != 3 or frame.shape[2] != 3 or frame.dtype != np.uint8:
        message = f"Expected HxWx3 uint8 frame, got shape {frame.shape} {frame.dtype}"
        raise InferenceError(message)
    return frame


def _to_rgb(frame: np.ndarray) -> np.ndarray:
    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    rgb.flags.writeable = False
    return rgb


def flip_faces(faces: list[Face], width: int) -> list[Face]:
    """Mirror faces horizontally inside a frame of ``width`` pixels."""
    flipped: list[Face] = []
    for face in faces:
        keypoints = [
            Keypoint(x=width - kp.x, y=kp.y, z=kp.z, name=kp.name)
            for kp in face.keypoints
        ]
        box = None
        if face.box is not None:
            box = BoundingBox(
                x_min=width - face.box.x_max,
                y_min=face.box.y_min,
                width=face.box.width,
                height=face.box.height,
            )
        flipped.append(Face(keypoints=keypoints, box=box, score=face.score))
    return flipped


class MediaPipeFaceDetector:
    """Short/full range BlazeFace detector with six named keypoints."""

    name = MEDIAPIPE_FACE_DETECTOR
    mesh_connections: tuple[tuple[int, int], ...] = ()

    def __init__(
        self, model_config: ModelConfig, solutions: object | None = None
    ) -> None:
        """Build the MediaPipe face detection graph."""
        solutions = solutions or _load_mediapipe_solutions()
        self.max_faces = model_config.max_faces
        self._detector = solutions.face_detection.FaceDetection(
            model_selection=0 if model_config.model_type == "short" else 1,
            min_detection_confidence=model_config.min_detection_confidence,
        )

    def estimate_faces(
        self,
        frame: np.ndarray,
        *,
        flip_horizontal: bool = False,
    ) -> list[Face]:
        """Detect faces and their six keypoints."""
        if self._detector is None:
            message = "Detector has been disposed"
            raise InferenceError(message)
        frame = _validate_frame(frame)
        h, w = frame.shape[:2]
        try:
            results = self._detector.process(_to_rgb(frame))
        except Exception as exc:
            message = f"Face detection failed: {exc}"
            raise InferenceError(message) from exc

        faces: list[Face] = []
        for det in (results.detections or [])[: self.max_faces]:
            location = det.location_data
            bb = location.relative_bounding_box
            keypoints = [
                Keypoint(x=kp.x * w, y=kp.y * h, name=name)
                for name, kp in zip(
                    FACE_DETECTOR_KEYPOINTS, location.relative_keypoints
                )
            ]
            faces.append(
                Face(
                    keypoints=keypoints,
                    box=BoundingBox(
                        x_min=bb.xmin * w,
                        y_min=bb.ymin * h,
                        width=bb.width * w,
                        height=bb.height * h,
                    ),
                    score=float(det.score[0]) if det.score else None,
                )
            )
        return flip_faces(faces, w) if flip_horizontal else faces

    def dispose(self) -> None:
        """Close the MediaPipe graph."""
        if self._detector is not None:
            self._detector.close()
            self._detector = None


class MediaPipeFaceMesh:
    """468-point face mesh (478 with refined iris landmarks)."""

    name = MEDIAPIPE_FACE_MESH

    def __init__(
        self, model_config: ModelConfig, solutions: object | None = None
    ) -> None:
        """Build the MediaPipe face mesh graph."""
        solutions = solutions or _load_mediapipe_solutions()
        self._mesh = solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=model_config.max_faces,
            refine_landmarks=model_config.refine_landmarks,
            min_detection_confidence=model_config.min_detection_confidence,
            min_tracking_confidence=0.5,
        )
        self.mesh_connections = tuple(sorted(solutions.face_mesh.FACEMESH_TESSELATION))

    def estimate_faces(
        self,
        frame: np.ndarray,
        *,
        flip_horizontal: bool = False,
    ) -> list[Face]:
        """Estimate mesh landmarks in pixel coordinates (z scaled by width)."""
        if self._mesh is None:
            message = "Detector has been disposed"
            raise InferenceError(message)
        frame = _validate_frame(frame)
        h, w = frame.shape[:2]
        try:
            results = self._mesh.process(_to_rgb(frame))
        except Exception as exc:
            message = f"Face mesh failed: {exc}"
            raise InferenceError(message) from exc

        faces: list[Face] = []
        for landmarks in results.multi_face_landmarks or []:
            keypoints = [
                Keypoint(x=lm.x * w, y=lm.y * h, z=lm.z * w)
                for lm in landmarks.landmark
            ]
            if keypoints:
                faces.append(
                    Face(keypoints=keypoints, box=BoundingBox.from_keypoints(keypoints))
                )
        return flip_faces(faces, w) if flip_horizontal else faces

    def dispose(self) -> None:
        """Close the MediaPipe graph."""
        if self._mesh is not None:
            self._mesh.close()
            self._mesh = None


def _sigmoid(value: float) -> float:
    return float(1.0 / (1.0 + np.exp(-value)))


class OnnxFaceMesh:
    """Face mesh regressor exported to ONNX.

    The first output holds ``N * 3`` landmark values in input pixels. An
    optional second output is a face-presence logit.
    """

    name = MEDIAPIPE_FACE_MESH
    mesh_connections: tuple[tuple[int, int], ...] = ()

    def __init__(
        self,
        model_config: ModelConfig,
        runtime: RuntimeSettings,
        session_factory: Callable[..., ort.InferenceSession] = ort.InferenceSession,
    ) -> None:
        """Load the ONNX model with the runtime's providers and options."""
        model_path = model_config.model_path
        if not model_path:
            message = f"{runtime.backend} needs a model path for {self.name}"
            raise ModelLoadError(message)
        if not Path(model_path).is_file():
            message = f"Model file not found: {model_path}"
            raise ModelLoadError(message)

        logger.info("Loading model: {}", model_path)
        try:
            self._session = session_factory(
                model_path,
                sess_options=runtime.session_options,
                providers=list(runtime.providers),
            )
        except Exception as exc:
            message = f"Failed to load {model_path}: {exc}"
            raise ModelLoadError(message) from exc

        model_input = self._session.get_inputs()[0]
        self._input_name = model_input.name
        self._input_size = infer_input_size(model_input.shape)
        self.min_detection_confidence = model_config.min_detection_confidence
        logger.success(
            "Model loaded using: {} (input {}x{})",
            self._session.get_providers()[0],
            self._input_size[1],
            self._input_size[0],
        )

    def estimate_faces(
        self,
        frame: np.ndarray,
        *,
        flip_horizontal: bool = False,
    ) -> list[Face]:
        """Run the regressor on the whole frame; returns at most one face."""
        if self._session is None:
            message = "Detector has been disposed"
            raise InferenceError(message)
        frame = _validate_frame(frame)
        h, w = frame.shape[:2]
        blob, scale, pad_x, pad_y = letterbox(frame, self._input_size)
        try:
            outputs = self._session.run(None, {self._input_name: blob})
        except Exception as exc:
            message = f"ONNX inference failed: {exc}"
            raise InferenceError(message) from exc

        if not outputs:
            message = "Model returned no outputs"
            raise InferenceError(message)
        values = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        if values.size == 0 or values.size % 3:
            message = f"Unexpected landmark output of size {values.size}"
            raise InferenceError(message)

        score = None
        if len(outputs) > 1:
            score = _sigmoid(float(np.asarray(outputs[1]).reshape(-1)[0]))
            if score < self.min_detection_confidence:
                return []

        points = unletterbox(values.reshape(-1, 3), scale, pad_x, pad_y)
        keypoints = [Keypoint(x=float(x), y=float(y), z=float(z)) for x, y, z in points]
        faces = [
            Face(
                keypoints=keypoints,
                box=BoundingBox.from_keypoints(keypoints),
                score=score,
            )
        ]
        return flip_faces(faces, w) if flip_horizontal else faces

    def dispose(self) -> None:
        """Drop the inference session."""
        self._session = None


def create_detector(
    model: str,
    model_config: ModelConfig,
    runtime: RuntimeSettings,
) -> Detector:
    """Construct the detector for ``model`` on the resolved runtime.

    Raises:
        ModelLoadError: unknown model, unsupported backend or load failure.
    """
    if model not in SUPPORTED_MODELS:
        message = f"Unknown model {model!r}; expected one of {SUPPORTED_MODELS}"
        raise ModelLoadError(message)
    if runtime.backend not in MODEL_BACKENDS[model]:
        message = f"{model} does not run on {runtime.backend}"
        raise ModelLoadError(message)

    logger.info("Creating detector {} on {}", model, runtime.backend)
    try:
        if runtime.runtime == ONNXRUNTIME:
            detector: Detector = OnnxFaceMesh(model_config, runtime)
        elif runtime.runtime == MEDIAPIPE and model == MEDIAPIPE_FACE_DETECTOR:
            detector = MediaPipeFaceDetector(model_config)
        else:
            detector = MediaPipeFaceMesh(model_config)
    except ModelLoadError:
        raise
    except Exception as exc:
        message = f"Failed to create {model}: {exc}"
        raise ModelLoadError(message) from exc

    logger.success("Detector ready: {}", model)
    return detector
