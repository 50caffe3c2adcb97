"""Detector lifecycle: create, dispose and recreate on configuration changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from facemesh_live.landmarks.config import DETECTOR_CHANGES, ChangeKind
from facemesh_live.landmarks.detectors import create_detector
from facemesh_live.landmarks.runtime import apply_backend_and_flags
from facemesh_live.pipeline.errors import (
    BackendError,
    FacemeshLiveError,
    InferenceError,
    ModelLoadError,
)
from facemesh_live.pipeline.handles import OwnedHandle
from facemesh_live.pipeline.types import DetectorState, InferenceResult


if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from facemesh_live.landmarks.config import LiveConfig, ModelConfig
    from facemesh_live.landmarks.detectors import Detector
    from facemesh_live.landmarks.runtime import RuntimeSettings


def _dispose_detector(detector: Detector) -> None:
    try:
        detector.dispose()
    except Exception as exc:
        logger.warning("Detector dispose raised: {}", exc)


class DetectorManager:
    """Owns at most one live detector.

    States: ``ABSENT`` before the first build, ``ACTIVE`` with a usable
    detector, ``FAILED`` after a load or inference error. Only a later
    reconfiguration leaves ``FAILED``.
    """

    def __init__(
        self,
        *,
        factory: Callable[
            [str, ModelConfig, RuntimeSettings], Detector
        ] = create_detector,
        apply_backend: Callable[
            [dict[str, object], str], RuntimeSettings
        ] = apply_backend_and_flags,
        notify: Callable[[FacemeshLiveError], None] | None = None,
    ) -> None:
        """Create an empty manager."""
        self._factory = factory
        self._apply_backend = apply_backend
        self.notify = notify
        self._handle: OwnedHandle[Detector] = OwnedHandle(
            _dispose_detector, label="detector"
        )
        self.state = DetectorState.ABSENT
        self.generation = 0
        self.runtime: RuntimeSettings | None = None
        self.reconfiguring = False
        self.last_error: FacemeshLiveError | None = None

    @property
    def detector(self) -> Detector | None:
        """Return the live detector, if any."""
        return self._handle.current

    @property
    def is_active(self) -> bool:
        """Return True when inference may run."""
        return self.state is DetectorState.ACTIVE and bool(self._handle)

    def reconfigure(self, config: LiveConfig) -> DetectorState:
        """Rebuild the detector from ``config``.

        The old detector is disposed first. The backend is re-applied when the
        backend or flags changed, or when no valid runtime is held. Pending
        model, backend and flag changes are consumed once the attempt is over,
        whether it succeeded or not.
        """
        pending = config.changes.pending()
        self.reconfiguring = True
        self.generation += 1
        logger.info(
            "Reconfiguring detector (generation {}): {} on {}",
            self.generation,
            config.target_model,
            config.backend,
        )
        try:
            self._handle.release()
            if (
                self.runtime is None
                or self.runtime.backend != config.backend
                or ChangeKind.BACKEND in pending
                or ChangeKind.FLAGS in pending
            ):
                self.runtime = None
                self.runtime = self._apply_backend(
                    dict(config.runtime_flags), config.backend
                )
            runtime = self.runtime
            self._handle.replace(
                lambda: self._factory(config.target_model, config.model_config, runtime)
            )
            self.state = DetectorState.ACTIVE
            self.last_error = None
        except (BackendError, ModelLoadError) as exc:
            self._fail(exc)
        finally:
            config.changes.consume(*DETECTOR_CHANGES)
            self.reconfiguring = False
        return self.state

    def estimate_faces(
        self,
        frame: np.ndarray,
        *,
        flip_horizontal: bool = False,
    ) -> InferenceResult | None:
        """Run the live detector on ``frame``.

        Returns None when no detector is active or the call failed; a failure
        disposes the detector and moves to ``FAILED``.
        """
        detector = self._handle.current
        if self.state is not DetectorState.ACTIVE or detector is None:
            return None
        generation = self.generation
        try:
            faces = detector.estimate_faces(frame, flip_horizontal=flip_horizontal)
        except InferenceError as exc:
            self._handle.release()
            self._fail(exc)
            return None
        except Exception as exc:
            self._handle.release()
            logger.opt(exception=exc).debug("Unexpected detector error")
            message = f"{type(exc).__name__}: {exc}"
            self._fail(InferenceError(message))
            return None
        return InferenceResult(faces=list(faces), generation=generation)

    def dispose(self) -> None:
        """Release the detector and return to ``ABSENT``."""
        self._handle.release()
        self.state = DetectorState.ABSENT

    def _fail(self, exc: FacemeshLiveError) -> None:
        self.state = DetectorState.FAILED
        self.last_error = exc
        logger.error("Detector failed: {}", exc)
        if self.notify is not None:
            self.notify(exc)
