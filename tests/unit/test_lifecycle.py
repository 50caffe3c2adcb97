"""Unit tests for DetectorManager."""

from __future__ import annotations

import numpy as np

from facemesh_live.landmarks.config import (
    DETECTOR_CHANGES,
    MEDIAPIPE_FACE_DETECTOR,
    ONNXRUNTIME_CPU,
    ChangeKind,
)
from facemesh_live.pipeline.errors import InferenceError, ModelLoadError
from facemesh_live.pipeline.types import DetectorState


FRAME = np.zeros((4, 4, 3), dtype=np.uint8)


class TestDetectorManager:
    """Tests for the detector state machine."""

    def test_starts_absent(self, manager):
        """Test nothing is built before the first reconfiguration."""
        assert manager.state is DetectorState.ABSENT
        assert manager.detector is None
        assert manager.estimate_faces(FRAME) is None

    def test_reconfigure_activates(self, manager, config, detectors):
        """Test a successful build becomes ACTIVE with a new generation."""
        state = manager.reconfigure(config)

        assert state is DetectorState.ACTIVE
        assert manager.is_active
        assert manager.generation == 1
        assert detectors.created == 1
        assert detectors.backend_calls == [({}, config.backend)]

    def test_dispose_precedes_create(self, manager, config, detectors):
        """Test swaps never hold two live detectors."""
        manager.reconfigure(config)
        config.set_model(MEDIAPIPE_FACE_DETECTOR)
        manager.reconfigure(config)
        config.update_model_config(max_faces=2)
        manager.reconfigure(config)

        assert detectors.max_live == 1
        assert detectors.events == [
            ("create", 1),
            ("dispose", 1),
            ("create", 2),
            ("dispose", 2),
            ("create", 3),
        ]

    def test_consumes_detector_changes_once(self, manager, config):
        """Test the manager clears model, backend and flag marks."""
        config.set_backend(ONNXRUNTIME_CPU)
        config.set_flag("intra_op_num_threads", 2)

        manager.reconfigure(config)

        assert not config.changes.is_pending(*DETECTOR_CHANGES)
        assert config.changes.consumed[ChangeKind.BACKEND] == 1
        assert config.changes.consumed[ChangeKind.FLAGS] == 1

    def test_changes_stay_pending_during_construction(
        self, manager, config, detectors
    ):
        """Test marks are cleared only after the backend and detector are built."""
        seen = []

        def _record(step):
            seen.append(
                (
                    step,
                    config.changes.is_pending(ChangeKind.MODEL),
                    config.changes.is_pending(ChangeKind.FLAGS),
                    manager.reconfiguring,
                )
            )

        detectors.on_backend = lambda: _record("backend")
        detectors.on_create = lambda: _record("create")
        config.set_model(MEDIAPIPE_FACE_DETECTOR)
        config.set_flag("opencv_num_threads", 1)

        manager.reconfigure(config)

        assert seen == [("backend", True, True, True), ("create", True, True, True)]
        assert not config.changes.is_pending(*DETECTOR_CHANGES)
        assert manager.reconfiguring is False

    def test_changes_stay_pending_during_failed_construction(
        self, manager, config, detectors
    ):
        """Test a failing build still sees its marks until the attempt ends."""
        seen = []
        detectors.fail_create = True
        detectors.on_create = lambda: seen.append(
            config.changes.is_pending(ChangeKind.MODEL)
        )
        config.set_model(MEDIAPIPE_FACE_DETECTOR)

        assert manager.reconfigure(config) is DetectorState.FAILED
        assert seen == [True]
        assert not config.changes.is_pending(ChangeKind.MODEL)

    def test_backend_reapplied_only_when_needed(self, manager, config, detectors):
        """Test a model-only change reuses the resolved runtime."""
        manager.reconfigure(config)
        config.update_model_config(max_faces=3)
        manager.reconfigure(config)

        assert len(detectors.backend_calls) == 1

        config.set_flag("opencv_num_threads", 1)
        manager.reconfigure(config)

        assert len(detectors.backend_calls) == 2
        assert detectors.backend_calls[-1][0] == {"opencv_num_threads": 1}

    def test_load_failure_marks_failed_and_consumes(self, manager, config, detectors):
        """Test a construction error leaves FAILED with no detector."""
        errors = []
        manager.notify = errors.append
        manager.reconfigure(config)
        detectors.fail_create = True
        config.update_model_config(max_faces=2)

        state = manager.reconfigure(config)

        assert state is DetectorState.FAILED
        assert manager.detector is None
        assert detectors.live == 0
        assert isinstance(manager.last_error, ModelLoadError)
        assert errors == [manager.last_error]
        assert not config.changes
        assert manager.reconfiguring is False

    def test_backend_failure_marks_failed(self, manager, config, detectors):
        """Test a backend error fails without building a detector."""
        detectors.fail_backend = True

        assert manager.reconfigure(config) is DetectorState.FAILED
        assert detectors.created == 0
        assert manager.runtime is None

    def test_backend_retried_after_failure(self, manager, config, detectors):
        """Test a failed backend is applied again on the next attempt."""
        detectors.fail_backend = True
        manager.reconfigure(config)
        detectors.fail_backend = False
        config.update_model_config(max_faces=2)

        assert manager.reconfigure(config) is DetectorState.ACTIVE
        assert len(detectors.backend_calls) == 2

    def test_inference_failure_disposes(self, manager, config, detectors):
        """Test an inference error disposes and stops further calls."""
        manager.reconfigure(config)
        detectors.fail_on_calls = {2}

        assert manager.estimate_faces(FRAME).faces
        assert manager.estimate_faces(FRAME) is None
        assert manager.state is DetectorState.FAILED
        assert isinstance(manager.last_error, InferenceError)
        assert detectors.live == 0

        assert manager.estimate_faces(FRAME) is None
        assert detectors.calls == 2

    def test_unexpected_error_is_wrapped(self, manager, config):
        """Test non-inference exceptions are handled the same way."""
        manager.reconfigure(config)

        def _explode(*_args, **_kwargs):
            message = "bad shape"
            raise ValueError(message)

        manager.detector.estimate_faces = _explode

        assert manager.estimate_faces(FRAME) is None
        assert isinstance(manager.last_error, InferenceError)
        assert "ValueError: bad shape" in str(manager.last_error)

    def test_results_carry_generation(self, manager, config):
        """Test results from an old generation are not drawable."""
        manager.reconfigure(config)
        result = manager.estimate_faces(FRAME)

        assert result.is_drawable(manager.generation)

        config.update_model_config(max_faces=2)
        manager.reconfigure(config)

        assert not result.is_drawable(manager.generation)

    def test_dispose_returns_to_absent(self, manager, config, detectors):
        """Test dispose frees the detector and is idempotent."""
        manager.reconfigure(config)

        manager.dispose()
        manager.dispose()

        assert manager.state is DetectorState.ABSENT
        assert detectors.live == 0
