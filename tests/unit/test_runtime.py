"""Unit tests for backend and runtime flag application."""

from __future__ import annotations

from unittest.mock import patch

import onnxruntime as ort
import pytest

from facemesh_live.landmarks.config import (
    MEDIAPIPE_CPU,
    ONNXRUNTIME_CPU,
    ONNXRUNTIME_CUDA,
)
from facemesh_live.landmarks.runtime import (
    MEDIAPIPE,
    ONNXRUNTIME,
    apply_backend_and_flags,
    runtime_of,
)
from facemesh_live.pipeline.errors import BackendError


class TestApplyBackendAndFlags:
    """Tests for apply_backend_and_flags."""

    def test_runtime_family(self):
        """Test backend names map onto runtime families."""
        assert runtime_of(MEDIAPIPE_CPU) == MEDIAPIPE
        assert runtime_of(ONNXRUNTIME_CUDA) == ONNXRUNTIME

    def test_mediapipe_has_no_providers(self):
        """Test MediaPipe settings carry no ONNX providers."""
        settings = apply_backend_and_flags({}, MEDIAPIPE_CPU)

        assert settings.backend == MEDIAPIPE_CPU
        assert settings.providers == ()
        assert settings.session_options is None

    def test_unknown_backend(self):
        """Test unknown backends raise BackendError."""
        with pytest.raises(BackendError, match="webgpu"):
            apply_backend_and_flags({}, "webgpu")

    def test_unknown_flag(self):
        """Test unknown flags raise BackendError."""
        with pytest.raises(BackendError, match="WEBGL_PACK"):
            apply_backend_and_flags({"WEBGL_PACK": True}, MEDIAPIPE_CPU)

    @pytest.mark.parametrize(
        "flags",
        [
            {"intra_op_num_threads": -1},
            {"intra_op_num_threads": "four"},
            {"enable_mem_pattern": 1},
            {"graph_optimization_level": "max"},
        ],
    )
    def test_invalid_flag_values(self, flags):
        """Test badly typed flag values raise BackendError."""
        with pytest.raises(BackendError):
            apply_backend_and_flags(flags, ONNXRUNTIME_CPU)

    def test_onnx_cpu_session_options(self):
        """Test ONNX flags end up in the session options."""
        settings = apply_backend_and_flags(
            {
                "intra_op_num_threads": 2,
                "graph_optimization_level": "BASIC",
                "enable_mem_pattern": False,
            },
            ONNXRUNTIME_CPU,
        )

        assert settings.providers == ("CPUExecutionProvider",)
        assert settings.session_options.intra_op_num_threads == 2
        assert (
            settings.session_options.graph_optimization_level
            == ort.GraphOptimizationLevel.ORT_ENABLE_BASIC
        )
        assert settings.session_options.enable_mem_pattern is False
        assert settings.flags["graph_optimization_level"] == "basic"

    def test_onnx_flags_ignored_on_mediapipe(self):
        """Test flags for another runtime are kept but not applied."""
        settings = apply_backend_and_flags({"intra_op_num_threads": 2}, MEDIAPIPE_CPU)

        assert settings.session_options is None
        assert settings.flags == {"intra_op_num_threads": 2}

    @patch("facemesh_live.landmarks.runtime.cv2.setNumThreads")
    def test_opencv_threads_applied(self, mock_set_threads):
        """Test the OpenCV thread flag applies on every backend."""
        apply_backend_and_flags({"opencv_num_threads": 3}, MEDIAPIPE_CPU)

        mock_set_threads.assert_called_once_with(3)

    @patch("facemesh_live.landmarks.runtime.ort.get_available_providers")
    def test_cuda_unavailable(self, mock_providers):
        """Test the CUDA backend fails without the CUDA provider."""
        mock_providers.return_value = ["CPUExecutionProvider"]

        with pytest.raises(BackendError, match="CUDAExecutionProvider"):
            apply_backend_and_flags({}, ONNXRUNTIME_CUDA)

    @patch("facemesh_live.landmarks.runtime.ort.get_available_providers")
    def test_cuda_providers(self, mock_providers):
        """Test CUDA is preferred with CPU fallback."""
        mock_providers.return_value = ["CUDAExecutionProvider", "CPUExecutionProvider"]

        settings = apply_backend_and_flags({"cuda_device_id": 1}, ONNXRUNTIME_CUDA)

        cuda, cpu = settings.providers
        assert cuda[0] == "CUDAExecutionProvider"
        assert cuda[1]["device_id"] == 1
        assert cpu == "CPUExecutionProvider"
