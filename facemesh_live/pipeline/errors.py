"""Error taxonomy for the live landmark pipeline.

None of these stops the frame loop: each is caught where it occurs and shown
as an on-screen notice.
"""

from __future__ import annotations


class FacemeshLiveError(RuntimeError):
    """Base class for pipeline errors."""


class CameraError(FacemeshLiveError):
    """Raised when the camera cannot be acquired or read."""


class CameraUnavailable(CameraError):
    """Raised when no device grants access for the requested parameters."""


class CameraLost(CameraError):
    """Raised when a ready camera stops delivering frames."""


class BackendError(FacemeshLiveError):
    """Raised when a backend or runtime flag cannot be applied."""


class ModelLoadError(FacemeshLiveError):
    """Raised when a detector cannot be constructed."""


class InferenceError(FacemeshLiveError):
    """Raised when a detector fails on a frame."""
