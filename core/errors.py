"""
Error taxonomy for the classifier. Startup errors stop the bootstrap;
per-cycle errors (SourceNotReady, InferenceFailure) are recovered by the frame loop.
"""

from __future__ import annotations


class ClassifierError(Exception):
    """Base class for all classifier errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnsupportedDevice(ClassifierError):
    """Requested accelerator is not available in this environment."""

    def __init__(self, device_type: str, available: list[str] | None = None) -> None:
        self.device_type = device_type
        self.available = list(available or [])
        message = f"Device '{device_type}' is not supported"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class LabelLoadFailure(ClassifierError):
    """Label table could not be fetched or parsed."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        super().__init__(f"Failed to load labels from {source}: {reason}")


class ModelLoadFailure(ClassifierError):
    """Model file is missing or could not be opened by the backend."""


class BuildFailure(ClassifierError):
    """Model graph could not be prepared for execution (shape/dtype mismatch)."""


class SourceUnavailable(ClassifierError):
    """Video source could not be opened."""


class SourceNotReady(ClassifierError):
    """Frame has zero area; the source has nothing to show yet."""


class InferenceFailure(ClassifierError):
    """Unexpected error during a forward pass."""
