"""
Custom exceptions for isoslice.

All isoslice exceptions inherit from IsoSliceError so the command line can
report any of them with a single handler.
"""

from typing import Any


class IsoSliceError(Exception):
    """Base exception for all isoslice errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(IsoSliceError):
    """Raised when print settings are invalid or missing."""

    pass


class ModelEvaluationError(IsoSliceError):
    """Raised when a model description cannot be parsed or evaluated."""

    pass


class MeshingError(IsoSliceError):
    """Raised when the iso-surface mesher fails for one (layer, perimeter)."""

    def __init__(
        self,
        message: str,
        layer_index: int | None = None,
        perimeter: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.layer_index = layer_index
        self.perimeter = perimeter


class SlicingError(IsoSliceError):
    """Raised when contour extraction or toolpath generation fails."""

    pass


class FileIOError(IsoSliceError, OSError):
    """Raised when the model file cannot be read or the output cannot be written."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
