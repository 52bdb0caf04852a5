"""
Core module - Shared configuration, exceptions and logging.
"""

from isoslice.core.config import (
    BoundingBox,
    PrintConfig,
    load_gcode_settings,
    load_print_config,
)
from isoslice.core.exceptions import (
    IsoSliceError,
    ConfigurationError,
    ModelEvaluationError,
    MeshingError,
    SlicingError,
    FileIOError,
)

__all__ = [
    # Config
    "BoundingBox",
    "PrintConfig",
    "load_gcode_settings",
    "load_print_config",
    # Exceptions
    "IsoSliceError",
    "ConfigurationError",
    "ModelEvaluationError",
    "MeshingError",
    "SlicingError",
    "FileIOError",
]
