"""
isoslice - Perimeter-only slicer for implicit-surface solids

Turns a signed-distance model into layer-by-layer perimeter toolpaths and
writes them out as G-code for filament printers.
"""

__version__ = "0.1.0"
__author__ = "isoslice Contributors"

from isoslice.core.config import PrintConfig
from isoslice.pipeline import Pipeline, PipelineConfig

__all__ = [
    "__version__",
    "PrintConfig",
    "Pipeline",
    "PipelineConfig",
]
