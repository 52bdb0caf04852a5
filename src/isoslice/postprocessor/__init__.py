"""
isoslice Post Processor Module

Serializes extrusion paths into motion-command programs. Each post processor
inherits from PostProcessorBase and implements the format-specific moves;
event hooks allow custom start/end/layer code.
"""

from .base import PostProcessorBase, PostProcessorConfig, EventHooks
from .gcode import GCodePostProcessor

__all__ = [
    'PostProcessorBase',
    'PostProcessorConfig',
    'EventHooks',
    'GCodePostProcessor',
]
