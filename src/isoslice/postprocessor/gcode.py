"""
G-code post processor for filament printers.

Every move is a ``G1``. Extrusion values are relative per segment, so the
firmware is expected to run in relative extrusion mode (``M83``); put that in
the ``program_start`` hook when the printer does not default to it.
"""

from typing import List

from isoslice.postprocessor.base import PostProcessorBase


class GCodePostProcessor(PostProcessorBase):
    """Emits ``G1 Z``, ``G1 X Y Z`` and ``G1 X Y E`` lines."""

    def layer_move(self, z: float) -> List[str]:
        return [f"G1 Z{self._fmt(z)}"]

    def travel_move(self, x: float, y: float, z: float) -> List[str]:
        return [f"G1 X{self._fmt(x)} Y{self._fmt(y)} Z{self._fmt(z)}"]

    def extrude_move(self, x: float, y: float, e: float) -> List[str]:
        return [f"G1 X{self._fmt(x)} Y{self._fmt(y)} E{self._fmt(e)}"]

