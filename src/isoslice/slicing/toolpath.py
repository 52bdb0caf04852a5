"""
Extrusion path data structures.

An extrusion path is one continuous deposition move: a polyline at a fixed
height plus the bead and filament geometry needed to turn travelled distance
into filament feed.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np

Point2D = Tuple[np.float32, np.float32]


def bead_cross_sectional_area(width: float, height: float) -> float:
    """
    Cross-section of a deposited bead: a rectangle with semicircular flanks.

    ``(width - height) * height + pi * (height / 2)**2``
    """
    return (width - height) * height + math.pi * (height / 2.0) ** 2


def filament_cross_sectional_area(diameter: float) -> float:
    return math.pi * (diameter / 2.0) ** 2


@dataclass
class ExtrusionPath:
    """
    A single polyline to be printed.

    Attributes:
        width: Bead width (mm)
        height: Bead height, i.e. layer height (mm)
        z_height: Print height of the path (mm)
        filament_cross_sectional_area: Feedstock area per mm of filament (mm²)
        points: Ordered 2D points as float32 pairs
        layer_index: Layer the path was extracted from
        perimeter_index: Perimeter the path belongs to (0 = outermost wall)
    """

    width: float
    height: float
    z_height: float
    filament_cross_sectional_area: float
    points: List[Point2D] = field(default_factory=list)
    layer_index: int = 0
    perimeter_index: int = 0

    def add_point(self, point: Iterable[float]) -> None:
        px, py = point
        self.points.append((np.float32(px), np.float32(py)))

    @property
    def first_point(self) -> Optional[Point2D]:
        return self.points[0] if self.points else None

    @property
    def last_point(self) -> Optional[Point2D]:
        return self.points[-1] if self.points else None

    @property
    def is_closed(self) -> bool:
        """True when the path returns to its start."""
        return len(self.points) > 2 and self.points[0] == self.points[-1]

    @property
    def cross_sectional_area(self) -> float:
        return bead_cross_sectional_area(self.width, self.height)

    def as_array(self) -> np.ndarray:
        """Points as an (N, 2) float32 array."""
        if not self.points:
            return np.zeros((0, 2), dtype=np.float32)
        return np.asarray(self.points, dtype=np.float32)

    def segment_lengths(self) -> np.ndarray:
        """Length of each consecutive point pair, computed in float32."""
        pts = self.as_array()
        if len(pts) < 2:
            return np.zeros(0, dtype=np.float64)
        return np.linalg.norm(np.diff(pts, axis=0), axis=1).astype(np.float64)

    def get_length(self) -> float:
        return float(self.segment_lengths().sum())

    def segment_extrusions(self) -> List[float]:
        """
        Filament feed for each segment (relative, not accumulated).

        volume = length * bead area; feed = volume / filament area.
        """
        area = self.cross_sectional_area
        return [
            length * area / self.filament_cross_sectional_area
            for length in self.segment_lengths()
        ]

    def total_extrusion(self) -> float:
        return float(sum(self.segment_extrusions()))


def summarize_paths(paths: List[ExtrusionPath]) -> dict:
    """Totals used for run reports."""
    return {
        "paths": len(paths),
        "points": sum(len(p.points) for p in paths),
        "layers": len({p.layer_index for p in paths}),
        "length_mm": sum(p.get_length() for p in paths),
        "filament_mm": sum(p.total_extrusion() for p in paths),
    }
