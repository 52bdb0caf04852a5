"""
Iso-surface meshing for implicit expressions.

The slicer only relies on the :class:`Mesher` contract: given an expression,
a resolution depth and a cubic bounding volume, return a triangle mesh of
the zero level set. :class:`MarchingCubesMesher` implements it with
scikit-image's marching cubes over a sampled grid.

The cutting plane (z = 0 in the cross-section frame) is where contours are
read back, so the sampler replaces the grid row nearest that plane with a
pair of rows just below and just above it. Every vertex produced between the
pair lies within the plane tolerance, and the wall triangles above the pair
carry exactly two such vertices.
"""

import logging
from dataclasses import dataclass
from typing import Protocol, Tuple

import numpy as np
import trimesh
from skimage import measure

from isoslice.core.exceptions import ModelEvaluationError
from isoslice.geometry.expression import Expr

logger = logging.getLogger(__name__)

PLANE_TOLERANCE = 1e-8


@dataclass(frozen=True)
class MeshBounds:
    """Cubic region handed to the mesher."""

    center: Tuple[float, float, float]
    size: float

    @property
    def minimum(self) -> np.ndarray:
        return np.asarray(self.center, dtype=np.float64) - self.size / 2.0

    @property
    def maximum(self) -> np.ndarray:
        return np.asarray(self.center, dtype=np.float64) + self.size / 2.0


@dataclass
class SliceMesh:
    """
    Triangle mesh returned by a mesher.

    Attributes:
        vertices: (N, 3) float32 vertex positions
        triangles: (M, 3) integer vertex indices
    """

    vertices: np.ndarray
    triangles: np.ndarray

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=np.float32).reshape(-1, 3)
        self.triangles = np.asarray(self.triangles, dtype=np.int64).reshape(-1, 3)

    @classmethod
    def empty(cls) -> "SliceMesh":
        return cls(np.zeros((0, 3), dtype=np.float32), np.zeros((0, 3), dtype=np.int64))

    @property
    def is_empty(self) -> bool:
        return len(self.triangles) == 0

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert for export (STL dumps) without merging or repairing."""
        return trimesh.Trimesh(
            vertices=self.vertices.astype(np.float64),
            faces=self.triangles,
            process=False,
        )


class Mesher(Protocol):
    """Anything that can turn an implicit expression into a SliceMesh."""

    def mesh(self, expr: Expr, depth: int, bounds: MeshBounds) -> SliceMesh:
        ...


class MarchingCubesMesher:
    """
    Uniform-grid marching cubes mesher.

    Args:
        plane_z: Height of the cutting plane that gets split sampling.
        plane_tolerance: Plane membership tolerance used by the contour
            extractor; split rows sit at a quarter of it.
    """

    def __init__(self, plane_z: float = 0.0, plane_tolerance: float = PLANE_TOLERANCE):
        self.plane_z = plane_z
        self.plane_tolerance = plane_tolerance

    def sample_axes(
        self, depth: int, bounds: MeshBounds
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Sample coordinates along x, y and z for a grid of ``2**depth`` cells."""
        cells = 2 ** depth
        lo, hi = bounds.minimum, bounds.maximum
        xs = np.linspace(lo[0], hi[0], cells + 1)
        ys = np.linspace(lo[1], hi[1], cells + 1)
        zs = np.linspace(lo[2], hi[2], cells + 1)

        if lo[2] < self.plane_z < hi[2]:
            gap = self.plane_tolerance / 4.0
            step = bounds.size / cells
            keep = np.abs(zs - self.plane_z) > step / 2.0
            zs = np.sort(np.concatenate([zs[keep], [self.plane_z - gap, self.plane_z + gap]]))
        return xs, ys, zs

    def sample(self, expr: Expr, xs: np.ndarray, ys: np.ndarray, zs: np.ndarray) -> np.ndarray:
        """Evaluate ``expr`` on the grid one z-row at a time."""
        gx, gy = np.meshgrid(xs, ys, indexing="ij")
        volume = np.empty((len(xs), len(ys), len(zs)), dtype=np.float32)
        for k, zk in enumerate(zs):
            volume[:, :, k] = expr.evaluate(gx, gy, zk)
        return volume

    def mesh(self, expr: Expr, depth: int, bounds: MeshBounds) -> SliceMesh:
        xs, ys, zs = self.sample_axes(depth, bounds)
        volume = self.sample(expr, xs, ys, zs)

        bad = int(np.count_nonzero(~np.isfinite(volume)))
        if bad:
            raise ModelEvaluationError(
                "Expression produced non-finite values inside the bounds",
                details={"non_finite_samples": bad, "depth": depth},
            )
        if volume.min() > 0.0 or volume.max() < 0.0:
            logger.debug("No surface inside bounds (depth=%d)", depth)
            return SliceMesh.empty()

        verts, faces, _normals, _values = measure.marching_cubes(
            volume, level=0.0, allow_degenerate=False
        )

        # marching_cubes works in index space; map each axis back to world
        # coordinates (z rows are not evenly spaced).
        world = np.empty_like(verts, dtype=np.float64)
        world[:, 0] = np.interp(verts[:, 0], np.arange(len(xs)), xs)
        world[:, 1] = np.interp(verts[:, 1], np.arange(len(ys)), ys)
        world[:, 2] = np.interp(verts[:, 2], np.arange(len(zs)), zs)

        logger.debug(
            "Marching cubes: %d vertices, %d triangles (grid %dx%dx%d)",
            len(world), len(faces), len(xs), len(ys), len(zs),
        )
        return SliceMesh(world.astype(np.float32), faces)
