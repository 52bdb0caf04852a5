"""
Contour extraction from cross-section meshes.

The perimeter mesh is a thin slab whose bottom face sits on the cutting plane
(z = 0). Its side-wall triangles touch the plane with exactly one edge, and
those edges, taken in winding order, trace the cross-section outline. This
module collects them into a directed adjacency map and walks the map into
polylines.

Points are matched by key. The default key is the exact float32 bit pattern
of (x, y): two vertices meet only if the mesher produced bit-identical
coordinates. :class:`GridSnapKey` matches within a tolerance instead.
"""

import logging
from typing import Callable, Dict, Hashable, Iterator, List, Optional, Tuple

import numpy as np

from isoslice.geometry.meshing import PLANE_TOLERANCE, SliceMesh
from isoslice.slicing.toolpath import ExtrusionPath, Point2D

logger = logging.getLogger(__name__)

KeyFunction = Callable[[Point2D], Hashable]


def bit_pattern_key(point: Point2D) -> Tuple[int, int]:
    """Key a point by the raw bits of its float32 coordinates."""
    bits = np.asarray(point, dtype=np.float32).view(np.uint32)
    return int(bits[0]), int(bits[1])


class GridSnapKey:
    """Key a point by the grid cell of size ``tolerance`` it rounds to."""

    def __init__(self, tolerance: float):
        if tolerance <= 0:
            raise ValueError("tolerance must be positive")
        self.tolerance = tolerance

    def __call__(self, point: Point2D) -> Tuple[int, int]:
        return (
            int(round(float(point[0]) / self.tolerance)),
            int(round(float(point[1]) / self.tolerance)),
        )


class EdgeAdjacencyMap:
    """
    Directed point-to-point edges keyed by source point.

    Each key holds one outgoing edge; inserting another edge from the same
    key replaces the earlier one. Iteration order is insertion order.
    """

    def __init__(self, key: KeyFunction = bit_pattern_key):
        self._key = key
        self._edges: Dict[Hashable, Tuple[Point2D, Point2D]] = {}

    def insert(self, source: Point2D, destination: Point2D) -> None:
        self._edges[self._key(source)] = (source, destination)

    def pop_next(self, point: Point2D) -> Optional[Point2D]:
        """Remove and return the destination of the edge leaving ``point``."""
        entry = self._edges.pop(self._key(point), None)
        return entry[1] if entry is not None else None

    def first_source(self) -> Optional[Point2D]:
        for source, _destination in self._edges.values():
            return source
        return None

    def edges(self) -> Iterator[Tuple[Point2D, Point2D]]:
        return iter(list(self._edges.values()))

    def __contains__(self, point: Point2D) -> bool:
        return self._key(point) in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __bool__(self) -> bool:
        return bool(self._edges)


def on_plane_mask(vertices: np.ndarray, tolerance: float = PLANE_TOLERANCE) -> np.ndarray:
    """Boolean mask of vertices whose z lies within ``tolerance`` of 0."""
    return np.abs(vertices[:, 2].astype(np.float64)) < tolerance


def plane_triangles(mesh: SliceMesh, tolerance: float = PLANE_TOLERANCE) -> np.ndarray:
    """Triangles with exactly two vertices on the cutting plane."""
    if mesh.is_empty:
        return np.zeros((0, 3), dtype=np.int64)
    on_plane = on_plane_mask(mesh.vertices, tolerance)
    counts = on_plane[mesh.triangles].sum(axis=1)
    return mesh.triangles[counts == 2]


def build_edge_map(
    mesh: SliceMesh,
    key: KeyFunction = bit_pattern_key,
    tolerance: float = PLANE_TOLERANCE,
) -> EdgeAdjacencyMap:
    """
    Collect the in-plane edges of the plane-touching triangles.

    Edges keep the triangle winding (v0→v1, v1→v2, v2→v0).
    """
    edge_map = EdgeAdjacencyMap(key)
    if mesh.is_empty:
        return edge_map

    on_plane = on_plane_mask(mesh.vertices, tolerance)
    vertices = mesh.vertices
    for tri in plane_triangles(mesh, tolerance):
        for a, b in ((tri[0], tri[1]), (tri[1], tri[2]), (tri[2], tri[0])):
            if on_plane[a] and on_plane[b]:
                edge_map.insert(
                    (vertices[a, 0], vertices[a, 1]),
                    (vertices[b, 0], vertices[b, 1]),
                )
    return edge_map


def trace_polylines(edge_map: EdgeAdjacencyMap) -> List[List[Point2D]]:
    """
    Walk the adjacency map into polylines, consuming it.

    A walk starts at the first remaining source and follows edges until the
    last point has no outgoing edge; then the next remaining source starts a
    new walk. Closed loops come back as paths whose last point equals the
    first.
    """
    polylines: List[List[Point2D]] = []
    if not edge_map:
        return polylines

    current = [edge_map.first_source()]
    while edge_map:
        next_point = edge_map.pop_next(current[-1])
        if next_point is not None:
            current.append(next_point)
            if not edge_map:
                polylines.append(current)
        else:
            polylines.append(current)
            current = [edge_map.first_source()]
    return polylines


def extract_contours(
    mesh: SliceMesh,
    *,
    width: float,
    height: float,
    z_height: float,
    filament_area: float,
    layer_index: int = 0,
    perimeter_index: int = 0,
    key: Optional[KeyFunction] = None,
    tolerance: float = PLANE_TOLERANCE,
) -> List[ExtrusionPath]:
    """
    Extract extrusion paths from one perimeter mesh.

    Args:
        mesh: Mesh of the offset cross-section slab
        width: Bead width for the produced paths
        height: Bead height (layer height)
        z_height: Print height stamped on every path
        filament_area: Filament cross-sectional area
        layer_index: Layer the mesh belongs to
        perimeter_index: Perimeter the mesh belongs to
        key: Point key function; defaults to :func:`bit_pattern_key`
        tolerance: Plane-membership tolerance on z

    Returns:
        Paths in discovery order; empty when no edge lies on the plane.
    """
    edge_map = build_edge_map(mesh, key or bit_pattern_key, tolerance)
    edge_count = len(edge_map)
    polylines = trace_polylines(edge_map)

    paths = []
    for polyline in polylines:
        path = ExtrusionPath(
            width=width,
            height=height,
            z_height=z_height,
            filament_cross_sectional_area=filament_area,
            layer_index=layer_index,
            perimeter_index=perimeter_index,
        )
        for point in polyline:
            path.add_point(point)
        paths.append(path)

    logger.debug(
        "Layer %d perimeter %d: %d plane edges -> %d paths",
        layer_index, perimeter_index, edge_count, len(paths),
    )
    return paths
