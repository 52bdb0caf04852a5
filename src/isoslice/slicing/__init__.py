"""
Slicing module - Layer planning, perimeter geometry and contour extraction.

- plan_layers: evenly spaced layer heights over the build volume
- PerimeterGeometryBuilder: offset cross-section expression and mesh per perimeter
- extract_contours: ordered polylines from the cut-plane edges of a mesh
- ExtrusionPath: polyline plus bead geometry and extrusion amounts
- PerimeterSlicer: the layer × perimeter loop
"""

from isoslice.slicing.layers import Layer, LayerKind, plan_layers
from isoslice.slicing.toolpath import (
    ExtrusionPath,
    bead_cross_sectional_area,
    filament_cross_sectional_area,
    summarize_paths,
)
from isoslice.slicing.contour import (
    EdgeAdjacencyMap,
    GridSnapKey,
    bit_pattern_key,
    build_edge_map,
    extract_contours,
    trace_polylines,
)
from isoslice.slicing.perimeter import (
    PerimeterGeometryBuilder,
    bounding_die,
    build_perimeter_expression,
    mesh_bounds,
)
from isoslice.slicing.slicer import PerimeterSlicer, SliceStage, SliceUnit

__all__ = [
    "Layer",
    "LayerKind",
    "plan_layers",
    "ExtrusionPath",
    "bead_cross_sectional_area",
    "filament_cross_sectional_area",
    "summarize_paths",
    "EdgeAdjacencyMap",
    "GridSnapKey",
    "bit_pattern_key",
    "build_edge_map",
    "extract_contours",
    "trace_polylines",
    "PerimeterGeometryBuilder",
    "bounding_die",
    "build_perimeter_expression",
    "mesh_bounds",
    "PerimeterSlicer",
    "SliceStage",
    "SliceUnit",
]
