"""
Geometry module - Implicit expressions, CSG models and iso-surface meshing.
"""

from isoslice.geometry.expression import Expr, as_expr, constant, x, y, z
from isoslice.geometry.meshing import (
    MarchingCubesMesher,
    MeshBounds,
    Mesher,
    SliceMesh,
)
from isoslice.geometry.model import (
    box,
    build_model,
    cylinder,
    difference,
    intersection,
    load_model,
    loads_model,
    offset,
    parse_expression,
    scale,
    sphere,
    torus,
    translate,
    union,
)

__all__ = [
    # Expressions
    "Expr",
    "as_expr",
    "constant",
    "x",
    "y",
    "z",
    # Meshing
    "MarchingCubesMesher",
    "MeshBounds",
    "Mesher",
    "SliceMesh",
    # Models
    "box",
    "build_model",
    "cylinder",
    "difference",
    "intersection",
    "load_model",
    "loads_model",
    "offset",
    "parse_expression",
    "scale",
    "sphere",
    "torus",
    "translate",
    "union",
]
