"""
Perimeter geometry.

For each (layer, perimeter) pair the solid is collapsed to its cross-section
at the layer mid-height, inset by adding the perimeter offset to the field,
and clipped by a bounding die: a box over the print X/Y extents whose bottom
face lies on z = 0. Meshing that expression gives a thin slab whose bottom
outline is the perimeter centreline. Perimeter 0 sits half a path spacing
inside the surface; each further perimeter one spacing deeper.
"""

from typing import List, Optional

from isoslice.core.config import BoundingBox, PrintConfig
from isoslice.core.exceptions import MeshingError, ModelEvaluationError
from isoslice.geometry.expression import Expr, constant, x, y, z
from isoslice.geometry.meshing import MarchingCubesMesher, MeshBounds, Mesher, SliceMesh
from isoslice.slicing.layers import Layer

# Bounds padding so the die faces never coincide with the mesher's outer cells.
BOUNDS_MARGIN = 1e-8

# Z extent of the die slab in the cross-section frame.
DIE_Z_MIN = 0.0
DIE_Z_MAX = 2.0


def bounding_die(
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    z_min: float = DIE_Z_MIN,
    z_max: float = DIE_Z_MAX,
) -> Expr:
    """
    Chebyshev-distance box spanning the given extents.

    The unit box ``max(|x|, |y|, |z|) - 1`` is remapped so that [-1, 1] on
    each axis covers [min, max].
    """
    unit_box = abs(x()).max(abs(y())).max(abs(z())) - 1.0
    x_radius, x_center = (x_max - x_min) / 2.0, (x_max + x_min) / 2.0
    y_radius, y_center = (y_max - y_min) / 2.0, (y_max + y_min) / 2.0
    z_radius, z_center = (z_max - z_min) / 2.0, (z_max + z_min) / 2.0
    return unit_box.remap(
        (x() - x_center) / x_radius,
        (y() - y_center) / y_radius,
        (z() - z_center) / z_radius,
    )


def mesh_bounds(box: BoundingBox) -> MeshBounds:
    """Cube centred on the X/Y centre at z = 0, covering the larger extent."""
    return MeshBounds(
        center=(box.center_x, box.center_y, 0.0),
        size=max(box.x_extent, box.y_extent) + BOUNDS_MARGIN,
    )


def build_perimeter_expression(
    model: Expr,
    layer_mid_height: float,
    offset: float,
    die: Expr,
) -> Expr:
    """``max(model(x, y, layer_mid_height) + offset, die)``."""
    section = model.clone().remap(x(), y(), constant(layer_mid_height))
    return (section + offset).max(die)


class PerimeterGeometryBuilder:
    """
    Builds and meshes the per-perimeter cross-section expressions.

    Holds only read-only state (model, config, die, bounds), so one builder
    can serve concurrent units.
    """

    def __init__(
        self,
        model: Expr,
        config: PrintConfig,
        mesher: Optional[Mesher] = None,
    ):
        self.model = model
        self.config = config
        self.mesher = mesher or MarchingCubesMesher()
        box = config.bounding_box
        self.die = bounding_die(box.x_min, box.x_max, box.y_min, box.y_max)
        self.bounds = mesh_bounds(box)

    def perimeter_indices(self) -> List[int]:
        """Perimeter indices in processing order (innermost offset first)."""
        return list(range(self.config.perimeter_count - 1, -1, -1))

    def layer_mid_height(self, layer: Layer) -> float:
        return layer.z_height + self.config.layer_height / 2.0

    def build(self, layer: Layer, perimeter: int) -> Expr:
        return build_perimeter_expression(
            self.model,
            self.layer_mid_height(layer),
            self.config.perimeter_offset(perimeter),
            self.die,
        )

    def mesh(self, expr: Expr, layer: Layer, perimeter: int) -> SliceMesh:
        """
        Run the mesher on a built expression.

        Raises:
            ModelEvaluationError: If the field cannot be evaluated (not wrapped)
            MeshingError: If the mesher fails for any other reason
        """
        try:
            return self.mesher.mesh(expr, self.config.mesh_depth, self.bounds)
        except (MeshingError, ModelEvaluationError):
            raise
        except Exception as e:
            raise MeshingError(
                f"Meshing failed for layer {layer.index} perimeter {perimeter}: {e}",
                layer_index=layer.index,
                perimeter=perimeter,
                details={"z_height": layer.z_height, "error": str(e)},
            ) from e
