"""
Tests for the marching cubes mesher.
"""

import numpy as np
import pytest

from isoslice.core.exceptions import ModelEvaluationError
from isoslice.geometry.expression import x, y, z
from isoslice.geometry.meshing import (
    PLANE_TOLERANCE,
    MarchingCubesMesher,
    MeshBounds,
    SliceMesh,
)
from isoslice.geometry.model import sphere


@pytest.mark.unit
class TestMeshBounds:
    def test_min_max(self):
        """Test cube corners."""
        bounds = MeshBounds(center=(1.0, 2.0, 0.0), size=4.0)
        np.testing.assert_allclose(bounds.minimum, [-1.0, 0.0, -2.0])
        np.testing.assert_allclose(bounds.maximum, [3.0, 4.0, 2.0])


@pytest.mark.unit
class TestSliceMesh:
    def test_coerces_dtypes(self):
        """Test float32 vertices and integer faces."""
        mesh = SliceMesh([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 2]])
        assert mesh.vertices.dtype == np.float32
        assert mesh.triangles.dtype == np.int64
        assert not mesh.is_empty

    def test_empty(self):
        """Test the empty mesh."""
        mesh = SliceMesh.empty()
        assert mesh.is_empty
        assert mesh.vertices.shape == (0, 3)

    def test_to_trimesh_keeps_vertices(self, square_loop_mesh):
        """Test conversion to trimesh without merging vertices."""
        converted = square_loop_mesh.to_trimesh()
        assert len(converted.vertices) == len(square_loop_mesh.vertices)
        assert len(converted.faces) == len(square_loop_mesh.triangles)


@pytest.mark.unit
class TestSampleAxes:
    def test_plane_row_is_split(self):
        """Test that the row at the plane becomes two rows."""
        mesher = MarchingCubesMesher()
        xs, ys, zs = mesher.sample_axes(2, MeshBounds(center=(0.0, 0.0, 0.0), size=4.0))
        assert len(xs) == 5
        assert len(ys) == 5
        assert len(zs) == 6
        assert 0.0 not in zs
        gap = PLANE_TOLERANCE / 4.0
        assert np.any(np.isclose(zs, -gap, rtol=0, atol=1e-15))
        assert np.any(np.isclose(zs, gap, rtol=0, atol=1e-15))
        assert np.all(np.diff(zs) > 0)

    def test_plane_outside_bounds(self):
        """Test that rows stay uniform when the plane is outside."""
        mesher = MarchingCubesMesher()
        _, _, zs = mesher.sample_axes(2, MeshBounds(center=(0.0, 0.0, 10.0), size=4.0))
        assert len(zs) == 5


@pytest.mark.unit
class TestMarchingCubesMesher:
    def test_sphere_surface(self):
        """Test that sphere vertices lie near the radius."""
        mesh = MarchingCubesMesher().mesh(
            sphere(1.0, center=(0.0, 0.0, 0.5)),
            4,
            MeshBounds(center=(0.0, 0.0, 0.0), size=4.0),
        )
        assert not mesh.is_empty
        assert mesh.vertices.dtype == np.float32
        center = np.array([0.0, 0.0, 0.5])
        radii = np.linalg.norm(mesh.vertices.astype(np.float64) - center, axis=1)
        cell = 4.0 / 2**4
        assert np.all(np.abs(radii - 1.0) < cell)

    def test_no_surface_gives_empty_mesh(self):
        """Test that a field with no zero crossing gives an empty mesh."""
        mesh = MarchingCubesMesher().mesh(
            sphere(1.0, center=(50.0, 0.0, 0.0)),
            3,
            MeshBounds(center=(0.0, 0.0, 0.0), size=4.0),
        )
        assert mesh.is_empty

    def test_non_finite_field_raises(self):
        """Test that NaN samples are reported as a model evaluation error."""
        with pytest.raises(ModelEvaluationError) as exc_info:
            MarchingCubesMesher().mesh(
                x().sqrt() - 1.0, 3, MeshBounds(center=(0.0, 0.0, 0.0), size=4.0)
            )
        assert exc_info.value.details["non_finite_samples"] > 0

    def test_slab_has_vertices_on_plane(self):
        """Test that a slab puts vertices on the cut plane."""
        # Disc of radius 1 extruded from z = 0 upward.
        slab = ((x().square() + y().square()).sqrt() - 1.0).max(-z())
        mesh = MarchingCubesMesher().mesh(slab, 4, MeshBounds(center=(0.0, 0.0, 0.0), size=4.0))
        on_plane = np.abs(mesh.vertices[:, 2].astype(np.float64)) < PLANE_TOLERANCE
        assert on_plane.any()
        assert np.all(np.abs(mesh.vertices[~on_plane, 2]) > 1e-3)
