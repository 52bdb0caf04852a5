"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import numpy as np
import pytest

from isoslice.core.config import PrintConfig
from isoslice.geometry.meshing import SliceMesh


class RecordingMesher:
    """Mesher stand-in that returns a fixed mesh and records each call."""

    def __init__(self, mesh: SliceMesh):
        self.result = mesh
        self.calls = []

    def mesh(self, expr, depth, bounds):
        self.calls.append((expr, depth, bounds))
        return self.result


def make_loop_mesh(corners, z_top=1.0):
    """
    Open-topped wall over a closed polygon whose bottom edges lie on z = 0.

    Each wall triangle is (corner_i, corner_i+1, top_i+1), so its single
    in-plane edge runs corner_i -> corner_i+1.
    """
    n = len(corners)
    bottom = [(cx, cy, 0.0) for cx, cy in corners]
    top = [(cx, cy, z_top) for cx, cy in corners]
    triangles = [(i, (i + 1) % n, n + (i + 1) % n) for i in range(n)]
    return SliceMesh(np.array(bottom + top), np.array(triangles))


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def default_config():
    return PrintConfig.create()


@pytest.fixture
def loop_mesh_factory():
    return make_loop_mesh


@pytest.fixture
def recording_mesher_factory():
    return RecordingMesher


@pytest.fixture
def square_loop_mesh():
    """Unit square wall: one closed loop of four plane edges."""
    return make_loop_mesh([(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)])


@pytest.fixture
def square_mesher(square_loop_mesh):
    return RecordingMesher(square_loop_mesh)


@pytest.fixture
def sample_model_file(temp_dir):
    """Cylinder of radius 3 standing on the build plate."""
    path = temp_dir / "cylinder.yaml"
    path.write_text(
        """
model:
  cylinder:
    radius: 3.0
    height: 4.0
"""
    )
    return path


@pytest.fixture
def sample_config_file(temp_dir):
    path = temp_dir / "print.yaml"
    path.write_text(
        """
print:
  nozzle_diameter: 0.6
  layer_height: 0.5
  perimeter_count: 2
  z_min: 0.0
  z_max: 2.0
"""
    )
    return path
