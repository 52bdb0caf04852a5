"""
Tests for extrusion paths.
"""

import math

import numpy as np
import pytest

from isoslice.slicing.toolpath import (
    ExtrusionPath,
    bead_cross_sectional_area,
    filament_cross_sectional_area,
    summarize_paths,
)


def make_path(points, width=0.42, height=0.2, z_height=0.2, filament_diameter=1.75, **kwargs):
    path = ExtrusionPath(
        width=width,
        height=height,
        z_height=z_height,
        filament_cross_sectional_area=filament_cross_sectional_area(filament_diameter),
        **kwargs,
    )
    for point in points:
        path.add_point(point)
    return path


@pytest.mark.unit
@pytest.mark.slicing
class TestAreas:
    def test_bead_area(self):
        """Test rounded-rectangle bead cross-section."""
        assert bead_cross_sectional_area(0.42, 0.20) == pytest.approx(0.0754, abs=1e-4)
        assert bead_cross_sectional_area(0.42, 0.20) == pytest.approx(
            0.22 * 0.2 + math.pi * 0.01
        )

    def test_round_bead(self):
        """Test that a bead as wide as it is tall is a circle."""
        assert bead_cross_sectional_area(0.4, 0.4) == pytest.approx(math.pi * 0.04)

    def test_filament_area(self):
        """Test filament cross-section."""
        assert filament_cross_sectional_area(1.75) == pytest.approx(2.405282, abs=1e-6)


@pytest.mark.unit
@pytest.mark.slicing
class TestExtrusionPath:
    def test_points_stored_as_float32(self):
        """Test that points are stored as float32 pairs."""
        path = make_path([(0.1, 0.2)])
        px, py = path.points[0]
        assert isinstance(px, np.float32)
        assert isinstance(py, np.float32)

    def test_first_last_point(self):
        """Test first and last point accessors."""
        path = make_path([(0, 0), (1, 0), (1, 1)])
        assert path.first_point == (0.0, 0.0)
        assert path.last_point == (1.0, 1.0)

    def test_empty_path(self):
        """Test an empty path has no length or extrusion."""
        path = make_path([])
        assert path.first_point is None
        assert path.last_point is None
        assert path.get_length() == 0.0
        assert path.segment_extrusions() == []
        assert path.total_extrusion() == 0.0
        assert path.as_array().shape == (0, 2)

    def test_single_point_has_no_segments(self):
        """Test that one point gives no segments."""
        path = make_path([(1, 1)])
        assert path.segment_extrusions() == []

    def test_is_closed(self):
        """Test closed-path detection."""
        assert make_path([(0, 0), (1, 0), (1, 1), (0, 0)]).is_closed
        assert not make_path([(0, 0), (1, 0), (1, 1)]).is_closed
        assert not make_path([(0, 0), (0, 0)]).is_closed

    def test_length(self):
        """Test total path length."""
        path = make_path([(0, 0), (3, 0), (3, 4)])
        assert path.get_length() == pytest.approx(7.0)

    def test_segment_extrusion(self):
        """Test feed for one segment."""
        path = make_path([(0, 0), (1, 0)])
        expected = bead_cross_sectional_area(0.42, 0.2) / filament_cross_sectional_area(1.75)
        (feed,) = path.segment_extrusions()
        assert feed == pytest.approx(expected)
        assert feed == pytest.approx(0.03135, abs=1e-5)

    def test_extrusion_is_relative_per_segment(self):
        """Test that each segment carries its own feed."""
        path = make_path([(0, 0), (1, 0), (2, 0), (3, 0)])
        feeds = path.segment_extrusions()
        assert len(feeds) == 3
        assert feeds[0] == pytest.approx(feeds[1])
        assert feeds[1] == pytest.approx(feeds[2])

    def test_doubling_spacing_doubles_extrusion(self):
        """Test that feed scales with segment length."""
        near = make_path([(0, 0), (1, 0), (2, 0)])
        far = make_path([(0, 0), (2, 0), (4, 0)])
        assert far.total_extrusion() == pytest.approx(2.0 * near.total_extrusion())


@pytest.mark.unit
@pytest.mark.slicing
def test_summarize_paths():
    """Test run totals over several paths."""
    paths = [
        make_path([(0, 0), (1, 0)], layer_index=0),
        make_path([(0, 0), (0, 2)], layer_index=1),
        make_path([], layer_index=1),
    ]
    summary = summarize_paths(paths)
    assert summary["paths"] == 3
    assert summary["points"] == 4
    assert summary["layers"] == 2
    assert summary["length_mm"] == pytest.approx(3.0)
    assert summary["filament_mm"] == pytest.approx(
        3.0 * bead_cross_sectional_area(0.42, 0.2) / filament_cross_sectional_area(1.75)
    )
