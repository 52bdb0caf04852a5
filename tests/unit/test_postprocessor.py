"""
Unit tests for post-processor implementations.

Tests G-code output generation from extrusion paths.
"""

import pytest

from isoslice.core.exceptions import FileIOError
from isoslice.postprocessor import (
    EventHooks,
    GCodePostProcessor,
    PostProcessorBase,
    PostProcessorConfig,
)
from isoslice.slicing.toolpath import (
    ExtrusionPath,
    bead_cross_sectional_area,
    filament_cross_sectional_area,
)


# ── Shared test fixtures ──────────────────────────────────────────────────


def make_path(points, z_height=0.2, layer_index=0):
    path = ExtrusionPath(
        width=0.42,
        height=0.2,
        z_height=z_height,
        filament_cross_sectional_area=filament_cross_sectional_area(1.75),
        layer_index=layer_index,
    )
    for point in points:
        path.add_point(point)
    return path


@pytest.fixture
def segment_path():
    return make_path([(0.0, 0.0), (1.0, 0.0)])


@pytest.fixture
def two_layer_paths():
    return [
        make_path([(0, 0), (1, 0), (1, 1), (0, 0)], z_height=0.2, layer_index=0),
        make_path([(2, 2), (3, 2)], z_height=0.2, layer_index=0),
        make_path([(0, 0), (1, 0)], z_height=0.4, layer_index=1),
    ]


# ── PostProcessorConfig & EventHooks ──────────────────────────────────────


@pytest.mark.unit
class TestPostProcessorConfig:
    def test_defaults(self):
        """Test default post processor settings."""
        config = PostProcessorConfig()
        assert config.line_ending == "\n"
        assert config.decimals == 6
        assert config.hooks.program_start == ""

    def test_from_dict(self):
        """Test building a config from a YAML-style mapping."""
        config = PostProcessorConfig.from_dict(
            {"decimals": 3, "hooks": {"program_start": "M83", "layer_start": "; L{layerIndex}"}}
        )
        assert config.decimals == 3
        assert config.hooks.program_start == "M83"
        assert config.hooks.layer_start == "; L{layerIndex}"

    def test_from_dict_ignores_unknown(self):
        """Test that unknown keys are dropped."""
        config = PostProcessorConfig.from_dict({"decimals": 4, "vendor": "x"})
        assert config.decimals == 4

    def test_hooks_from_dict_ignores_unknown(self):
        """Test that unknown hook names are dropped."""
        hooks = EventHooks.from_dict({"program_end": "M84", "tool_change": "T1"})
        assert hooks.program_end == "M84"


@pytest.mark.unit
def test_base_is_abstract():
    """Test that the base class cannot be instantiated."""
    with pytest.raises(TypeError):
        PostProcessorBase()


# ── G-code ────────────────────────────────────────────────────────────────


@pytest.mark.unit
class TestGCodePostProcessor:
    def test_single_segment(self, segment_path):
        """Test the exact lines for a one-segment path."""
        feed = bead_cross_sectional_area(0.42, 0.2) / filament_cross_sectional_area(1.75)
        text = GCodePostProcessor().generate([segment_path])
        assert text == (
            "G1 Z0.200000\n"
            "G1 X0.000000 Y0.000000 Z0.200000\n"
            f"G1 X1.000000 Y0.000000 E{feed:.6f}\n"
        )
        assert f"{feed:.6f}".startswith("0.03135")

    def test_empty_paths_emit_nothing(self):
        """Test that empty paths and empty programs produce no lines."""
        assert GCodePostProcessor().generate([make_path([])]) == ""
        assert GCodePostProcessor().generate([]) == ""

    def test_single_point_path(self):
        """Test that a single point gives only the positioning moves."""
        lines = GCodePostProcessor().generate_lines([make_path([(2.5, 1.0)])])
        assert lines == ["G1 Z0.200000", "G1 X2.500000 Y1.000000 Z0.200000"]

    def test_one_block_per_path(self, two_layer_paths):
        """Test one Z/travel/extrude block per path."""
        lines = GCodePostProcessor().generate_lines(two_layer_paths)
        # (1 + 1 + 3) + (1 + 1 + 1) + (1 + 1 + 1)
        assert len(lines) == 11
        assert lines[0] == "G1 Z0.200000"
        assert lines[5] == "G1 Z0.200000"
        assert lines[6] == "G1 X2.000000 Y2.000000 Z0.200000"
        assert lines[8] == "G1 Z0.400000"

    def test_extrusion_is_relative(self, two_layer_paths):
        """Test that equal segments get equal E values."""
        lines = GCodePostProcessor().generate_lines(two_layer_paths[:1])
        feeds = [float(line.split("E")[1]) for line in lines if " E" in line]
        assert feeds[0] == pytest.approx(feeds[1], abs=1e-6)

    def test_every_line_terminated(self, two_layer_paths):
        """Test that the last line is terminated too."""
        text = GCodePostProcessor().generate(two_layer_paths)
        assert text.endswith("\n")
        assert text.count("\n") == 11

    def test_line_ending_option(self, segment_path):
        """Test a custom line ending."""
        post = GCodePostProcessor(PostProcessorConfig(line_ending="\r\n"))
        assert post.generate([segment_path]).count("\r\n") == 3

    def test_hooks(self, two_layer_paths):
        """Test program and layer hook expansion."""
        hooks = EventHooks(
            program_start="M83\n; {pathCount} paths",
            program_end="M84",
            layer_start="; layer {layerIndex} z={z}",
        )
        lines = GCodePostProcessor(PostProcessorConfig(hooks=hooks)).generate_lines(
            two_layer_paths
        )
        assert lines[:3] == ["M83", "; 3 paths", "; layer 0 z=0.200000"]
        assert "; layer 1 z=0.400000" in lines
        assert lines.count("; layer 0 z=0.200000") == 1
        assert lines[-1] == "M84"

    def test_unresolved_hook_left_as_is(self, segment_path):
        """Test that unknown template variables are kept verbatim."""
        hooks = EventHooks(program_start="; {unknown}")
        lines = GCodePostProcessor(PostProcessorConfig(hooks=hooks)).generate_lines(
            [segment_path]
        )
        assert lines[0] == "; {unknown}"

    def test_write(self, segment_path, temp_dir):
        """Test writing the program to disk."""
        target = GCodePostProcessor().write([segment_path], temp_dir / "out.gcode")
        assert target.read_text().splitlines()[0] == "G1 Z0.200000"

    def test_write_failure(self, segment_path, temp_dir):
        """Test that an unwritable path raises FileIOError."""
        with pytest.raises(FileIOError) as exc_info:
            GCodePostProcessor().write([segment_path], temp_dir / "missing" / "out.gcode")
        assert exc_info.value.path.endswith("out.gcode")
