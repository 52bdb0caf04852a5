"""
Tests for the pipeline orchestrator.

Tests use a stand-in mesher to validate step chaining, failure handling,
progress callbacks and result structure without running marching cubes.
"""

import pytest
from unittest.mock import MagicMock

from isoslice.core.config import PrintConfig
from isoslice.core.exceptions import FileIOError, MeshingError, ModelEvaluationError
from isoslice.pipeline import Pipeline, PipelineConfig, PipelineResult
from isoslice.postprocessor import EventHooks, GCodePostProcessor, PostProcessorConfig


@pytest.fixture
def print_config():
    return PrintConfig.create(z_min=0.0, z_max=0.5, layer_height=0.25, perimeter_count=1)


@pytest.fixture
def pipeline_config(sample_model_file, temp_dir, print_config):
    return PipelineConfig(
        model_path=str(sample_model_file),
        output_path=str(temp_dir / "part.gcode"),
        print_config=print_config,
    )


@pytest.mark.unit
class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig(model_path="part.yaml")
        assert config.output_path == "output.gcode"
        assert config.print_config == PrintConfig()
        assert config.debug_dir is None


@pytest.mark.unit
class TestPipelineExecute:
    def test_success(self, square_mesher, pipeline_config):
        """Test a complete run with the stand-in mesher."""
        result = Pipeline(mesher=square_mesher).execute(pipeline_config)

        assert isinstance(result, PipelineResult)
        assert result.success
        assert result.layer_count == 2
        assert len(result.paths) == 2
        assert result.step_completed == "write"
        assert [step.name for step in result.steps] == ["load_model", "slicing", "emit", "write"]
        assert all(step.success for step in result.steps)
        assert set(result.timings) == {"load_model", "slicing", "emit", "write"}
        assert result.summary["paths"] == 2
        assert result.skipped_units == []

    def test_output_file(self, square_mesher, pipeline_config):
        result = Pipeline(mesher=square_mesher).execute(pipeline_config)
        lines = open(result.output_path).read().splitlines()
        assert len(lines) == result.line_count == 12
        assert lines[0] == "G1 Z0.250000"
        assert lines[6] == "G1 Z0.500000"

    def test_custom_post_processor(self, square_mesher, pipeline_config):
        post = GCodePostProcessor(PostProcessorConfig(hooks=EventHooks(program_start="M83")))
        result = Pipeline(mesher=square_mesher, post_processor=post).execute(pipeline_config)
        with open(result.output_path) as f:
            assert f.readline() == "M83\n"
        assert result.line_count == 13

    def test_progress_callback(self, square_mesher, pipeline_config):
        progress = []
        Pipeline(
            mesher=square_mesher,
            progress_callback=lambda step, pct: progress.append((step, pct)),
        ).execute(pipeline_config)
        steps = [step for step, _ in progress]
        assert steps[0] == "load_model"
        assert ("write", 1.0) in progress
        assert steps.index("emit") > steps.index("slicing")

    def test_debug_dir(self, square_mesher, pipeline_config, temp_dir):
        pipeline_config.debug_dir = str(temp_dir / "debug")
        Pipeline(mesher=square_mesher).execute(pipeline_config)
        names = sorted(p.name for p in (temp_dir / "debug").iterdir())
        assert "settings_0.00_p0.txt" in names
        assert "expression_0.25_p0.txt" in names
        assert "temp_0.25_p0.stl" in names


@pytest.mark.unit
class TestPipelineFailures:
    def test_missing_model(self, square_mesher, pipeline_config, temp_dir):
        pipeline_config.model_path = str(temp_dir / "nope.yaml")
        with pytest.raises(FileIOError):
            Pipeline(mesher=square_mesher).execute(pipeline_config)
        assert not (temp_dir / "part.gcode").exists()

    def test_invalid_model(self, square_mesher, pipeline_config, temp_dir):
        bad = temp_dir / "bad.yaml"
        bad.write_text("model:\n  pyramid: {}\n")
        pipeline_config.model_path = str(bad)
        with pytest.raises(ModelEvaluationError):
            Pipeline(mesher=square_mesher).execute(pipeline_config)

    def test_unevaluable_model_stops_before_write(
        self, square_mesher, pipeline_config, print_config, temp_dir
    ):
        """Test that a NaN-producing model aborts the run even with skipping on."""
        model_file = temp_dir / "sqrt.yaml"
        model_file.write_text('expr: "sqrt(x) - 1"\n')
        pipeline_config.model_path = str(model_file)
        pipeline_config.print_config = print_config.with_overrides(skip_failed_perimeters=True)
        with pytest.raises(ModelEvaluationError):
            Pipeline(mesher=square_mesher).execute(pipeline_config)
        assert square_mesher.calls == []
        assert not (temp_dir / "part.gcode").exists()

    def test_meshing_failure_stops_before_write(self, pipeline_config, temp_dir):
        mesher = MagicMock()
        mesher.mesh.side_effect = RuntimeError("no surface")
        with pytest.raises(MeshingError):
            Pipeline(mesher=mesher).execute(pipeline_config)
        assert not (temp_dir / "part.gcode").exists()

    def test_unwritable_output(self, square_mesher, pipeline_config, temp_dir):
        pipeline_config.output_path = str(temp_dir / "missing" / "part.gcode")
        with pytest.raises(FileIOError):
            Pipeline(mesher=square_mesher).execute(pipeline_config)

    def test_failed_step_recorded(self, pipeline_config):
        """Test that the failing step is recorded before the error propagates."""
        mesher = MagicMock()
        mesher.mesh.side_effect = RuntimeError("no surface")
        pipeline = Pipeline(mesher=mesher)
        recorded = []
        original = pipeline._run_step

        def spy(result, name, fn):
            recorded.append(result)
            return original(result, name, fn)

        pipeline._run_step = spy
        with pytest.raises(MeshingError):
            pipeline.execute(pipeline_config)

        result = recorded[-1]
        assert result.success is False
        assert result.step_completed == "load_model"
        assert result.steps[-1].name == "slicing"
        assert result.steps[-1].success is False
        assert "no surface" in result.steps[-1].error
