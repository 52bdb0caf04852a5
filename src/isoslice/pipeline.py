"""
Pipeline orchestrator for a complete slicing run.

Chains: model load -> perimeter slicing -> G-code emission -> file write

Each step is timed and logged. A failing step is recorded in the result and
its exception propagates; there is no partial output file.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from isoslice.core.config import PrintConfig
from isoslice.core.logging import bind_run_context, get_logger
from isoslice.diagnostics import DiagnosticsSink, DirectoryDiagnostics
from isoslice.geometry.meshing import Mesher
from isoslice.geometry.model import load_model
from isoslice.postprocessor import GCodePostProcessor, PostProcessorBase
from isoslice.slicing.slicer import PerimeterSlicer, ProgressCallback, _noop_callback
from isoslice.slicing.toolpath import ExtrusionPath, summarize_paths

logger = get_logger(__name__)


@dataclass
class PipelineConfig:
    """Configuration for a single pipeline run."""

    model_path: str
    output_path: str = "output.gcode"
    print_config: PrintConfig = field(default_factory=PrintConfig)
    debug_dir: Optional[str] = None


@dataclass
class StepResult:
    """Result of a single pipeline step."""

    name: str
    success: bool
    error: Optional[str] = None
    duration_s: float = 0.0


@dataclass
class PipelineResult:
    """Result of a complete pipeline run."""

    success: bool
    paths: List[ExtrusionPath] = field(default_factory=list)
    layer_count: int = 0
    line_count: int = 0
    output_path: Optional[str] = None
    skipped_units: List[Tuple[int, int]] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    steps: List[StepResult] = field(default_factory=list)
    timings: Dict[str, float] = field(default_factory=dict)
    step_completed: str = ""  # Last step that completed successfully


class Pipeline:
    """End-to-end slicing pipeline.

    Usage:
        pipeline = Pipeline()
        result = pipeline.execute(PipelineConfig(model_path="part.yaml"))
    """

    def __init__(
        self,
        mesher: Optional[Mesher] = None,
        post_processor: Optional[PostProcessorBase] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self._mesher = mesher
        self._post_processor = post_processor or GCodePostProcessor()
        self._progress = progress_callback or _noop_callback

    def execute(self, config: PipelineConfig) -> PipelineResult:
        """Load the model, slice it and write the program to ``output_path``."""
        bind_run_context(model=str(config.model_path), output=str(config.output_path))
        result = PipelineResult(success=False)

        model = self._run_step(result, "load_model", lambda: load_model(config.model_path))

        slicer = PerimeterSlicer(
            model,
            config.print_config,
            mesher=self._mesher,
            diagnostics=self._diagnostics(config),
            progress_callback=self._progress,
        )
        paths = self._run_step(result, "slicing", slicer.slice)
        result.paths = paths
        result.layer_count = len(slicer.layers)
        result.skipped_units = list(slicer.skipped_units)

        text = self._run_step(
            result, "emit", lambda: slicer.emit(paths, self._post_processor)
        )
        result.line_count = text.count(self._post_processor.config.line_ending)

        target = self._run_step(
            result,
            "write",
            lambda: self._post_processor.write_text(text, config.output_path),
        )
        result.output_path = str(target)
        result.summary = summarize_paths(paths)
        result.success = True

        logger.info(
            "pipeline_complete",
            layers=result.layer_count,
            paths=len(paths),
            lines=result.line_count,
            output=result.output_path,
        )
        return result

    def _run_step(self, result: PipelineResult, name: str, fn: Callable) -> Any:
        """Execute a single pipeline step with timing; failures are re-raised."""
        self._progress(name, 0.0)
        t0 = time.perf_counter()
        try:
            data = fn()
        except Exception as e:
            duration = time.perf_counter() - t0
            logger.error(
                "pipeline_step_failed", step=name, duration_s=round(duration, 2), error=str(e)
            )
            result.steps.append(
                StepResult(name=name, success=False, error=str(e), duration_s=duration)
            )
            raise

        duration = time.perf_counter() - t0
        self._progress(name, 1.0)
        logger.info("pipeline_step_complete", step=name, duration_s=round(duration, 2))
        result.steps.append(StepResult(name=name, success=True, duration_s=duration))
        result.timings[name] = duration
        result.step_completed = name
        return data

    @staticmethod
    def _diagnostics(config: PipelineConfig) -> Optional[DiagnosticsSink]:
        if config.debug_dir is None:
            return None
        return DirectoryDiagnostics(Path(config.debug_dir))
