"""
Perimeter slicing for implicit solids.

Drives the layer × perimeter loop: plan layers once, then for every
(layer, perimeter) unit build the cross-section expression, mesh it, and
extract contour paths. Paths are accumulated in layer order, then perimeter
order, then discovery order, and finally handed to a post processor.

Units only read the shared model and configuration, so they can run on a
thread pool; results are merged in submission order, which keeps the output
identical to a sequential run.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from isoslice.core.config import PrintConfig
from isoslice.core.exceptions import MeshingError, ModelEvaluationError, SlicingError
from isoslice.core.logging import get_logger
from isoslice.diagnostics import DiagnosticsSink, NullDiagnostics
from isoslice.geometry.expression import Expr
from isoslice.geometry.meshing import Mesher
from isoslice.slicing.contour import GridSnapKey, KeyFunction, bit_pattern_key, extract_contours
from isoslice.slicing.layers import Layer, plan_layers
from isoslice.slicing.perimeter import PerimeterGeometryBuilder
from isoslice.slicing.toolpath import ExtrusionPath

logger = get_logger(__name__)

# Grid points per axis used to check the model before slicing.
MODEL_CHECK_SAMPLES = 17

# (step_name, fraction 0.0-1.0)
ProgressCallback = Callable[[str, float], None]


def _noop_callback(step: str, pct: float) -> None:
    pass


class SliceStage(Enum):
    """Lifecycle of a slicer run."""

    IDLE = "idle"
    PLANNING = "planning"
    SLICING = "slicing"
    SLICED = "sliced"
    EMITTING = "emitting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SliceUnit:
    """One (layer, perimeter) pair."""

    layer: Layer
    perimeter: int


@dataclass
class UnitResult:
    unit: SliceUnit
    paths: List[ExtrusionPath] = field(default_factory=list)
    skipped: bool = False
    error: Optional[str] = None


class PerimeterSlicer:
    """
    Perimeter-only slicer for implicit-surface solids.

    Usage:
        slicer = PerimeterSlicer(model, PrintConfig.create(perimeter_count=2))
        paths = slicer.slice()
        gcode = slicer.emit(paths, GCodePostProcessor())
    """

    def __init__(
        self,
        model: Expr,
        config: PrintConfig,
        mesher: Optional[Mesher] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the slicer.

        Args:
            model: Implicit expression of the solid (read-only)
            config: Validated print configuration
            mesher: Iso-surface mesher (default: marching cubes)
            diagnostics: Sink for per-unit dumps (default: discard)
            progress_callback: Called with (step, fraction) as units finish
        """
        self.model = model
        self.config = config
        self.geometry = PerimeterGeometryBuilder(model, config, mesher)
        self.diagnostics = diagnostics or NullDiagnostics()
        self._progress = progress_callback or _noop_callback
        self._key: KeyFunction = (
            GridSnapKey(config.weld_tolerance) if config.weld_tolerance else bit_pattern_key
        )
        self.stage = SliceStage.IDLE
        self.layers: List[Layer] = []
        self.skipped_units: List[Tuple[int, int]] = []

    def plan_layers(self) -> List[Layer]:
        box = self.config.bounding_box
        return plan_layers(
            box.z_min, box.z_max, self.config.layer_height, self.config.layer_origin
        )

    def check_model(self, layers: Iterable[Layer]) -> None:
        """
        Evaluate the model on a coarse grid at every layer mid-height.

        The grid spans the X/Y extent the mesher will sample, so a model that
        cannot be evaluated there fails here, before any unit is meshed.

        Raises:
            ModelEvaluationError: If evaluation raises or yields non-finite values
        """
        lo, hi = self.geometry.bounds.minimum, self.geometry.bounds.maximum
        gx, gy = np.meshgrid(
            np.linspace(lo[0], hi[0], MODEL_CHECK_SAMPLES),
            np.linspace(lo[1], hi[1], MODEL_CHECK_SAMPLES),
            indexing="ij",
        )
        for layer in layers:
            z_mid = self.geometry.layer_mid_height(layer)
            try:
                values = self.model.evaluate(gx, gy, z_mid)
            except Exception as e:
                raise ModelEvaluationError(
                    f"Model evaluation failed at z={z_mid:g}: {e}",
                    details={"layer": layer.index, "z": z_mid},
                ) from e
            bad = int(np.count_nonzero(~np.isfinite(values)))
            if bad:
                raise ModelEvaluationError(
                    f"Model produced non-finite values at z={z_mid:g}",
                    details={"layer": layer.index, "non_finite_samples": bad},
                )

    def units(self, layers: Iterable[Layer]) -> List[SliceUnit]:
        perimeters = self.geometry.perimeter_indices()
        return [SliceUnit(layer, p) for layer in layers for p in perimeters]

    def slice_unit(self, unit: SliceUnit) -> UnitResult:
        """
        Build, mesh and extract one (layer, perimeter) unit.

        Raises:
            ModelEvaluationError: If the field cannot be evaluated (never skipped)
            MeshingError: If meshing fails and skipping is disabled
            SlicingError: If the mesh cannot be traced into contours
        """
        layer, perimeter = unit.layer, unit.perimeter
        expr = self.geometry.build(layer, perimeter)
        self._record("record_expression", layer, perimeter, expr)
        self._record(
            "record_settings", layer, perimeter, self.config.mesh_depth, self.geometry.bounds
        )

        try:
            mesh = self.geometry.mesh(expr, layer, perimeter)
        except MeshingError as e:
            if not self.config.skip_failed_perimeters:
                raise
            logger.warning(
                "perimeter_skipped",
                layer=layer.index,
                perimeter=perimeter,
                z=round(layer.z_height, 6),
                error=str(e),
            )
            return UnitResult(unit, skipped=True, error=str(e))

        self._record("record_mesh", layer, perimeter, mesh)

        try:
            paths = extract_contours(
                mesh,
                width=self.config.extrusion_width,
                height=self.config.layer_height,
                z_height=layer.z_height + self.config.layer_height,
                filament_area=self.config.filament_cross_sectional_area,
                layer_index=layer.index,
                perimeter_index=perimeter,
                key=self._key,
            )
        except (IndexError, ValueError) as e:
            raise SlicingError(
                f"Contour extraction failed at layer {layer.index}, perimeter {perimeter}",
                details={"layer": layer.index, "perimeter": perimeter, "error": str(e)},
            ) from e
        return UnitResult(unit, paths)

    def slice(self) -> List[ExtrusionPath]:
        """
        Slice the model into perimeter paths.

        Returns:
            Paths ordered by layer, then perimeter, then discovery order
        """
        try:
            self.stage = SliceStage.PLANNING
            self.layers = self.plan_layers()
            self.check_model(self.layers)
            units = self.units(self.layers)
            self.skipped_units = []

            logger.info(
                "slicing_started",
                layers=len(self.layers),
                perimeters=self.config.perimeter_count,
                units=len(units),
                workers=self.config.max_workers,
            )

            self.stage = SliceStage.SLICING
            paths: List[ExtrusionPath] = []
            for done, result in enumerate(self._run_units(units), start=1):
                paths.extend(result.paths)
                if result.skipped:
                    self.skipped_units.append((result.unit.layer.index, result.unit.perimeter))
                if result.unit.perimeter == 0:
                    logger.debug(
                        "layer_sliced",
                        layer=result.unit.layer.index,
                        z=round(result.unit.layer.z_height, 6),
                        paths=len(paths),
                    )
                self._progress("slicing", done / len(units))

            self.stage = SliceStage.SLICED
            logger.info(
                "slicing_complete",
                paths=len(paths),
                skipped=len(self.skipped_units),
            )
            return paths
        except Exception:
            self.stage = SliceStage.FAILED
            raise

    def emit(self, paths: List[ExtrusionPath], post_processor) -> str:
        """Serialize ``paths`` with ``post_processor`` (a PostProcessorBase)."""
        self.stage = SliceStage.EMITTING
        try:
            text = post_processor.generate(paths)
        except Exception:
            self.stage = SliceStage.FAILED
            raise
        self.stage = SliceStage.DONE
        return text

    def _run_units(self, units: List[SliceUnit]) -> Iterable[UnitResult]:
        if self.config.max_workers <= 1 or len(units) <= 1:
            for unit in units:
                yield self.slice_unit(unit)
            return

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            # map() yields in submission order.
            yield from executor.map(self.slice_unit, units)

    def _record(self, method: str, layer: Layer, perimeter: int, *payload) -> None:
        try:
            getattr(self.diagnostics, method)(layer, perimeter, *payload)
        except Exception as e:
            logger.warning(
                "diagnostics_failed",
                sink=type(self.diagnostics).__name__,
                record=method,
                layer=layer.index,
                perimeter=perimeter,
                error=str(e),
            )
