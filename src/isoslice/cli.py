"""
Command-line interface for isoslice.

Slices an implicit solid model into perimeter toolpaths and writes G-code.
Print settings come from the options below, optionally layered over a YAML
file given with ``--config``; options typed on the command line win. The
same file may carry a ``gcode:`` section with post processor settings.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from isoslice import __version__
from isoslice.core.config import PrintConfig, load_gcode_settings, load_print_config
from isoslice.core.exceptions import IsoSliceError
from isoslice.core.logging import configure_logging
from isoslice.pipeline import Pipeline, PipelineConfig, PipelineResult
from isoslice.postprocessor import GCodePostProcessor, PostProcessorConfig

console = Console()

# click parameter name -> PrintConfig field
_SETTING_PARAMS = {
    "nozzle_diameter": "nozzle_diameter",
    "layer_height": "layer_height",
    "filament_diameter": "filament_diameter",
    "extrusion_width_scalar": "extrusion_width_scalar",
    "perimeters": "perimeter_count",
    "x_min": "x_min",
    "x_max": "x_max",
    "y_min": "y_min",
    "y_max": "y_max",
    "z_min": "z_min",
    "z_max": "z_max",
    "depth": "mesh_depth",
    "workers": "max_workers",
    "skip_failed": "skip_failed_perimeters",
    "weld_tolerance": "weld_tolerance",
}


@click.command()
@click.version_option(version=__version__)
@click.option(
    "--file",
    "-f",
    "model_file",
    required=True,
    type=click.Path(path_type=Path),
    help="Model description file (YAML or expression)",
)
@click.option("--nozzle-diameter", type=float, default=0.40, show_default=True, help="Nozzle diameter (mm)")
@click.option("--layer-height", type=float, default=0.20, show_default=True, help="Layer height (mm)")
@click.option("--filament-diameter", type=float, default=1.75, show_default=True, help="Filament diameter (mm)")
@click.option(
    "--extrusion-width-scalar",
    type=float,
    default=1.05,
    show_default=True,
    help="Extrusion width as a multiple of the nozzle diameter",
)
@click.option("--perimeters", type=int, default=1, show_default=True, help="Perimeters per layer")
@click.option("--x-min", type=float, default=-5.0, show_default=True, help="Bounding box minimum X (mm)")
@click.option("--x-max", type=float, default=5.0, show_default=True, help="Bounding box maximum X (mm)")
@click.option("--y-min", type=float, default=-5.0, show_default=True, help="Bounding box minimum Y (mm)")
@click.option("--y-max", type=float, default=5.0, show_default=True, help="Bounding box maximum Y (mm)")
@click.option("--z-min", type=float, default=0.0, show_default=True, help="Bounding box minimum Z (mm)")
@click.option("--z-max", type=float, default=5.0, show_default=True, help="Bounding box maximum Z (mm)")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default="output.gcode",
    show_default=True,
    help="G-code output file",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML file with print settings",
)
@click.option("--depth", type=int, default=8, show_default=True, help="Meshing depth (2**depth cells per axis)")
@click.option("--debug-dir", type=click.Path(path_type=Path), default=None, help="Write per-perimeter dumps here")
@click.option("--workers", type=int, default=1, show_default=True, help="Slice (layer, perimeter) units in parallel")
@click.option("--skip-failed", is_flag=True, default=False, help="Skip perimeters whose meshing fails")
@click.option(
    "--absolute-layers",
    is_flag=True,
    default=False,
    help="Start layers at z-min instead of range * i / count - z-min",
)
@click.option(
    "--weld-tolerance",
    type=float,
    default=None,
    help="Join contour points closer than this distance (mm)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON lines")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write logs to this file",
)
@click.pass_context
def main(
    ctx: click.Context,
    model_file: Path,
    output: Path,
    config_file: Optional[Path],
    debug_dir: Optional[Path],
    absolute_layers: bool,
    log_level: str,
    json_logs: bool,
    log_file: Optional[Path],
    **settings: Any,
) -> None:
    """isoslice - Slice an implicit solid into perimeter G-code."""
    configure_logging(
        level=log_level,
        json_output=json_logs,
        log_file=str(log_file) if log_file is not None else None,
    )

    try:
        print_config = _build_print_config(ctx, config_file, absolute_layers, settings)
        post_processor = _build_post_processor(config_file)
        result = Pipeline(post_processor=post_processor).execute(
            PipelineConfig(
                model_path=str(model_file),
                output_path=str(output),
                print_config=print_config,
                debug_dir=str(debug_dir) if debug_dir is not None else None,
            )
        )
    except IsoSliceError as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise SystemExit(1)

    console.print(f"[green]✓[/green] Wrote {result.output_path}")
    _print_summary(result, print_config)


def _build_print_config(
    ctx: click.Context,
    config_file: Optional[Path],
    absolute_layers: bool,
    settings: Dict[str, Any],
) -> PrintConfig:
    if config_file is None:
        values = {_SETTING_PARAMS[name]: value for name, value in settings.items()}
        if values.get("weld_tolerance") is None:
            values.pop("weld_tolerance", None)
        if absolute_layers:
            values["layer_origin"] = "absolute"
        return PrintConfig.create(**values)

    overrides = {
        _SETTING_PARAMS[name]: value
        for name, value in settings.items()
        if ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE
    }
    if absolute_layers:
        overrides["layer_origin"] = "absolute"
    return load_print_config(config_file, **overrides)


def _build_post_processor(config_file: Optional[Path]) -> GCodePostProcessor:
    if config_file is None:
        return GCodePostProcessor()
    settings = load_gcode_settings(config_file)
    return GCodePostProcessor(PostProcessorConfig.from_dict(settings))


def _print_summary(result: PipelineResult, print_config: PrintConfig) -> None:
    table = Table(title="Slicing summary")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    summary = result.summary
    table.add_row("Layers", str(result.layer_count))
    table.add_row("Perimeters", str(print_config.perimeter_count))
    table.add_row("Extrusion width", f"{print_config.extrusion_width:.3f} mm")
    table.add_row("Paths", str(summary.get("paths", 0)))
    table.add_row("Points", str(summary.get("points", 0)))
    table.add_row("Path length", f"{summary.get('length_mm', 0.0):.1f} mm")
    table.add_row("Filament", f"{summary.get('filament_mm', 0.0):.1f} mm")
    table.add_row("G-code lines", str(result.line_count))
    if result.skipped_units:
        table.add_row("Skipped", ", ".join(f"L{layer}/P{p}" for layer, p in result.skipped_units))
    for step, duration in result.timings.items():
        table.add_row(f"Time: {step}", f"{duration:.2f} s")

    console.print(table)


if __name__ == "__main__":
    main()
