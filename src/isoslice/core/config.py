"""
Print configuration for isoslice.

Handles validation of nozzle, filament and layer settings, the print bounding
box, and loading those settings from YAML files with command-line overrides.
"""

import math
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from isoslice.core.exceptions import ConfigurationError

BOUNDING_BOX_KEYS = ("x_min", "x_max", "y_min", "y_max", "z_min", "z_max")


class BoundingBox(BaseModel):
    """Axis-aligned print volume in mm."""

    model_config = ConfigDict(frozen=True)

    x_min: float = -5.0
    x_max: float = 5.0
    y_min: float = -5.0
    y_max: float = 5.0
    z_min: float = 0.0
    z_max: float = 5.0

    @model_validator(mode="after")
    def _check_axes(self) -> "BoundingBox":
        for axis in ("x", "y", "z"):
            lo = getattr(self, f"{axis}_min")
            hi = getattr(self, f"{axis}_max")
            if hi <= lo:
                raise ValueError(f"{axis}_max ({hi}) must be greater than {axis}_min ({lo})")
        return self

    @property
    def center_x(self) -> float:
        return (self.x_max + self.x_min) / 2.0

    @property
    def center_y(self) -> float:
        return (self.y_max + self.y_min) / 2.0

    @property
    def x_extent(self) -> float:
        return self.x_max - self.x_min

    @property
    def y_extent(self) -> float:
        return self.y_max - self.y_min

    @property
    def z_range(self) -> float:
        return self.z_max - self.z_min


class PrintConfig(BaseModel):
    """
    Immutable settings for one slicing run.

    Construct through :meth:`create` or :func:`load_print_config` so that
    invalid values surface as :class:`ConfigurationError` before any geometry
    work starts.
    """

    model_config = ConfigDict(frozen=True)

    nozzle_diameter: float = Field(0.40, gt=0)
    layer_height: float = Field(0.20, gt=0)
    filament_diameter: float = Field(1.75, gt=0)
    extrusion_width_scalar: float = Field(1.05, gt=0)
    perimeter_count: int = Field(1, ge=0)
    bounding_box: BoundingBox = Field(default_factory=BoundingBox)

    # Run options
    mesh_depth: int = Field(8, ge=1, le=10)
    layer_origin: Literal["reference", "absolute"] = "reference"
    skip_failed_perimeters: bool = False
    max_workers: int = Field(1, ge=1)
    weld_tolerance: float | None = Field(None, gt=0)

    @classmethod
    def create(cls, **values: Any) -> "PrintConfig":
        """
        Build a validated configuration.

        Flat bounding-box keys (``x_min`` ... ``z_max``) are folded into
        ``bounding_box``.

        Raises:
            ConfigurationError: If any value is out of range
        """
        values = _fold_bounding_box(values)
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid print configuration",
                details={"errors": [_format_error(err) for err in e.errors()]},
            ) from e

    @property
    def extrusion_width(self) -> float:
        """Bead width in mm."""
        return self.extrusion_width_scalar * self.nozzle_diameter

    @property
    def path_spacing(self) -> float:
        """Centre-to-centre spacing of adjacent beads with rounded flanks."""
        return self.extrusion_width - self.layer_height * (1.0 - math.pi / 4.0)

    @property
    def filament_cross_sectional_area(self) -> float:
        return math.pi * (self.filament_diameter / 2.0) ** 2

    def perimeter_offset(self, perimeter: int) -> float:
        """Outward offset of the bead centreline for perimeter ``perimeter``."""
        return self.path_spacing * (perimeter + 0.5)

    def with_overrides(self, **overrides: Any) -> "PrintConfig":
        """Return a new validated config with ``overrides`` applied."""
        data = self.model_dump()
        return PrintConfig.create(**_merge(data, overrides))


def load_print_config(path: str | Path, **overrides: Any) -> PrintConfig:
    """
    Load print settings from a YAML file.

    The settings may sit at the top level or under a ``print:`` section.
    Keyword overrides (typically from the command line) win over file values.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    config_path = Path(path)
    data = _read_mapping(config_path)
    settings = data.get("print", data)
    if not isinstance(settings, dict):
        raise ConfigurationError(f"'print' section must be a mapping: {config_path}")

    return PrintConfig.create(**_merge(settings, overrides))


def load_gcode_settings(path: str | Path) -> dict[str, Any]:
    """
    Read the optional ``gcode:`` section of a YAML settings file.

    Returns an empty dict when the section is absent.

    Raises:
        ConfigurationError: If the file is missing, malformed or the section
            is not a mapping
    """
    config_path = Path(path)
    section = _read_mapping(config_path).get("gcode") or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'gcode' section must be a mapping: {config_path}")
    return section


def _read_mapping(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse configuration: {config_path}",
            details={"error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration must be a mapping: {config_path}",
            details={"type": type(data).__name__},
        )
    return data


def _fold_bounding_box(values: dict[str, Any]) -> dict[str, Any]:
    values = dict(values)
    if isinstance(values.get("bounding_box"), BoundingBox):
        values["bounding_box"] = values["bounding_box"].model_dump()
    flat = {key: values.pop(key) for key in BOUNDING_BOX_KEYS if key in values}
    if flat:
        values["bounding_box"] = {**(values.get("bounding_box") or {}), **flat}
    return values


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = _fold_bounding_box(base)
    overrides = _fold_bounding_box(overrides)
    for key, value in overrides.items():
        if key == "bounding_box" and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _format_error(err: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else str(err.get("msg"))
