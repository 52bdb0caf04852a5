"""
Layer planning.

Splits the vertical print range into layers of constant height. Only
standard layers are produced; the kind enum leaves room for support or
interface layers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from isoslice.core.exceptions import ConfigurationError


class LayerKind(Enum):
    """Type of layer."""

    STANDARD = "standard"


@dataclass(frozen=True)
class Layer:
    """
    One planned layer.

    Attributes:
        index: Position in the layer sequence (0-based)
        z_height: Planning height of the layer bottom (mm)
        kind: Layer type
    """

    index: int
    z_height: float
    kind: LayerKind = LayerKind.STANDARD


def plan_layers(
    z_min: float,
    z_max: float,
    layer_height: float,
    origin: str = "reference",
) -> List[Layer]:
    """
    Compute the ordered layer sequence for a vertical range.

    ``layer_count = (z_max - z_min) / layer_height`` is kept real-valued and
    layers are emitted for every integer index below it, so a partial top
    layer is still planned.

    Args:
        z_min: Bottom of the print range
        z_max: Top of the print range
        layer_height: Layer thickness (mm)
        origin: ``"reference"`` places layer ``i`` at
            ``range * i / count - z_min`` (the default); ``"absolute"``
            places it at ``z_min + range * i / count``. Both agree when
            ``z_min == 0``.

    Raises:
        ConfigurationError: If ``layer_height`` is not positive, the range is
            empty, or ``origin`` is unknown
    """
    if layer_height <= 0:
        raise ConfigurationError(
            "Layer height must be positive", details={"layer_height": layer_height}
        )
    z_range = z_max - z_min
    if z_range <= 0:
        raise ConfigurationError(
            "z_max must be greater than z_min",
            details={"z_min": z_min, "z_max": z_max},
        )
    if origin not in ("reference", "absolute"):
        raise ConfigurationError(
            f"Unknown layer origin: {origin}",
            details={"allowed": ["reference", "absolute"]},
        )

    layer_count = z_range / layer_height
    layers = []
    index = 0
    while index < layer_count:
        fraction = z_range * index / layer_count
        if origin == "reference":
            z_height = fraction - z_min
        else:
            z_height = z_min + fraction
        layers.append(Layer(index=index, z_height=z_height))
        index += 1
    return layers
