"""
Diagnostic dumps for the slicing loop.

The slicer reports each (layer, perimeter) unit to a :class:`DiagnosticsSink`:
the mesher settings, the offset expression and the resulting mesh. The
default sink discards everything. :class:`DirectoryDiagnostics` writes them
under a directory for offline inspection; write failures are logged and never
interrupt slicing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from isoslice.geometry.expression import Expr
from isoslice.geometry.meshing import MeshBounds, SliceMesh

if TYPE_CHECKING:
    from isoslice.slicing.layers import Layer

logger = logging.getLogger(__name__)


class DiagnosticsSink(Protocol):
    def record_settings(
        self, layer: Layer, perimeter: int, depth: int, bounds: MeshBounds
    ) -> None:
        ...

    def record_expression(self, layer: Layer, perimeter: int, expr: Expr) -> None:
        ...

    def record_mesh(self, layer: Layer, perimeter: int, mesh: SliceMesh) -> None:
        ...


class NullDiagnostics:
    """Sink that drops every record."""

    def record_settings(self, layer, perimeter, depth, bounds) -> None:
        pass

    def record_expression(self, layer, perimeter, expr) -> None:
        pass

    def record_mesh(self, layer, perimeter, mesh) -> None:
        pass


class DirectoryDiagnostics:
    """
    Write per-unit dumps into ``directory``.

    Files are named after the layer planning height and perimeter index:
    ``settings_{z:.2f}_p{n}.txt``, ``expression_{z:.2f}_p{n}.txt`` and
    ``temp_{z:.2f}_p{n}.stl``.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._ready = False

    def _path(self, prefix: str, layer: Layer, perimeter: int, suffix: str) -> Path:
        return self.directory / f"{prefix}_{layer.z_height:.2f}_p{perimeter}{suffix}"

    def _ensure_directory(self) -> bool:
        if not self._ready:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                self._ready = True
            except OSError as e:
                logger.warning("Cannot create diagnostics directory %s: %s", self.directory, e)
        return self._ready

    def record_settings(self, layer, perimeter, depth, bounds) -> None:
        text = (
            f"depth: {depth}\n"
            f"center x: {bounds.center[0]}\n"
            f"center y: {bounds.center[1]}\n"
            f"center z: {bounds.center[2]}\n"
            f"size: {bounds.size}\n"
        )
        self._write_text(self._path("settings", layer, perimeter, ".txt"), text)

    def record_expression(self, layer, perimeter, expr) -> None:
        self._write_text(self._path("expression", layer, perimeter, ".txt"), expr.dump() + "\n")

    def record_mesh(self, layer, perimeter, mesh) -> None:
        if not self._ensure_directory():
            return
        path = self._path("temp", layer, perimeter, ".stl")
        try:
            mesh.to_trimesh().export(str(path), file_type="stl")
        except Exception as e:
            logger.warning("Failed to write mesh dump %s: %s", path, e)

    def _write_text(self, path: Path, text: str) -> None:
        if not self._ensure_directory():
            return
        try:
            path.write_text(text)
        except OSError as e:
            logger.warning("Failed to write diagnostics file %s: %s", path, e)
