"""
PostProcessorBase — Abstract base class for motion-command emitters.

Turns an ordered list of extrusion paths into a text program. Subclasses
supply the format-specific commands; the base class handles path iteration,
extrusion amounts and optional event hooks.

Template variables available in event hooks:
  {layerIndex}  — layer of the path being emitted (0-based)
  {z}           — print height of that path (mm)
  {pathCount}   — total number of paths in the program
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from isoslice.core.exceptions import FileIOError
from isoslice.slicing.toolpath import ExtrusionPath


@dataclass
class EventHooks:
    """
    Custom code snippets injected at event points. Empty hooks emit nothing.
    """
    program_start: str = ""
    program_end: str = ""
    layer_start: str = ""    # injected when the layer index changes

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EventHooks':
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in d.items() if k in valid_fields})


@dataclass
class PostProcessorConfig:
    """Configuration for a post processor instance."""
    line_ending: str = "\n"
    decimals: int = 6
    hooks: EventHooks = field(default_factory=EventHooks)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'PostProcessorConfig':
        d = dict(d)
        hooks_data = d.pop('hooks', {})
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        config = cls(**{k: v for k, v in d.items() if k in valid_fields})
        if hooks_data:
            config.hooks = EventHooks.from_dict(hooks_data)
        return config


class PostProcessorBase(ABC):
    """
    Abstract base class for post processors.

    Subclasses implement:
    - layer_move()   — vertical repositioning to the path height
    - travel_move()  — non-extruding move to the path start
    - extrude_move() — extruding move carrying the segment feed
    """

    def __init__(self, config: Optional[PostProcessorConfig] = None):
        self.config = config or PostProcessorConfig()

    # ── Abstract methods ──────────────────────────────────────────────

    @abstractmethod
    def layer_move(self, z: float) -> List[str]:
        ...

    @abstractmethod
    def travel_move(self, x: float, y: float, z: float) -> List[str]:
        ...

    @abstractmethod
    def extrude_move(self, x: float, y: float, e: float) -> List[str]:
        ...

    # ── Hook expansion ────────────────────────────────────────────────

    def _expand_hook(self, hook_template: str, template_vars: Dict[str, Any]) -> List[str]:
        if not hook_template.strip():
            return []
        try:
            expanded = hook_template.format(**template_vars)
        except (KeyError, IndexError):
            expanded = hook_template  # Leave unresolved variables as-is
        return [line for line in expanded.split('\n') if line.strip()]

    # ── Generation ────────────────────────────────────────────────────

    def path_lines(self, path: ExtrusionPath) -> List[str]:
        """Commands for one path; empty paths produce none."""
        if not path.points:
            return []
        first_x, first_y = path.points[0]
        lines = self.layer_move(path.z_height)
        lines += self.travel_move(first_x, first_y, path.z_height)
        for (px, py), feed in zip(path.points[1:], path.segment_extrusions()):
            lines += self.extrude_move(px, py, feed)
        return lines

    def generate_lines(self, paths: List[ExtrusionPath]) -> List[str]:
        hooks = self.config.hooks
        program_vars = {'pathCount': str(len(paths))}
        lines = self._expand_hook(hooks.program_start, program_vars)

        current_layer = None
        for path in paths:
            if not path.points:
                continue
            if path.layer_index != current_layer:
                current_layer = path.layer_index
                layer_vars = {
                    **program_vars,
                    'layerIndex': str(path.layer_index),
                    'z': self._fmt(path.z_height),
                }
                lines.extend(self._expand_hook(hooks.layer_start, layer_vars))
            lines.extend(self.path_lines(path))

        lines.extend(self._expand_hook(hooks.program_end, program_vars))
        return lines

    def generate(self, paths: List[ExtrusionPath]) -> str:
        """
        Generate the complete program, one command per line.

        Parameters:
            paths: Extrusion paths in print order.

        Returns:
            Program text; every line, including the last, is terminated.
        """
        ending = self.config.line_ending
        return "".join(line + ending for line in self.generate_lines(paths))

    def write(self, paths: List[ExtrusionPath], output_path: str | Path) -> Path:
        """
        Generate and write the program to ``output_path``.

        Raises:
            FileIOError: If the file cannot be written
        """
        return self.write_text(self.generate(paths), output_path)

    def write_text(self, text: str, output_path: str | Path) -> Path:
        """Write an already generated program to ``output_path``."""
        target = Path(output_path)
        try:
            with open(target, "w", newline="") as f:
                f.write(text)
        except OSError as e:
            raise FileIOError(
                f"Unable to write output: {target}",
                path=str(target),
                details={"error": str(e)},
            ) from e
        return target

    def _fmt(self, value: float) -> str:
        return f"{float(value):.{self.config.decimals}f}"
