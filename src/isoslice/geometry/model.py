"""
Solid model descriptions.

Turns a YAML document (or a bare expression string) into an implicit
expression graph. A description is a tree of single-key mappings::

    model:
      difference:
        - cylinder: {radius: 3.0, height: 4.0}
        - expr: "sqrt(x*x + y*y) - 1.5"

Supported nodes:
- Primitives: ``sphere``, ``box``, ``cylinder``, ``torus``
- Booleans: ``union``, ``intersection``, ``difference`` (list of children)
- Transforms: ``translate`` / ``scale`` with a ``shape`` child, ``offset``
- ``expr``: arithmetic over ``x``, ``y``, ``z`` with ``abs``, ``sqrt``,
  ``square``, ``min``, ``max`` and numeric literals

Expression strings are parsed with :mod:`ast` and only the whitelisted node
types above are accepted; nothing is ever passed to ``eval``.
"""

import ast
import math
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

import yaml

from isoslice.core.exceptions import FileIOError, ModelEvaluationError
from isoslice.geometry.expression import Expr, as_expr, constant, x, y, z

# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def sphere(radius: float, center: Sequence[float] = (0.0, 0.0, 0.0)) -> Expr:
    cx, cy, cz = _vec3(center, "center")
    return ((x() - cx).square() + (y() - cy).square() + (z() - cz).square()).sqrt() - radius


def box(size: Sequence[float], center: Sequence[float] = (0.0, 0.0, 0.0)) -> Expr:
    """Axis-aligned box as the max of the three slab distances."""
    sx, sy, sz = _vec3(size, "size")
    cx, cy, cz = _vec3(center, "center")
    return (
        (abs(x() - cx) - sx / 2.0)
        .max(abs(y() - cy) - sy / 2.0)
        .max(abs(z() - cz) - sz / 2.0)
    )


def cylinder(
    radius: float,
    height: float,
    center: Sequence[float] = (0.0, 0.0, 0.0),
) -> Expr:
    """Z-aligned cylinder standing on ``center`` (its base centre)."""
    cx, cy, cz = _vec3(center, "center")
    radial = ((x() - cx).square() + (y() - cy).square()).sqrt() - radius
    axial = abs(z() - (cz + height / 2.0)) - height / 2.0
    return radial.max(axial)


def torus(
    major_radius: float,
    minor_radius: float,
    center: Sequence[float] = (0.0, 0.0, 0.0),
) -> Expr:
    cx, cy, cz = _vec3(center, "center")
    ring = ((x() - cx).square() + (y() - cy).square()).sqrt() - major_radius
    return (ring.square() + (z() - cz).square()).sqrt() - minor_radius


# ---------------------------------------------------------------------------
# Booleans and transforms
# ---------------------------------------------------------------------------


def union(*shapes: Expr) -> Expr:
    result = shapes[0]
    for shape in shapes[1:]:
        result = result.min(shape)
    return result


def intersection(*shapes: Expr) -> Expr:
    result = shapes[0]
    for shape in shapes[1:]:
        result = result.max(shape)
    return result


def difference(base: Expr, *cutters: Expr) -> Expr:
    result = base
    for cutter in cutters:
        result = result.max(-cutter)
    return result


def translate(shape: Expr, offset: Sequence[float]) -> Expr:
    dx, dy, dz = _vec3(offset, "by")
    return shape.remap(x() - dx, y() - dy, z() - dz)


def scale(shape: Expr, factor: float) -> Expr:
    """Uniform scale about the origin; distances stay in model units."""
    if factor <= 0:
        raise ModelEvaluationError("Scale factor must be positive", details={"factor": factor})
    return shape.remap(x() / factor, y() / factor, z() / factor) * factor


def offset(shape: Expr, distance: float) -> Expr:
    """Grow (positive) or shrink (negative) a shape by ``distance``."""
    return shape - distance


# ---------------------------------------------------------------------------
# Expression strings
# ---------------------------------------------------------------------------

_FUNCTIONS: Dict[str, Callable[..., Expr]] = {
    "abs": lambda a: abs(a),
    "sqrt": lambda a: a.sqrt(),
    "square": lambda a: a.square(),
    "min": lambda a, *rest: union(a, *rest),
    "max": lambda a, *rest: intersection(a, *rest),
}

_NAMES: Dict[str, Callable[[], Expr]] = {
    "x": x,
    "y": y,
    "z": z,
    "pi": lambda: constant(math.pi),
}


def parse_expression(text: str) -> Expr:
    """
    Parse an arithmetic expression over ``x``, ``y`` and ``z``.

    Raises:
        ModelEvaluationError: On syntax errors or unsupported constructs
    """
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as e:
        raise ModelEvaluationError(
            "Invalid expression syntax",
            details={"expression": text, "error": str(e)},
        ) from e
    return _convert(tree.body, text)


def _convert(node: ast.AST, source: str) -> Expr:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) \
            and not isinstance(node.value, bool):
        return constant(node.value)

    if isinstance(node, ast.Name):
        if node.id not in _NAMES:
            raise ModelEvaluationError(
                f"Unknown name '{node.id}'",
                details={"expression": source, "allowed": sorted(_NAMES)},
            )
        return _NAMES[node.id]()

    if isinstance(node, ast.UnaryOp):
        operand = _convert(node.operand, source)
        if isinstance(node.op, ast.USub):
            return -operand
        if isinstance(node.op, ast.UAdd):
            return operand

    if isinstance(node, ast.BinOp):
        lhs = _convert(node.left, source)
        rhs = _convert(node.right, source)
        if isinstance(node.op, ast.Add):
            return lhs + rhs
        if isinstance(node.op, ast.Sub):
            return lhs - rhs
        if isinstance(node.op, ast.Mult):
            return lhs * rhs
        if isinstance(node.op, ast.Div):
            return lhs / rhs
        if isinstance(node.op, ast.Pow) and isinstance(node.right, ast.Constant) \
                and node.right.value == 2:
            return lhs.square()

    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and not node.keywords:
        func = _FUNCTIONS.get(node.func.id)
        if func is None:
            raise ModelEvaluationError(
                f"Unknown function '{node.func.id}'",
                details={"expression": source, "allowed": sorted(_FUNCTIONS)},
            )
        args = [_convert(arg, source) for arg in node.args]
        try:
            return func(*args)
        except TypeError as e:
            raise ModelEvaluationError(
                f"Wrong number of arguments to '{node.func.id}'",
                details={"expression": source},
            ) from e

    raise ModelEvaluationError(
        f"Unsupported expression element: {ast.dump(node)}",
        details={"expression": source},
    )


# ---------------------------------------------------------------------------
# Description trees
# ---------------------------------------------------------------------------


def build_model(node: Any) -> Expr:
    """
    Build an expression from a parsed description node.

    Raises:
        ModelEvaluationError: If the description is malformed
    """
    if isinstance(node, str):
        return parse_expression(node)
    if isinstance(node, (int, float)) and not isinstance(node, bool):
        return as_expr(node)
    if not isinstance(node, dict) or len(node) != 1:
        raise ModelEvaluationError(
            "Each model node must be a mapping with exactly one key",
            details={"node": repr(node)},
        )

    kind, params = next(iter(node.items()))
    builder = _BUILDERS.get(kind)
    if builder is None:
        raise ModelEvaluationError(
            f"Unknown model node '{kind}'",
            details={"allowed": sorted(_BUILDERS)},
        )
    try:
        return builder(params)
    except ModelEvaluationError:
        raise
    except (TypeError, ValueError, KeyError) as e:
        raise ModelEvaluationError(
            f"Invalid parameters for '{kind}'",
            details={"params": repr(params), "error": str(e)},
        ) from e


def _children(params: Any) -> List[Expr]:
    if not isinstance(params, list) or not params:
        raise ModelEvaluationError("Boolean nodes need a non-empty list of children")
    return [build_model(child) for child in params]


def _transform_child(params: dict) -> Expr:
    if "shape" not in params:
        raise ModelEvaluationError("Transform nodes need a 'shape' child")
    return build_model(params["shape"])


_BUILDERS: Dict[str, Callable[[Any], Expr]] = {
    "sphere": lambda p: sphere(**p),
    "box": lambda p: box(**p),
    "cylinder": lambda p: cylinder(**p),
    "torus": lambda p: torus(**p),
    "union": lambda p: union(*_children(p)),
    "intersection": lambda p: intersection(*_children(p)),
    "difference": lambda p: difference(*_children(p)),
    "translate": lambda p: translate(_transform_child(p), p["by"]),
    "scale": lambda p: scale(_transform_child(p), float(p["factor"])),
    "offset": lambda p: offset(_transform_child(p), float(p["distance"])),
    "expr": lambda p: parse_expression(str(p)),
}


def load_model(path: str | Path) -> Expr:
    """
    Load a solid model description from disk.

    The file is YAML; its ``model:`` entry (or the whole document) is the
    root node. A file containing only an expression string also works.

    Raises:
        FileIOError: If the file cannot be read
        ModelEvaluationError: If the description is invalid
    """
    model_path = Path(path)
    try:
        text = model_path.read_text()
    except OSError as e:
        raise FileIOError(
            f"Unable to read model file: {model_path}",
            path=str(model_path),
            details={"error": str(e)},
        ) from e
    return loads_model(text)


def loads_model(text: str) -> Expr:
    """Build a model from description text (see :func:`load_model`)."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ModelEvaluationError(
            "Model description is not valid YAML",
            details={"error": str(e)},
        ) from e

    if document is None:
        raise ModelEvaluationError("Model description is empty")
    if isinstance(document, dict) and "model" in document:
        document = document["model"]
    return build_model(document)


def _vec3(values: Sequence[float], name: str) -> tuple:
    if isinstance(values, (int, float)):
        return (float(values),) * 3
    if len(values) != 3:
        raise ModelEvaluationError(f"'{name}' must have three components", details={name: values})
    return tuple(float(v) for v in values)
