"""
Implicit-surface expression graph.

An expression is a scalar field f(x, y, z): negative inside the solid,
positive outside, zero on the surface. Nodes are immutable and shared, so
composing two expressions creates one new node that references both operands
without copying them. ``clone()`` is therefore free.

Evaluation is vectorised over numpy arrays and memoised per call, so a
sub-graph referenced from several parents is computed once.

Example:
    >>> from isoslice.geometry.expression import x, y, z
    >>> sphere = (x() * x() + y() * y() + z() * z()).sqrt() - 2.0
    >>> float(sphere.evaluate(0.0, 0.0, 0.0))
    -2.0
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Tuple, Union

import numpy as np

Number = Union[int, float]
ArrayLike = Union[np.ndarray, float]

UNARY_OPS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "neg": np.negative,
    "abs": np.abs,
    "sqrt": np.sqrt,
    "square": np.square,
}

BINARY_OPS: Dict[str, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    "add": np.add,
    "sub": np.subtract,
    "mul": np.multiply,
    "div": np.divide,
    "max": np.maximum,
    "min": np.minimum,
}


class Expr:
    """Base class for expression nodes."""

    __slots__ = ()

    # ── Composition ───────────────────────────────────────────────────

    def __add__(self, other: Union[Expr, Number]) -> Expr:
        return Binary("add", self, as_expr(other))

    def __radd__(self, other: Number) -> Expr:
        return Binary("add", as_expr(other), self)

    def __sub__(self, other: Union[Expr, Number]) -> Expr:
        return Binary("sub", self, as_expr(other))

    def __rsub__(self, other: Number) -> Expr:
        return Binary("sub", as_expr(other), self)

    def __mul__(self, other: Union[Expr, Number]) -> Expr:
        return Binary("mul", self, as_expr(other))

    def __rmul__(self, other: Number) -> Expr:
        return Binary("mul", as_expr(other), self)

    def __truediv__(self, other: Union[Expr, Number]) -> Expr:
        return Binary("div", self, as_expr(other))

    def __rtruediv__(self, other: Number) -> Expr:
        return Binary("div", as_expr(other), self)

    def __neg__(self) -> Expr:
        return Unary("neg", self)

    def __abs__(self) -> Expr:
        return Unary("abs", self)

    def max(self, other: Union[Expr, Number]) -> Expr:
        """Pairwise maximum (CSG intersection)."""
        return Binary("max", self, as_expr(other))

    def min(self, other: Union[Expr, Number]) -> Expr:
        """Pairwise minimum (CSG union)."""
        return Binary("min", self, as_expr(other))

    def sqrt(self) -> Expr:
        return Unary("sqrt", self)

    def square(self) -> Expr:
        return Unary("square", self)

    def remap(
        self,
        x: Union[Expr, Number],
        y: Union[Expr, Number],
        z: Union[Expr, Number],
    ) -> Expr:
        """Substitute the x, y and z inputs of this expression."""
        return Remap(self, as_expr(x), as_expr(y), as_expr(z))

    def clone(self) -> Expr:
        """Return a handle to the same graph (nodes are immutable)."""
        return self

    # ── Evaluation ────────────────────────────────────────────────────

    def evaluate(self, x: ArrayLike, y: ArrayLike, z: ArrayLike) -> np.ndarray:
        """
        Evaluate the field at the given coordinates.

        Inputs are broadcast against each other; the result has the
        broadcast shape and dtype float64.
        """
        xs, ys, zs = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
        )
        with np.errstate(invalid="ignore", divide="ignore"):
            result = self._eval(xs, ys, zs, {})
        return np.broadcast_to(np.asarray(result, dtype=np.float64), xs.shape).copy()

    def _eval(self, x: ArrayLike, y: ArrayLike, z: ArrayLike, memo: dict) -> ArrayLike:
        key = id(self)
        if key not in memo:
            memo[key] = self._compute(x, y, z, memo)
        return memo[key]

    def _compute(self, x: ArrayLike, y: ArrayLike, z: ArrayLike, memo: dict) -> ArrayLike:
        raise NotImplementedError

    # ── Introspection ─────────────────────────────────────────────────

    def children(self) -> Tuple[Expr, ...]:
        return ()

    def walk(self) -> Iterator[Expr]:
        """Yield each unique node once, operands before their parents."""
        seen: set = set()
        stack: List[Tuple[Expr, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if id(node) in seen:
                continue
            if expanded:
                seen.add(id(node))
                yield node
                continue
            stack.append((node, True))
            for child in reversed(node.children()):
                if id(child) not in seen:
                    stack.append((child, False))

    def node_count(self) -> int:
        return sum(1 for _ in self.walk())

    def dump(self) -> str:
        """
        Render the graph as a numbered instruction listing.

        Shared nodes appear once; later lines reference earlier ones by
        register number. Used for diagnostic dumps.
        """
        registers: Dict[int, int] = {}
        lines = []
        for node in self.walk():
            index = len(registers)
            registers[id(node)] = index
            operands = " ".join(f"r{registers[id(c)]}" for c in node.children())
            lines.append(f"r{index} = {node._label()} {operands}".rstrip())
        return "\n".join(lines)

    def _label(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class Var(Expr):
    """One of the coordinate inputs."""

    axis: str

    def _compute(self, x, y, z, memo):
        return {"x": x, "y": y, "z": z}[self.axis]

    def _label(self) -> str:
        return f"var {self.axis}"


@dataclass(frozen=True, eq=False)
class Const(Expr):
    value: float

    def _compute(self, x, y, z, memo):
        return np.float64(self.value)

    def _label(self) -> str:
        return f"const {self.value!r}"


@dataclass(frozen=True, eq=False)
class Unary(Expr):
    op: str
    arg: Expr

    def __post_init__(self) -> None:
        if self.op not in UNARY_OPS:
            raise ValueError(f"Unknown unary operation: {self.op}")

    def children(self):
        return (self.arg,)

    def _compute(self, x, y, z, memo):
        return UNARY_OPS[self.op](self.arg._eval(x, y, z, memo))

    def _label(self) -> str:
        return self.op


@dataclass(frozen=True, eq=False)
class Binary(Expr):
    op: str
    lhs: Expr
    rhs: Expr

    def __post_init__(self) -> None:
        if self.op not in BINARY_OPS:
            raise ValueError(f"Unknown binary operation: {self.op}")

    def children(self):
        return (self.lhs, self.rhs)

    def _compute(self, x, y, z, memo):
        return BINARY_OPS[self.op](
            self.lhs._eval(x, y, z, memo), self.rhs._eval(x, y, z, memo)
        )

    def _label(self) -> str:
        return self.op


@dataclass(frozen=True, eq=False)
class Remap(Expr):
    """Evaluate ``body`` at coordinates produced by three other expressions."""

    body: Expr
    x: Expr
    y: Expr
    z: Expr

    def children(self):
        return (self.body, self.x, self.y, self.z)

    def _compute(self, x, y, z, memo):
        nx = self.x._eval(x, y, z, memo)
        ny = self.y._eval(x, y, z, memo)
        nz = self.z._eval(x, y, z, memo)
        # The body sees different coordinates, so it gets its own memo.
        return self.body._eval(nx, ny, nz, {})

    def _label(self) -> str:
        return "remap"


_X = Var("x")
_Y = Var("y")
_Z = Var("z")


def x() -> Expr:
    return _X


def y() -> Expr:
    return _Y


def z() -> Expr:
    return _Z


def constant(value: Number) -> Expr:
    return Const(float(value))


def as_expr(value: Union[Expr, Number]) -> Expr:
    """Wrap plain numbers as constants; pass expressions through."""
    if isinstance(value, Expr):
        return value
    if isinstance(value, (int, float, np.floating, np.integer)) and not isinstance(value, bool):
        return Const(float(value))
    raise TypeError(f"Cannot use {type(value).__name__} as an expression")
