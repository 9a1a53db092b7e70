# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Symbolic tensor placeholder and the functional op API.

A :class:`Symbol` stands in for a tensor while a function is traced.  It has
a shape but no data; every operation on it appends one node to the trace
that created it and returns a new :class:`Symbol`.  Asking a symbol for its
value (``bool``, ``float``, comparisons, iteration, NumPy conversion) raises
:class:`~tracegrad.errors.UntraceableControlFlow`.

The module-level functions (:func:`exp`, :func:`matmul`, :func:`sum`, ...)
record when given a symbol and compute eagerly with NumPy otherwise, so the
same function body runs traced or untraced.
"""
from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np

from .errors import ShapeError, UnsupportedOperation, UntraceableControlFlow
from .ops import OpKind

if TYPE_CHECKING:
    from .tracer import TraceContext


def _no_value(what: str):
    raise UntraceableControlFlow(
        f"{what} needs the runtime value of a traced symbol; traced functions "
        f"must not branch on tensor data")


class Symbol:
    """Shape-only handle to a node of the graph under construction."""

    __slots__ = ('_trace', '_id', '_shape')

    # Make NumPy defer to our reflected operators instead of building
    # object arrays out of symbols.
    __array_ufunc__ = None

    def __init__(self, trace: 'TraceContext', node_id: int, shape: tuple):
        self._trace = trace
        self._id = node_id
        self._shape = tuple(shape)

    # ------------------------------------------------------------------ #
    #  Properties                                                        #
    # ------------------------------------------------------------------ #

    @property
    def node_id(self) -> int:
        return self._id

    @property
    def trace(self) -> 'TraceContext':
        return self._trace

    @property
    def shape(self) -> tuple:
        return self._shape

    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def size(self) -> int:
        return math.prod(self._shape)

    @property
    def dtype(self):
        return self._trace.dtype

    @property
    def T(self) -> 'Symbol':
        return self.transpose()

    def __len__(self) -> int:
        if not self._shape:
            raise TypeError("len() of a 0-d symbol")
        return self._shape[0]

    def __repr__(self) -> str:
        return f"Symbol(id={self._id}, shape={self._shape})"

    # ------------------------------------------------------------------ #
    #  Value access is not traceable                                     #
    # ------------------------------------------------------------------ #

    def __bool__(self):
        _no_value("bool()")

    def __float__(self):
        _no_value("float()")

    def __int__(self):
        _no_value("int()")

    def __index__(self):
        _no_value("index()")

    def __complex__(self):
        _no_value("complex()")

    def __array__(self, *args, **kwargs):
        _no_value("conversion to a NumPy array")

    def __iter__(self):
        _no_value("iteration")

    def __eq__(self, other):
        _no_value("comparison")

    def __ne__(self, other):
        _no_value("comparison")

    def __lt__(self, other):
        _no_value("comparison")

    def __le__(self, other):
        _no_value("comparison")

    def __gt__(self, other):
        _no_value("comparison")

    def __ge__(self, other):
        _no_value("comparison")

    __hash__ = object.__hash__

    # ------------------------------------------------------------------ #
    #  Recording                                                         #
    # ------------------------------------------------------------------ #

    def _record(self, op: OpKind, *args, **attrs) -> 'Symbol':
        return self._trace.record(op, args, attrs)

    # ------------------------------------------------------------------ #
    #  Arithmetic operators                                              #
    # ------------------------------------------------------------------ #

    def __add__(self, other):
        return self._record(OpKind.ADD, self, other)

    def __radd__(self, other):
        return self._record(OpKind.ADD, other, self)

    def __sub__(self, other):
        return self._record(OpKind.SUB, self, other)

    def __rsub__(self, other):
        return self._record(OpKind.SUB, other, self)

    def __mul__(self, other):
        return self._record(OpKind.MUL, self, other)

    def __rmul__(self, other):
        return self._record(OpKind.MUL, other, self)

    def __truediv__(self, other):
        return self._record(OpKind.DIV, self, other)

    def __rtruediv__(self, other):
        return self._record(OpKind.DIV, other, self)

    def __pow__(self, exponent):
        if isinstance(exponent, Symbol):
            raise UnsupportedOperation(
                "symbolic exponents are not supported; write exp(y * log(x))")
        exponent = np.asarray(exponent)
        if exponent.ndim != 0:
            raise UnsupportedOperation("pow takes a scalar exponent")
        return self._record(OpKind.POW, self, exponent=float(exponent))

    def __rpow__(self, base):
        # base ** x == exp(x * log(base)) for a constant positive base
        base = np.asarray(base, dtype=self.dtype.to_numpy())
        if base.ndim != 0 or not base > 0:
            raise UnsupportedOperation(
                "a symbolic exponent needs a positive scalar base")
        return (self * np.log(base)).exp()

    def __neg__(self):
        return self._record(OpKind.NEG, self)

    def __pos__(self):
        return self

    def __matmul__(self, other):
        return self._record(OpKind.MATMUL, self, other)

    def __rmatmul__(self, other):
        return self._record(OpKind.MATMUL, other, self)

    # ------------------------------------------------------------------ #
    #  Elementwise math                                                  #
    # ------------------------------------------------------------------ #

    def exp(self) -> 'Symbol':
        return self._record(OpKind.EXP, self)

    def log(self) -> 'Symbol':
        return self._record(OpKind.LOG, self)

    def sin(self) -> 'Symbol':
        return self._record(OpKind.SIN, self)

    def cos(self) -> 'Symbol':
        return self._record(OpKind.COS, self)

    def sqrt(self) -> 'Symbol':
        return self._record(OpKind.SQRT, self)

    def tanh(self) -> 'Symbol':
        return self._record(OpKind.TANH, self)

    def relu(self) -> 'Symbol':
        return self._record(OpKind.RELU, self)

    def matmul(self, other) -> 'Symbol':
        return self._record(OpKind.MATMUL, self, other)

    # ------------------------------------------------------------------ #
    #  Reductions & shape ops                                            #
    # ------------------------------------------------------------------ #

    def sum(self, axis=None, keepdims: bool = False) -> 'Symbol':
        return self._record(OpKind.SUM, self, axes=axis, keepdims=keepdims)

    def mean(self, axis=None, keepdims: bool = False) -> 'Symbol':
        return self._record(OpKind.MEAN, self, axes=axis, keepdims=keepdims)

    def max(self, axis=None, keepdims: bool = False) -> 'Symbol':
        return self._record(OpKind.MAX, self, axes=axis, keepdims=keepdims)

    def reshape(self, *shape) -> 'Symbol':
        if len(shape) == 1 and isinstance(shape[0], (tuple, list)):
            shape = shape[0]
        return self._record(OpKind.RESHAPE, self, shape=shape)

    def transpose(self, *axes) -> 'Symbol':
        if len(axes) == 1 and isinstance(axes[0], (tuple, list)):
            axes = axes[0]
        return self._record(OpKind.TRANSPOSE, self, axes=tuple(axes) or None)

    def swapaxes(self, axis1: int, axis2: int) -> 'Symbol':
        for a in (axis1, axis2):
            if not -self.ndim <= a < self.ndim:
                raise ShapeError(f"axis {a} is out of range for rank {self.ndim}")
        perm = list(range(self.ndim))
        perm[axis1], perm[axis2] = perm[axis2], perm[axis1]
        return self.transpose(perm)

    def broadcast_to(self, shape) -> 'Symbol':
        return self._record(OpKind.BROADCAST_TO, self, shape=shape)

    def sum_to(self, shape) -> 'Symbol':
        return self._record(OpKind.SUM_TO, self, shape=shape)


# ──────────────────────── Functional API ──────────────────────────────

def _first_symbol(*args) -> Symbol | None:
    for a in args:
        if isinstance(a, Symbol):
            return a
    return None


def exp(x):
    return x.exp() if isinstance(x, Symbol) else np.exp(x)


def log(x):
    return x.log() if isinstance(x, Symbol) else np.log(x)


def sin(x):
    return x.sin() if isinstance(x, Symbol) else np.sin(x)


def cos(x):
    return x.cos() if isinstance(x, Symbol) else np.cos(x)


def sqrt(x):
    return x.sqrt() if isinstance(x, Symbol) else np.sqrt(x)


def tanh(x):
    return x.tanh() if isinstance(x, Symbol) else np.tanh(x)


def relu(x):
    return x.relu() if isinstance(x, Symbol) else np.maximum(x, 0)


def matmul(a, b):
    sym = _first_symbol(a, b)
    if sym is None:
        return np.matmul(a, b)
    return sym.trace.record(OpKind.MATMUL, (a, b))


def sum(x, axis=None, keepdims: bool = False):
    if isinstance(x, Symbol):
        return x.sum(axis, keepdims)
    return np.sum(x, axis=axis, keepdims=keepdims)


def mean(x, axis=None, keepdims: bool = False):
    if isinstance(x, Symbol):
        return x.mean(axis, keepdims)
    return np.mean(x, axis=axis, keepdims=keepdims)


def max(x, axis=None, keepdims: bool = False):
    if isinstance(x, Symbol):
        return x.max(axis, keepdims)
    return np.max(x, axis=axis, keepdims=keepdims)


def reshape(x, shape):
    return x.reshape(shape) if isinstance(x, Symbol) else np.reshape(x, shape)


def transpose(x, axes=None):
    if isinstance(x, Symbol):
        return x.transpose(axes) if axes is not None else x.transpose()
    return np.transpose(x, axes)


def broadcast_to(x, shape):
    if isinstance(x, Symbol):
        return x.broadcast_to(shape)
    return np.broadcast_to(x, shape).copy()


def sum_to(x, shape):
    if isinstance(x, Symbol):
        return x.sum_to(shape)
    from .autograd import unbroadcast
    return unbroadcast(np.asarray(x), tuple(shape))


def is_symbolic(x: Any) -> bool:
    """True for a :class:`Symbol` (i.e. while tracing)."""
    return isinstance(x, Symbol)


__all__ = [
    'Symbol', 'is_symbolic',
    'exp', 'log', 'sin', 'cos', 'sqrt', 'tanh', 'relu', 'matmul',
    'sum', 'mean', 'max', 'reshape', 'transpose', 'broadcast_to', 'sum_to',
]
