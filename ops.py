# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""The closed set of primitive operations and their shape rules.

Every node in a :class:`~tracegrad.graph.Graph` carries one :class:`OpKind`.
The kind fixes the operand count, whether the op has a derivative, and the
shape rule used at trace time.  Forward kernels live in the backends and
VJP rules in :mod:`tracegrad.autograd`; both are keyed by the same enum.
"""
from __future__ import annotations

import enum
import math
from typing import Callable, Sequence

import numpy as np

from .errors import ArityError, ShapeError, UnsupportedOperation

Shape = tuple  # tuple[int, ...]


class OpKind(enum.Enum):
    """Primitive op kinds: ``(label, operand count, differentiable)``."""
    INPUT = ('input', 0, False)
    CONST = ('const', 0, False)

    ADD = ('add', 2, True)
    SUB = ('sub', 2, True)
    MUL = ('mul', 2, True)
    DIV = ('div', 2, True)
    POW = ('pow', 1, True)
    NEG = ('neg', 1, True)

    EXP = ('exp', 1, True)
    LOG = ('log', 1, True)
    SIN = ('sin', 1, True)
    COS = ('cos', 1, True)
    SQRT = ('sqrt', 1, True)
    TANH = ('tanh', 1, True)
    RELU = ('relu', 1, True)

    MATMUL = ('matmul', 2, True)

    SUM = ('sum', 1, True)
    MEAN = ('mean', 1, True)
    MAX = ('max', 1, True)

    RESHAPE = ('reshape', 1, True)
    TRANSPOSE = ('transpose', 1, True)
    BROADCAST_TO = ('broadcast_to', 1, True)
    SUM_TO = ('sum_to', 1, True)

    # Masks used by VJP rules; derivative is zero almost everywhere.
    STEP = ('step', 1, False)
    EQUAL = ('equal', 2, False)

    def __init__(self, label: str, arity: int, differentiable: bool):
        self.label = label
        self.arity = arity
        self.differentiable = differentiable

    @property
    def is_leaf(self) -> bool:
        return self.arity == 0

    def infer(self, shapes: Sequence[Shape], attrs: dict) -> tuple[Shape, dict]:
        """Apply this op's shape rule.

        Returns the output shape and the normalized attribute payload.
        Raises :class:`ShapeError` when the operand shapes do not fit.
        """
        if len(shapes) != self.arity:
            raise ArityError(
                f"{self.label} takes {self.arity} operand(s), got {len(shapes)}")
        rule = _SHAPE_RULES.get(self)
        if rule is None:
            raise UnsupportedOperation(f"no shape rule for op '{self.label}'")
        return rule(self, [tuple(s) for s in shapes], dict(attrs))

    def __repr__(self) -> str:
        return f"OpKind.{self.name}"


# ──────────────────────── Broadcasting helpers ────────────────────────

def broadcast_shapes(*shapes: Shape) -> Shape:
    """NumPy-style broadcast of several shapes."""
    ndim = max((len(s) for s in shapes), default=0)
    result = []
    for i in range(1, ndim + 1):
        dim = 1
        for s in shapes:
            d = s[-i] if i <= len(s) else 1
            if d == 1 or d == dim:
                continue
            if dim != 1:
                raise ShapeError(
                    f"shapes {' and '.join(str(tuple(s)) for s in shapes)} "
                    f"are not broadcast-compatible")
            dim = d
        result.append(dim)
    return tuple(reversed(result))


def broadcast_axes(shape: Shape, target: Shape) -> tuple[int, ...]:
    """Axes of a *target*-shaped value that broadcasting added to *shape*.

    Summing a ``target``-shaped array over these axes (with ``keepdims``)
    and reshaping to ``shape`` undoes the broadcast.  The result is in
    ascending order: the leading axes that ``shape`` lacks, then every axis
    where ``shape`` has size 1 and ``target`` does not.
    """
    shape, target = tuple(shape), tuple(target)
    if broadcast_shapes(shape, target) != target:
        raise ShapeError(f"shape {shape} does not broadcast to {target}")
    lead = len(target) - len(shape)
    axes = list(range(lead))
    for i, d in enumerate(shape):
        if d == 1 and target[lead + i] != 1:
            axes.append(lead + i)
    return tuple(axes)


def normalize_axes(axes, ndim: int) -> tuple[int, ...]:
    """Resolve ``None`` / int / sequence of ints into sorted positive axes."""
    if axes is None:
        return tuple(range(ndim))
    if isinstance(axes, (int, np.integer)):
        axes = (axes,)
    out = []
    for ax in axes:
        ax = int(ax)
        if not -ndim <= ax < ndim:
            raise ShapeError(f"axis {ax} is out of range for rank {ndim}")
        out.append(ax % ndim if ndim else ax)
    if len(set(out)) != len(out):
        raise ShapeError(f"repeated axis in {tuple(axes)}")
    return tuple(sorted(out))


def reduced_shape(shape: Shape, axes: Sequence[int], keepdims: bool) -> Shape:
    if keepdims:
        return tuple(1 if i in axes else d for i, d in enumerate(shape))
    return tuple(d for i, d in enumerate(shape) if i not in axes)


def matmul_shape(a: Shape, b: Shape) -> Shape:
    """Output shape of ``a @ b`` under NumPy's ``matmul`` rules."""
    if len(a) == 0 or len(b) == 0:
        raise ShapeError("matmul does not accept 0-d operands")
    a2 = (1,) + a if len(a) == 1 else a
    b2 = b + (1,) if len(b) == 1 else b
    if a2[-1] != b2[-2]:
        raise ShapeError(
            f"matmul inner dimensions differ: {a} @ {b} "
            f"({a2[-1]} != {b2[-2]})")
    batch = broadcast_shapes(a2[:-2], b2[:-2])
    out = batch + (a2[-2], b2[-1])
    if len(a) == 1:
        out = out[:-2] + out[-1:]
    if len(b) == 1:
        out = out[:-1]
    return out


def resolve_reshape(shape: Shape, target) -> Shape:
    """Resolve a reshape target, filling in a single ``-1``."""
    if isinstance(target, (int, np.integer)):
        target = (target,)
    target = [int(d) for d in target]
    size = math.prod(shape)
    unknown = [i for i, d in enumerate(target) if d == -1]
    if len(unknown) > 1:
        raise ShapeError("can only specify one unknown dimension")
    if any(d < -1 for d in target):
        raise ShapeError(f"invalid reshape target {tuple(target)}")
    if unknown:
        known = math.prod(d for d in target if d != -1)
        if known == 0 or size % known:
            raise ShapeError(f"cannot reshape {shape} into {tuple(target)}")
        target[unknown[0]] = size // known
    if math.prod(target) != size:
        raise ShapeError(f"cannot reshape {shape} into {tuple(target)}")
    return tuple(target)


# ──────────────────────── Shape rules ─────────────────────────────────

_SHAPE_RULES: dict[OpKind, Callable] = {}


def _shape_rule(*kinds: OpKind):
    def register(fn):
        for kind in kinds:
            _SHAPE_RULES[kind] = fn
        return fn
    return register


@_shape_rule(OpKind.INPUT)
def _input_shape(kind, shapes, attrs):
    shape = tuple(int(d) for d in attrs['shape'])
    if any(d < 0 for d in shape):
        raise ShapeError(f"invalid input shape {shape}")
    attrs['shape'] = shape
    return shape, attrs


@_shape_rule(OpKind.CONST)
def _const_shape(kind, shapes, attrs):
    return tuple(attrs['value'].shape), attrs


@_shape_rule(OpKind.NEG, OpKind.EXP, OpKind.LOG, OpKind.SIN, OpKind.COS,
             OpKind.SQRT, OpKind.TANH, OpKind.RELU, OpKind.STEP)
def _same_shape(kind, shapes, attrs):
    return shapes[0], attrs


@_shape_rule(OpKind.POW)
def _pow_shape(kind, shapes, attrs):
    attrs['exponent'] = float(attrs['exponent'])
    return shapes[0], attrs


@_shape_rule(OpKind.ADD, OpKind.SUB, OpKind.MUL, OpKind.DIV, OpKind.EQUAL)
def _broadcast_shape(kind, shapes, attrs):
    return broadcast_shapes(*shapes), attrs


@_shape_rule(OpKind.MATMUL)
def _matmul_shape(kind, shapes, attrs):
    return matmul_shape(*shapes), attrs


@_shape_rule(OpKind.SUM, OpKind.MEAN, OpKind.MAX)
def _reduce_shape(kind, shapes, attrs):
    shape = shapes[0]
    axes = normalize_axes(attrs.get('axes'), len(shape))
    keepdims = bool(attrs.get('keepdims', False))
    if kind is OpKind.MAX and any(shape[ax] == 0 for ax in axes):
        raise ShapeError(f"max over a zero-size axis of {shape}")
    attrs['axes'], attrs['keepdims'] = axes, keepdims
    return reduced_shape(shape, axes, keepdims), attrs


@_shape_rule(OpKind.RESHAPE)
def _reshape_shape(kind, shapes, attrs):
    attrs['shape'] = resolve_reshape(shapes[0], attrs['shape'])
    return attrs['shape'], attrs


@_shape_rule(OpKind.TRANSPOSE)
def _transpose_shape(kind, shapes, attrs):
    shape = shapes[0]
    axes = attrs.get('axes')
    if axes is None:
        axes = tuple(reversed(range(len(shape))))
    ndim = len(shape)
    for a in axes:
        if not -ndim <= int(a) < ndim:
            raise ShapeError(f"axis {a} is out of range for rank {ndim}")
    axes = tuple(int(a) % ndim for a in axes)
    if sorted(axes) != list(range(ndim)):
        raise ShapeError(
            f"axes {tuple(attrs.get('axes'))} are not a permutation "
            f"of rank {len(shape)}")
    attrs['axes'] = axes
    return tuple(shape[a] for a in axes), attrs


@_shape_rule(OpKind.BROADCAST_TO)
def _broadcast_to_shape(kind, shapes, attrs):
    target = tuple(int(d) for d in attrs['shape'])
    if broadcast_shapes(shapes[0], target) != target:
        raise ShapeError(f"cannot broadcast {shapes[0]} to {target}")
    attrs['shape'] = target
    return target, attrs


@_shape_rule(OpKind.SUM_TO)
def _sum_to_shape(kind, shapes, attrs):
    target = tuple(int(d) for d in attrs['shape'])
    broadcast_axes(target, shapes[0])
    attrs['shape'] = target
    return target, attrs
