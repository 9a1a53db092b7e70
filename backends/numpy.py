# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""
tracegrad.backends.numpy — Concrete evaluation on NumPy arrays.

Each :class:`~tracegrad.ops.OpKind` maps to one kernel.  Kernels take the
operand arrays positionally and the node attributes as keywords; every
result is converted to a fresh array of the backend dtype so callers own
what they get back.
"""
from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

import numpy as np

from ..autograd import unbroadcast
from ..dtype import dtype as Dtype, get_default_dtype
from ..errors import ArityError, UnsupportedOperation
from ..ops import OpKind
from .base import Backend


# ──────────────────────────────────────────────────────────────────────
#  Kernels
# ──────────────────────────────────────────────────────────────────────

def _sum(x, axes, keepdims):
    return np.sum(x, axis=axes, keepdims=keepdims)


def _mean(x, axes, keepdims):
    return np.mean(x, axis=axes, keepdims=keepdims)


def _max(x, axes, keepdims):
    return np.max(x, axis=axes, keepdims=keepdims)


def _reshape(x, shape):
    return np.reshape(x, shape)


def _transpose(x, axes):
    return np.transpose(x, axes)


def _broadcast_to(x, shape):
    return np.broadcast_to(x, shape)


def _sum_to(x, shape):
    return unbroadcast(x, shape)


def _pow(x, exponent):
    return np.power(x, exponent)


def _step(x):
    return x > 0


def _equal(a, b):
    return a == b


KERNELS: dict[OpKind, Callable[..., Any]] = {
    OpKind.ADD: np.add,
    OpKind.SUB: np.subtract,
    OpKind.MUL: np.multiply,
    OpKind.DIV: np.divide,
    OpKind.POW: _pow,
    OpKind.NEG: np.negative,
    OpKind.EXP: np.exp,
    OpKind.LOG: np.log,
    OpKind.SIN: np.sin,
    OpKind.COS: np.cos,
    OpKind.SQRT: np.sqrt,
    OpKind.TANH: np.tanh,
    OpKind.RELU: lambda x: np.maximum(x, 0),
    OpKind.MATMUL: np.matmul,
    OpKind.SUM: _sum,
    OpKind.MEAN: _mean,
    OpKind.MAX: _max,
    OpKind.RESHAPE: _reshape,
    OpKind.TRANSPOSE: _transpose,
    OpKind.BROADCAST_TO: _broadcast_to,
    OpKind.SUM_TO: _sum_to,
    OpKind.STEP: _step,
    OpKind.EQUAL: _equal,
}


# ──────────────────────────────────────────────────────────────────────
#  Backend
# ──────────────────────────────────────────────────────────────────────

class NumpyBackend(Backend):
    """Computes every op eagerly with NumPy in a fixed float dtype."""

    name = 'numpy'

    def __init__(self, dtype=None):
        self.dtype = Dtype.coerce(dtype) if dtype is not None else get_default_dtype()
        self._np_dtype = self.dtype.to_numpy()

    def apply(self, op: OpKind, args: Sequence[Any], attrs: Mapping | None = None) -> np.ndarray:
        kernel = KERNELS.get(op)
        if kernel is None:
            raise UnsupportedOperation(f"no NumPy kernel for op '{op.label}'")
        if len(args) != op.arity:
            raise ArityError(
                f"{op.label} takes {op.arity} operand(s), got {len(args)}")
        # attrs from the convenience methods are not normalized yet
        if attrs:
            _, attrs = op.infer([np.shape(a) for a in args], attrs)
        out = kernel(*args, **(attrs or {}))
        return np.array(out, dtype=self._np_dtype)

    def constant(self, value) -> np.ndarray:
        return np.array(value, dtype=self._np_dtype)

    def __repr__(self) -> str:
        return f"NumpyBackend(dtype={self.dtype.name})"
