# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""The value interface shared by the evaluator and the differentiator.

A backend turns one primitive op on backend values into another backend
value.  :class:`~tracegrad.backends.numpy.NumpyBackend` computes NumPy
arrays; :class:`~tracegrad.backends.symbolic.SymbolicBackend` records the op
into an open trace instead, which is how a backward pass becomes a graph of
its own.  The convenience methods below are what VJP rules are written in.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..ops import OpKind


class Backend:
    """Base class: subclasses implement :meth:`apply` and :meth:`constant`."""

    name = 'abstract'

    def apply(self, op: OpKind, args: Sequence[Any], attrs: Mapping | None = None) -> Any:
        raise NotImplementedError

    def constant(self, value) -> Any:
        raise NotImplementedError

    # ── convenience wrappers ──────────────────────────────────────────

    def add(self, a, b):
        return self.apply(OpKind.ADD, (a, b))

    def sub(self, a, b):
        return self.apply(OpKind.SUB, (a, b))

    def mul(self, a, b):
        return self.apply(OpKind.MUL, (a, b))

    def div(self, a, b):
        return self.apply(OpKind.DIV, (a, b))

    def neg(self, a):
        return self.apply(OpKind.NEG, (a,))

    def pow(self, a, exponent: float):
        return self.apply(OpKind.POW, (a,), {'exponent': exponent})

    def exp(self, a):
        return self.apply(OpKind.EXP, (a,))

    def log(self, a):
        return self.apply(OpKind.LOG, (a,))

    def sin(self, a):
        return self.apply(OpKind.SIN, (a,))

    def cos(self, a):
        return self.apply(OpKind.COS, (a,))

    def step(self, a):
        return self.apply(OpKind.STEP, (a,))

    def equal(self, a, b):
        return self.apply(OpKind.EQUAL, (a, b))

    def matmul(self, a, b):
        return self.apply(OpKind.MATMUL, (a, b))

    def sum(self, a, axes=None, keepdims: bool = False):
        return self.apply(OpKind.SUM, (a,), {'axes': axes, 'keepdims': keepdims})

    def reshape(self, a, shape):
        return self.apply(OpKind.RESHAPE, (a,), {'shape': tuple(shape)})

    def transpose(self, a, axes=None):
        return self.apply(OpKind.TRANSPOSE, (a,), {'axes': axes})

    def broadcast_to(self, a, shape):
        return self.apply(OpKind.BROADCAST_TO, (a,), {'shape': tuple(shape)})

    def sum_to(self, a, shape):
        return self.apply(OpKind.SUM_TO, (a,), {'shape': tuple(shape)})

    def zeros(self, shape):
        return self.broadcast_to(self.constant(0.0), shape)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
