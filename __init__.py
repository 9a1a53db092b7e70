# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""
Tracegrad — Tracing reverse-mode automatic differentiation on NumPy.

A numeric function is traced once into an immutable graph of primitive
ops, evaluated on NumPy arrays, and differentiated by building a second
graph for its backward pass.  Because that backward graph is an ordinary
traceable function, gradients can be taken again to any order.

Usage::

    import numpy as np
    import tracegrad as tg

    @tg.compile
    def f(x):
        return x ** 3

    x = np.array(2.0)
    f(x)                    # 8.0
    f.grad()(x)             # (12.0,)
    f.grad().grad()(x)      # (12.0,)  == 6x
"""
from __future__ import annotations

import logging

__version__ = "0.1.0"
__author__ = "Pictofeed, LLC"

logging.getLogger(__name__).addHandler(logging.NullHandler())

# ── Traceable functions ──
from .function import TraceableFunction, TraceState, compile

# ── Symbols & functional ops ──
from .tensor import (
    Symbol,
    is_symbolic,
    exp, log, sin, cos, sqrt, tanh, relu,
    matmul, sum, mean, max,
    reshape, transpose, broadcast_to, sum_to,
)

# ── Graph IR ──
from .graph import Graph, Node
from .ops import OpKind, broadcast_shapes, broadcast_axes
from .tracer import TraceContext, trace
from .evaluator import evaluate
from .autograd import backward, unbroadcast

# ── Dtype constants ──
from .dtype import (
    dtype,
    float32, float64,
    get_default_dtype, set_default_dtype, default_dtype,
)

# ── Errors ──
from .errors import (
    TracegradError,
    ShapeError,
    ArityError,
    UntraceableControlFlow,
    TraceScopeError,
    NonScalarOutputError,
    UnsupportedOperation,
    GraphError,
)

# ── Sub-packages ──
from . import backends

__all__ = [
    "__version__",
    "__author__",

    # Functions
    'TraceableFunction', 'TraceState', 'compile',
    # Symbols & ops
    'Symbol', 'is_symbolic',
    'exp', 'log', 'sin', 'cos', 'sqrt', 'tanh', 'relu',
    'matmul', 'sum', 'mean', 'max',
    'reshape', 'transpose', 'broadcast_to', 'sum_to',
    # Graph IR
    'Graph', 'Node', 'OpKind', 'broadcast_shapes', 'broadcast_axes',
    'TraceContext', 'trace', 'evaluate', 'backward', 'unbroadcast',
    # Dtypes
    'dtype', 'float32', 'float64',
    'get_default_dtype', 'set_default_dtype', 'default_dtype',
    # Errors
    'TracegradError', 'ShapeError', 'ArityError', 'UntraceableControlFlow',
    'TraceScopeError', 'NonScalarOutputError', 'UnsupportedOperation',
    'GraphError',
    # Sub-packages
    'backends',
]
