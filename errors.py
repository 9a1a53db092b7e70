# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Exception hierarchy for tracing, evaluation and differentiation.

Every error derives from :class:`TracegradError` and from the builtin
exception closest in meaning, so ``except ValueError`` keeps catching a
:class:`ShapeError`.
"""
from __future__ import annotations

__all__ = [
    'TracegradError',
    'ShapeError',
    'ArityError',
    'UntraceableControlFlow',
    'TraceScopeError',
    'NonScalarOutputError',
    'UnsupportedOperation',
    'GraphError',
]


class TracegradError(Exception):
    """Base class for all tracegrad errors."""


class ShapeError(TracegradError, ValueError):
    """Operand, input or seed shapes are incompatible."""


class ArityError(TracegradError, TypeError):
    """Wrong number of inputs, outputs or seeds."""


class UntraceableControlFlow(TracegradError, RuntimeError):
    """A traced function asked for the runtime value of a symbol."""


class TraceScopeError(TracegradError, RuntimeError):
    """A symbol was used outside the trace that created it."""


class NonScalarOutputError(TracegradError, RuntimeError):
    """Gradient of a non-scalar output was requested without a seed."""


class UnsupportedOperation(TracegradError, NotImplementedError):
    """An op kind has no forward kernel or no VJP rule."""


class GraphError(TracegradError, RuntimeError):
    """The append-only graph invariants were violated."""
