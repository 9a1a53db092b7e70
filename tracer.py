# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Recording a Python function into a :class:`~tracegrad.graph.Graph`.

A :class:`TraceContext` owns the graph under construction.  Every
:class:`~tracegrad.tensor.Symbol` it hands out points back to it, so the
context travels with the values instead of living in a global; a symbol used
after its context closed, or together with a symbol of another context,
raises :class:`~tracegrad.errors.TraceScopeError`.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, NamedTuple, Sequence

import numpy as np

from .dtype import dtype as Dtype, get_default_dtype
from .errors import ArityError, TraceScopeError
from .graph import Graph
from .ops import OpKind
from .tensor import Symbol

logger = logging.getLogger(__name__)


class TraceContext:
    """An open recording session.

    Use as a context manager; the context is closed on exit whether or not
    the body raised.
    """

    def __init__(self, dtype=None, name: str | None = None):
        self.dtype = Dtype.coerce(dtype) if dtype is not None else get_default_dtype()
        self.name = name or '<trace>'
        self.graph = Graph(self.dtype)
        self._open = False
        self._closed = False

    @property
    def active(self) -> bool:
        return self._open

    def __enter__(self):
        if self._open or self._closed:
            raise TraceScopeError(f"trace {self.name} cannot be entered twice")
        self._open = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        if exc_type is not None:
            logger.debug("trace %s aborted after %d nodes: %s",
                         self.name, len(self.graph), exc_type.__name__)
        return False

    def close(self) -> None:
        self._open = False
        self._closed = True

    # ------------------------------------------------------------------ #
    #  Recording                                                         #
    # ------------------------------------------------------------------ #

    def _check_open(self) -> None:
        if not self._open:
            raise TraceScopeError(
                f"trace {self.name} is closed; symbols cannot be used "
                f"outside the function being traced")

    def input(self, shape: Sequence[int], name: str | None = None) -> Symbol:
        """Declare the next positional input."""
        attrs = {'index': len(self.graph.inputs), 'shape': shape}
        if name is not None:
            attrs['name'] = name
        return self.record(OpKind.INPUT, (), attrs)

    def constant(self, value) -> Symbol:
        """Embed a host scalar or array as a ``CONST`` node."""
        try:
            value = np.asarray(value, dtype=self.dtype.to_numpy())
        except (TypeError, ValueError) as exc:
            raise TypeError(
                f"cannot use {type(value).__name__} as a tensor operand") from exc
        return self.record(OpKind.CONST, (), {'value': value})

    def lift(self, value: Any) -> Symbol:
        """Return *value* as a symbol of this trace."""
        if isinstance(value, Symbol):
            if value.trace is not self:
                raise TraceScopeError(
                    f"{value!r} belongs to trace {value.trace.name}, "
                    f"not {self.name}")
            self._check_open()
            return value
        return self.constant(value)

    def record(self, op: OpKind, args: Sequence[Any], attrs: dict | None = None) -> Symbol:
        """Append one ``op`` node reading *args* and return its symbol."""
        self._check_open()
        operands = [self.lift(a) for a in args]
        shape, attrs = op.infer([s.shape for s in operands], attrs or {})
        node = self.graph.append(op, [s.node_id for s in operands], shape, attrs)
        return Symbol(self, node.id, node.shape)


# ──────────────────────── trace() ─────────────────────────────────────

class Traced(NamedTuple):
    graph: Graph
    single_output: bool


def _output_ids(ctx: TraceContext, result) -> tuple[list[int], bool]:
    if result is None:
        raise ArityError(f"{ctx.name} returned no outputs")
    if isinstance(result, (tuple, list)):
        if not result:
            raise ArityError(f"{ctx.name} returned no outputs")
        ids = []
        for item in result:
            if isinstance(item, (tuple, list)):
                raise ArityError(f"{ctx.name} returned nested outputs")
            ids.append(ctx.lift(item).node_id)
        return ids, False
    return [ctx.lift(result).node_id], True


def trace(fn: Callable, shapes: Sequence[Sequence[int]], dtype=None, *,
          name: str | None = None, names: Sequence[str] | None = None,
          pass_context: bool = False) -> Traced:
    """Call *fn* once on fresh input symbols and return the frozen graph.

    With ``pass_context=True`` the :class:`TraceContext` is passed as the
    first argument, so *fn* can embed constants or record ops directly.
    """
    ctx = TraceContext(dtype, name or getattr(fn, '__name__', None))
    logger.debug("tracing %s for input shapes %s", ctx.name,
                 [tuple(s) for s in shapes])
    with ctx:
        args = [ctx.input(shape, names[i] if names and i < len(names) else None)
                for i, shape in enumerate(shapes)]
        result = fn(ctx, *args) if pass_context else fn(*args)
        outputs, single = _output_ids(ctx, result)
    graph = ctx.graph.freeze(outputs)
    logger.debug("traced %s: %d nodes, %d inputs, %d outputs",
                 ctx.name, len(graph), len(graph.inputs), len(graph.outputs))
    return Traced(graph, single)


__all__ = ['TraceContext', 'Traced', 'trace']
