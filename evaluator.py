# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Forward evaluation of a frozen graph.

Nodes are computed in creation order, which is a topological order, so every
operand is ready by the time it is read.  The walk is generic over the
backend: with :class:`~tracegrad.backends.NumpyBackend` it produces arrays,
with :class:`~tracegrad.backends.SymbolicBackend` it re-records the graph
into another trace.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np

from .backends.base import Backend
from .errors import ArityError, ShapeError
from .graph import Graph
from .ops import OpKind

logger = logging.getLogger(__name__)


def _shape_of(value) -> tuple:
    return tuple(np.shape(value))


def evaluate(graph: Graph, inputs: Sequence[Any], backend: Backend, *,
             keep: bool = False):
    """Evaluate *graph* on *inputs*.

    Returns the output values in declared order.  With ``keep=True`` returns
    ``(outputs, env)`` where ``env`` maps every node id to its value, as
    needed by :func:`tracegrad.autograd.backward`.
    """
    if len(inputs) != len(graph.inputs):
        raise ArityError(
            f"graph takes {len(graph.inputs)} input(s), got {len(inputs)}")
    for pos, (value, expected) in enumerate(zip(inputs, graph.input_shapes)):
        if _shape_of(value) != expected:
            raise ShapeError(
                f"input {pos} has shape {_shape_of(value)}, "
                f"graph was traced for {expected}")

    env: dict[int, Any] = {}
    # lists and scalars are bound as backend constants
    bound = (v if hasattr(v, 'shape') else backend.constant(v) for v in inputs)
    for node in graph:
        if node.op is OpKind.INPUT:
            value = next(bound)
        elif node.op is OpKind.CONST:
            value = backend.constant(node.attrs['value'])
        else:
            value = backend.apply(node.op, [env[i] for i in node.inputs], node.attrs)
            if _shape_of(value) != node.shape:
                raise ShapeError(
                    f"node {node.id} ({node.op.label}) produced shape "
                    f"{_shape_of(value)}, expected {node.shape}")
        env[node.id] = value

    outputs = [env[o] for o in graph.outputs]
    logger.debug("evaluated %d nodes with %r", len(graph), backend)
    if keep:
        return outputs, env
    return outputs


__all__ = ['evaluate']
