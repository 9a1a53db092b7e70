# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Autograd engine — reverse-mode automatic differentiation over a graph.

Each differentiable :class:`~tracegrad.ops.OpKind` has a :class:`GradFn`
that maps the gradient of a node's output to one contribution per operand.
:func:`backward` walks the graph in reversed creation order, reduces
broadcast contributions with ``SUM_TO`` and adds contributions that reach
the same node.  All arithmetic goes through a backend, so running it with a
:class:`~tracegrad.backends.SymbolicBackend` records the backward pass as a
new graph and gradients of gradients come for free.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np

from .errors import ArityError, NonScalarOutputError, ShapeError, UnsupportedOperation
from .ops import OpKind, broadcast_axes, broadcast_shapes, reduced_shape

if TYPE_CHECKING:
    from .backends.base import Backend
    from .graph import Graph, Node

logger = logging.getLogger(__name__)


# ──────────────────────── GradFn base class ───────────────────────────

class GradFn:
    """Base class for all VJP rules."""
    __slots__ = ('name',)

    def __init__(self, name: str = 'GradFn'):
        self.name = name

    def backward(self, b: 'Backend', graph: 'Graph', node: 'Node', g, env: dict,
                 needs: tuple[bool, ...]) -> tuple:
        """Return one contribution per operand of *node* (``None`` = none).

        ``needs[i]`` tells whether operand *i* wants a gradient at all, so
        rules may skip work for the others.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{self.name}>"


# ──────────────────────── Reverse pass ────────────────────────────────

def _active_nodes(graph: 'Graph', wrt: Sequence[int]) -> set[int]:
    """Ids of nodes whose value depends differentiably on a ``wrt`` node."""
    active = set(wrt)
    for node in graph:
        if node.op.differentiable and any(i in active for i in node.inputs):
            active.add(node.id)
    return active


def backward(graph: 'Graph', env: dict, seeds: Sequence[Any], b: 'Backend',
             wrt: Sequence[int] | None = None) -> list:
    """Propagate *seeds* from the graph outputs back to the ``wrt`` nodes.

    *env* is the forward environment from ``evaluate(..., keep=True)``.
    Returns one gradient per ``wrt`` id (the graph inputs by default);
    nodes the seeds never reach get zeros of their shape.
    """
    wrt = graph.inputs if wrt is None else tuple(wrt)
    if len(seeds) != len(graph.outputs):
        raise ArityError(
            f"expected {len(graph.outputs)} seed(s), got {len(seeds)}")
    active = _active_nodes(graph, wrt)

    grads: dict[int, Any] = {}

    def accumulate(nid: int, contribution) -> None:
        prev = grads.get(nid)
        grads[nid] = contribution if prev is None else b.add(prev, contribution)

    for out, seed in zip(graph.outputs, seeds):
        if seed is not None and out in active:
            accumulate(out, seed)

    visited = 0
    for node in reversed(graph):
        g = grads.get(node.id)
        if g is None or node.op.is_leaf:
            continue
        gfn = GRAD_FNS.get(node.op)
        if gfn is None:
            raise UnsupportedOperation(f"no gradient rule for op '{node.op.label}'")
        needs = tuple(i in active for i in node.inputs)
        contributions = gfn.backward(b, graph, node, g, env, needs)
        visited += 1
        for inp, need, ig in zip(node.inputs, needs, contributions):
            if ig is None or not need:
                continue
            # Reduce broadcast dims
            inp_shape = graph[inp].shape
            if tuple(ig.shape) != inp_shape:
                ig = b.sum_to(ig, inp_shape)
            accumulate(inp, ig)

    logger.debug("backward: %d of %d nodes visited, %d gradient(s)",
                 visited, len(graph), len(wrt))
    return [grads[w] if w in grads else b.zeros(graph[w].shape) for w in wrt]


def unbroadcast(grad: np.ndarray, shape: tuple) -> np.ndarray:
    """Sum out dimensions that were broadcast."""
    shape = tuple(shape)
    # Fast path: shapes already match
    if grad.shape == shape:
        return grad
    axes = broadcast_axes(shape, grad.shape)
    if axes:
        grad = grad.sum(axis=axes, keepdims=True)
    return grad.reshape(shape)


def resolve_seeds(graph: 'Graph', seed=None) -> list:
    """Turn the ``seed`` argument of ``grad`` into one host array per output.

    ``None`` seeds every output with ones, which is only allowed for
    outputs holding a single element.  A single-output graph takes the seed
    itself; otherwise a tuple or list with one entry per output is
    required, where ``None`` entries contribute nothing.
    """
    np_dtype = graph.dtype.to_numpy()
    shapes = graph.output_shapes
    if seed is None:
        seeds = []
        for k, shape in enumerate(shapes):
            if int(np.prod(shape)) != 1:
                raise NonScalarOutputError(
                    f"grad must be specified for non-scalar outputs; "
                    f"output {k} has shape {shape}")
            seeds.append(np.ones(shape, dtype=np_dtype))
        return seeds

    if len(shapes) == 1:
        entries = [seed]
        # a one-element sequence wrapping the seed is accepted too
        if (isinstance(seed, (tuple, list)) and len(seed) == 1
                and (seed[0] is None or np.shape(seed) != shapes[0])):
            entries = [seed[0]]
    elif isinstance(seed, (tuple, list)):
        entries = list(seed)
        if len(entries) != len(shapes):
            raise ArityError(
                f"expected {len(shapes)} seed(s), got {len(entries)}")
    else:
        raise ArityError(
            f"graph has {len(shapes)} outputs; pass one seed per output")

    seeds = []
    for k, (entry, shape) in enumerate(zip(entries, shapes)):
        if entry is None:
            seeds.append(None)
            continue
        arr = np.array(entry, dtype=np_dtype)
        if arr.shape != shape:
            raise ShapeError(
                f"seed {k} has shape {arr.shape}, output has shape {shape}")
        seeds.append(arr)
    return seeds


# ──────────────────────── Concrete GradFn nodes ───────────────────────

def _operands(node, env):
    return [env[i] for i in node.inputs]


class AddBackward(GradFn):
    def __init__(self):
        super().__init__('AddBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (g, g)


class SubBackward(GradFn):
    def __init__(self):
        super().__init__('SubBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (g, b.neg(g) if needs[1] else None)


class MulBackward(GradFn):
    def __init__(self):
        super().__init__('MulBackward')

    def backward(self, b, graph, node, g, env, needs):
        x, y = _operands(node, env)
        return (b.mul(g, y) if needs[0] else None,
                b.mul(g, x) if needs[1] else None)


class DivBackward(GradFn):
    def __init__(self):
        super().__init__('DivBackward')

    def backward(self, b, graph, node, g, env, needs):
        x, y = _operands(node, env)
        ga = b.div(g, y) if needs[0] else None
        gb = b.neg(b.div(b.mul(g, x), b.mul(y, y))) if needs[1] else None
        return (ga, gb)


class NegBackward(GradFn):
    def __init__(self):
        super().__init__('NegBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (b.neg(g),)


class PowBackward(GradFn):
    def __init__(self):
        super().__init__('PowBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        e = node.attrs['exponent']
        if e == 0:
            return (None,)
        if e == 1:
            return (g,)
        base = x if e == 2 else b.pow(x, e - 1)
        return (b.mul(g, b.mul(b.constant(e), base)),)


class ExpBackward(GradFn):
    def __init__(self):
        super().__init__('ExpBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (b.mul(g, env[node.id]),)


class LogBackward(GradFn):
    def __init__(self):
        super().__init__('LogBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        return (b.div(g, x),)


class SinBackward(GradFn):
    def __init__(self):
        super().__init__('SinBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        return (b.mul(g, b.cos(x)),)


class CosBackward(GradFn):
    def __init__(self):
        super().__init__('CosBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        return (b.neg(b.mul(g, b.sin(x))),)


class SqrtBackward(GradFn):
    def __init__(self):
        super().__init__('SqrtBackward')

    def backward(self, b, graph, node, g, env, needs):
        out = env[node.id]
        return (b.div(g, b.mul(b.constant(2.0), out)),)


class TanhBackward(GradFn):
    def __init__(self):
        super().__init__('TanhBackward')

    def backward(self, b, graph, node, g, env, needs):
        out = env[node.id]
        return (b.mul(g, b.sub(b.constant(1.0), b.mul(out, out))),)


class ReluBackward(GradFn):
    def __init__(self):
        super().__init__('ReluBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        return (b.mul(g, b.step(x)),)


def _swap_last(ndim: int) -> tuple[int, ...]:
    perm = list(range(ndim))
    perm[-2], perm[-1] = perm[-1], perm[-2]
    return tuple(perm)


class MatMulBackward(GradFn):
    def __init__(self):
        super().__init__('MatMulBackward')

    def backward(self, b, graph, node, g, env, needs):
        a, w = _operands(node, env)
        sa, sw = (graph[i].shape for i in node.inputs)
        # Promote 1-D operands the way matmul does, then undo it at the end.
        sa2 = (1,) + sa if len(sa) == 1 else sa
        sw2 = sw + (1,) if len(sw) == 1 else sw
        a2 = a if sa2 == sa else b.reshape(a, sa2)
        w2 = w if sw2 == sw else b.reshape(w, sw2)
        out2 = broadcast_shapes(sa2[:-2], sw2[:-2]) + (sa2[-2], sw2[-1])
        g2 = g if out2 == node.shape else b.reshape(g, out2)

        ga = gw = None
        if needs[0]:
            ga = b.matmul(g2, b.transpose(w2, _swap_last(len(sw2))))
            if tuple(ga.shape) != sa2:
                ga = b.sum_to(ga, sa2)
            if sa2 != sa:
                ga = b.reshape(ga, sa)
        if needs[1]:
            gw = b.matmul(b.transpose(a2, _swap_last(len(sa2))), g2)
            if tuple(gw.shape) != sw2:
                gw = b.sum_to(gw, sw2)
            if sw2 != sw:
                gw = b.reshape(gw, sw)
        return (ga, gw)


def _expand_reduced(b, g, shape, axes, keepdims):
    """Broadcast a reduction's output gradient back over the reduced axes."""
    kept = reduced_shape(shape, axes, True)
    if not keepdims and kept != tuple(g.shape):
        g = b.reshape(g, kept)
    return b.broadcast_to(g, shape)


class SumBackward(GradFn):
    def __init__(self):
        super().__init__('SumBackward')

    def backward(self, b, graph, node, g, env, needs):
        shape = graph[node.inputs[0]].shape
        return (_expand_reduced(b, g, shape, node.attrs['axes'], node.attrs['keepdims']),)


class MeanBackward(GradFn):
    def __init__(self):
        super().__init__('MeanBackward')

    def backward(self, b, graph, node, g, env, needs):
        shape = graph[node.inputs[0]].shape
        axes = node.attrs['axes']
        count = int(np.prod([shape[ax] for ax in axes]))
        expanded = _expand_reduced(b, g, shape, axes, node.attrs['keepdims'])
        return (b.div(expanded, b.constant(float(count or 1))),)


class MaxBackward(GradFn):
    """Split the gradient evenly between tied maxima."""

    def __init__(self):
        super().__init__('MaxBackward')

    def backward(self, b, graph, node, g, env, needs):
        (x,) = _operands(node, env)
        shape = graph[node.inputs[0]].shape
        axes, keepdims = node.attrs['axes'], node.attrs['keepdims']
        peak = _expand_reduced(b, env[node.id], shape, axes, keepdims)
        mask = b.equal(x, peak)
        count = b.sum(mask, axes, True)
        spread = _expand_reduced(b, g, shape, axes, keepdims)
        return (b.div(b.mul(spread, mask), count),)


class ReshapeBackward(GradFn):
    def __init__(self):
        super().__init__('ReshapeBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (b.reshape(g, graph[node.inputs[0]].shape),)


class TransposeBackward(GradFn):
    def __init__(self):
        super().__init__('TransposeBackward')

    def backward(self, b, graph, node, g, env, needs):
        inverse = tuple(int(i) for i in np.argsort(node.attrs['axes']))
        return (b.transpose(g, inverse),)


class BroadcastToBackward(GradFn):
    def __init__(self):
        super().__init__('BroadcastToBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (b.sum_to(g, graph[node.inputs[0]].shape),)


class SumToBackward(GradFn):
    def __init__(self):
        super().__init__('SumToBackward')

    def backward(self, b, graph, node, g, env, needs):
        return (b.broadcast_to(g, graph[node.inputs[0]].shape),)


GRAD_FNS: dict[OpKind, GradFn] = {
    OpKind.ADD: AddBackward(),
    OpKind.SUB: SubBackward(),
    OpKind.MUL: MulBackward(),
    OpKind.DIV: DivBackward(),
    OpKind.NEG: NegBackward(),
    OpKind.POW: PowBackward(),
    OpKind.EXP: ExpBackward(),
    OpKind.LOG: LogBackward(),
    OpKind.SIN: SinBackward(),
    OpKind.COS: CosBackward(),
    OpKind.SQRT: SqrtBackward(),
    OpKind.TANH: TanhBackward(),
    OpKind.RELU: ReluBackward(),
    OpKind.MATMUL: MatMulBackward(),
    OpKind.SUM: SumBackward(),
    OpKind.MEAN: MeanBackward(),
    OpKind.MAX: MaxBackward(),
    OpKind.RESHAPE: ReshapeBackward(),
    OpKind.TRANSPOSE: TransposeBackward(),
    OpKind.BROADCAST_TO: BroadcastToBackward(),
    OpKind.SUM_TO: SumToBackward(),
}


__all__ = ['GradFn', 'GRAD_FNS', 'backward', 'resolve_seeds', 'unbroadcast']
