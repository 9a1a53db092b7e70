# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Traceable functions and the gradient combinator.

:func:`compile` wraps a plain numeric function in a
:class:`TraceableFunction`.  The wrapper traces the function into a graph
the first time it needs one, evaluates that graph on NumPy arrays, and
builds derivative functions with :meth:`TraceableFunction.grad`.  A
derivative function is itself traceable, so ``f.grad().grad()`` gives
second derivatives.

Usage::

    import numpy as np
    import tracegrad as tg

    f = tg.compile(lambda x, y: x * y + 1)
    f(np.array([1., 2., 3.]), np.array([4., 5., 6.]))     # [ 5. 11. 19.]
    df = f.grad(seed=np.ones(3))
    df(np.array([1., 2., 3.]), np.array([4., 5., 6.]))    # (y, x)
"""
from __future__ import annotations

import enum
import inspect
import logging
import threading
from typing import Callable, Sequence

import numpy as np

from .autograd import backward, resolve_seeds
from .backends import NumpyBackend, SymbolicBackend
from .dtype import dtype as Dtype, get_default_dtype
from .errors import ArityError, ShapeError
from .evaluator import evaluate
from .graph import Graph
from .tensor import Symbol
from .tracer import TraceContext, trace as _trace

logger = logging.getLogger(__name__)


class TraceState(enum.Enum):
    UNTRACED = 'untraced'
    TRACED = 'traced'


_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY,
               inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _signature_of(fn: Callable) -> tuple[int | None, list[str]]:
    """Required positional parameter count and names, if they can be read."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return None, []
    names = [p.name for p in params
             if p.kind in _POSITIONAL and p.default is inspect.Parameter.empty]
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return None, names
    return len(names), names


def _snapshot_seed(seed):
    # Seeds are captured by value at grad() time.
    if seed is None:
        return None
    if isinstance(seed, (tuple, list)):
        return tuple(None if s is None else np.array(s) for s in seed)
    return np.array(seed)


class TraceableFunction:
    """A numeric function that is traced once and then evaluated as a graph.

    The function must be pure: it receives one :class:`~tracegrad.Symbol`
    per positional input and returns a symbol, a constant, or a tuple/list
    of those.  The first :meth:`trace` (explicit, or implied by the first
    :meth:`eval`) fixes the input shapes; the graph is never rebuilt.
    """

    def __init__(self, fn: Callable, *, arity: int | None = None, dtype=None,
                 name: str | None = None):
        if isinstance(fn, TraceableFunction):
            raise TypeError("fn is already a TraceableFunction")
        if not callable(fn):
            raise TypeError(f"{type(fn).__name__} object is not callable")
        inferred, names = _signature_of(fn)
        if arity is None:
            arity = inferred
        if arity is None:
            raise ArityError(
                f"cannot infer the number of inputs of {fn!r}; pass arity=")
        self._fn = fn
        self._pass_context = False
        self._arity = int(arity)
        self._param_names = names if len(names) == self._arity else None
        self._dtype = Dtype.coerce(dtype) if dtype is not None else get_default_dtype()
        self._name = name or getattr(fn, '__name__', 'fn')
        self._graph: Graph | None = None
        self._single_output = True
        self._lock = threading.RLock()

    @classmethod
    def _from_builder(cls, builder: Callable, *, arity: int, dtype: Dtype,
                      name: str) -> 'TraceableFunction':
        """Wrap a builder that records through its trace context directly."""
        tf = cls(builder, arity=arity, dtype=dtype, name=name)
        tf._pass_context = True
        tf._param_names = None
        return tf

    # ------------------------------------------------------------------ #
    #  Properties                                                        #
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> TraceState:
        return TraceState.TRACED if self._graph is not None else TraceState.UNTRACED

    @property
    def graph(self) -> Graph | None:
        return self._graph

    @property
    def arity(self) -> int:
        return self._arity

    @property
    def dtype(self) -> Dtype:
        return self._dtype

    @property
    def name(self) -> str:
        return self._name

    @property
    def input_shapes(self) -> tuple[tuple, ...] | None:
        return self._graph.input_shapes if self._graph is not None else None

    @property
    def output_shapes(self) -> tuple[tuple, ...] | None:
        return self._graph.output_shapes if self._graph is not None else None

    def __repr__(self) -> str:
        shapes = f", input_shapes={self.input_shapes}" if self._graph is not None else ''
        return (f"TraceableFunction({self._name}, arity={self._arity}, "
                f"state={self.state.value}{shapes})")

    # ------------------------------------------------------------------ #
    #  Tracing                                                           #
    # ------------------------------------------------------------------ #

    def trace(self, *shapes: Sequence[int]) -> 'TraceableFunction':
        """Trace for the given input shapes (no-op if already traced for them)."""
        shapes = tuple(tuple(int(d) for d in s) for s in shapes)
        if len(shapes) != self._arity:
            raise ArityError(
                f"{self._name} takes {self._arity} input(s), got {len(shapes)} shape(s)")
        with self._lock:
            if self._graph is None:
                traced = _trace(self._fn, shapes, self._dtype, name=self._name,
                                names=self._param_names,
                                pass_context=self._pass_context)
                self._graph, self._single_output = traced.graph, traced.single_output
            elif self._graph.input_shapes != shapes:
                raise ShapeError(
                    f"{self._name} was traced for input shapes "
                    f"{self._graph.input_shapes}, got {shapes}")
        return self

    def _graph_for(self, shapes) -> Graph:
        self.trace(*shapes)
        return self._graph

    # ------------------------------------------------------------------ #
    #  Evaluation                                                        #
    # ------------------------------------------------------------------ #

    def eval(self, *inputs):
        """Evaluate on concrete inputs, tracing first if needed.

        Inputs are converted to fresh arrays of the function's dtype.
        Symbol inputs (calling one traced function from inside another)
        inline this function's graph into the caller's trace.
        """
        if len(inputs) != self._arity:
            raise ArityError(
                f"{self._name} takes {self._arity} input(s), got {len(inputs)}")
        sym = next((x for x in inputs if isinstance(x, Symbol)), None)
        if sym is not None:
            ctx = sym.trace
            args = [ctx.lift(x) for x in inputs]
            backend = SymbolicBackend(ctx)
        else:
            np_dtype = self._dtype.to_numpy()
            args = [np.array(x, dtype=np_dtype) for x in inputs]
            backend = NumpyBackend(self._dtype)
        graph = self._graph_for([a.shape for a in args])
        outputs = evaluate(graph, args, backend)
        return outputs[0] if self._single_output else tuple(outputs)

    __call__ = eval

    # ------------------------------------------------------------------ #
    #  Differentiation                                                   #
    # ------------------------------------------------------------------ #

    def grad(self, seed=None) -> 'TraceableFunction':
        """Return the function computing gradients w.r.t. every input.

        The result takes the same inputs and returns a tuple with one
        gradient per input.  *seed* weights the outputs (the cotangent);
        it may be omitted when every output holds a single element.
        """
        seed = _snapshot_seed(seed)
        if self._graph is not None:
            resolve_seeds(self._graph, seed)
        parent = self

        def grad_fn(ctx: TraceContext, *xs: Symbol):
            graph = parent._graph_for([x.shape for x in xs])
            b = SymbolicBackend(ctx)
            _, env = evaluate(graph, xs, b, keep=True)
            seeds = [None if s is None else b.constant(s)
                     for s in resolve_seeds(graph, seed)]
            return tuple(backward(graph, env, seeds, b))

        name = f"grad({self._name})"
        logger.debug("built %s", name)
        return TraceableFunction._from_builder(
            grad_fn, arity=self._arity, dtype=self._dtype, name=name)


def compile(fn: Callable | None = None, *, shapes: Sequence[Sequence[int]] | None = None,
            dtype=None, arity: int | None = None, name: str | None = None):
    """Wrap *fn* in a :class:`TraceableFunction`.

    With *shapes* the function is traced right away; otherwise it is traced
    on first use.  Usable as a decorator, with or without arguments.
    """
    if fn is None:
        return lambda f: compile(f, shapes=shapes, dtype=dtype, arity=arity, name=name)
    if isinstance(fn, TraceableFunction):
        return fn
    if arity is None and shapes is not None and _signature_of(fn)[0] is None:
        arity = len(shapes)
    tf = TraceableFunction(fn, arity=arity, dtype=dtype, name=name)
    if shapes is not None:
        tf.trace(*shapes)
    return tf


__all__ = ['TraceableFunction', 'TraceState', 'compile']
