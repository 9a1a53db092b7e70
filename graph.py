# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Append-only computation graph.

A :class:`Graph` is a list of :class:`Node` records whose id is their
position.  A node may only read nodes created before it, so creation order
is a topological order and reversed creation order is the backward order;
:meth:`Graph.append` enforces this.  Once tracing finishes the graph is
frozen and shared read-only.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Iterator, Mapping, NamedTuple, Sequence

import numpy as np

from .dtype import dtype as Dtype
from .errors import GraphError
from .ops import OpKind


class Node(NamedTuple):
    """One recorded operation."""
    id: int
    op: OpKind
    inputs: tuple
    shape: tuple
    attrs: Mapping

    @property
    def ndim(self) -> int:
        return len(self.shape)

    def __repr__(self) -> str:
        return f"Node({self.id}: {self.op.label} {list(self.inputs)} -> {self.shape})"


class Graph:
    """Ordered, append-only node storage with designated inputs/outputs."""

    __slots__ = ('_nodes', '_inputs', '_outputs', '_frozen', 'dtype')

    def __init__(self, dtype: Dtype):
        self._nodes: list[Node] = []
        self._inputs: list[int] = []
        self._outputs: tuple[int, ...] = ()
        self._frozen = False
        self.dtype = dtype

    # ------------------------------------------------------------------ #
    #  Construction                                                      #
    # ------------------------------------------------------------------ #

    def append(self, op: OpKind, inputs: Sequence[int], shape: tuple,
               attrs: dict | None = None) -> Node:
        """Append a node and return it.  Inputs must already exist."""
        if self._frozen:
            raise GraphError("cannot append to a frozen graph")
        nid = len(self._nodes)
        inputs = tuple(int(i) for i in inputs)
        for i in inputs:
            if not 0 <= i < nid:
                raise GraphError(
                    f"node {nid} ({op.label}) refers to node {i}, which "
                    f"was not created before it")
        attrs = dict(attrs or {})
        if op is OpKind.CONST:
            value = np.array(attrs['value'], dtype=self.dtype.to_numpy())
            value.flags.writeable = False
            attrs['value'] = value
        node = Node(nid, op, inputs, tuple(shape), MappingProxyType(attrs))
        self._nodes.append(node)
        if op is OpKind.INPUT:
            self._inputs.append(nid)
        return node

    def freeze(self, outputs: Sequence[int]) -> 'Graph':
        """Designate the outputs and make the graph immutable."""
        if self._frozen:
            raise GraphError("graph is already frozen")
        outputs = tuple(int(o) for o in outputs)
        for o in outputs:
            if not 0 <= o < len(self._nodes):
                raise GraphError(f"output {o} is not a node of this graph")
        self._outputs = outputs
        self._frozen = True
        return self

    # ------------------------------------------------------------------ #
    #  Access                                                            #
    # ------------------------------------------------------------------ #

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def inputs(self) -> tuple[int, ...]:
        return tuple(self._inputs)

    @property
    def outputs(self) -> tuple[int, ...]:
        return self._outputs

    @property
    def input_shapes(self) -> tuple[tuple, ...]:
        return tuple(self._nodes[i].shape for i in self._inputs)

    @property
    def output_shapes(self) -> tuple[tuple, ...]:
        return tuple(self._nodes[o].shape for o in self._outputs)

    def __getitem__(self, nid: int) -> Node:
        return self._nodes[nid]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __reversed__(self) -> Iterator[Node]:
        return reversed(self._nodes)

    def __repr__(self) -> str:
        return (f"Graph(nodes={len(self._nodes)}, inputs={list(self._inputs)}, "
                f"outputs={list(self._outputs)}, dtype={self.dtype.name})")

    def __str__(self) -> str:
        lines = []
        for n in self._nodes:
            extra = ''
            if n.op is OpKind.INPUT:
                extra = f" #{n.attrs['index']}"
            elif n.op is OpKind.CONST:
                v = n.attrs['value']
                extra = f" {v.item()!r}" if v.size == 1 else f" <{v.size} values>"
            elif n.attrs:
                extra = ' ' + ', '.join(f"{k}={v}" for k, v in n.attrs.items())
            lines.append(f"{n.id}: {n.op.label}{extra} {list(n.inputs)} -> {n.shape}")
        lines.append(f"outputs: {list(self._outputs)}")
        return '\n'.join(lines)
