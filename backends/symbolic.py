# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""
tracegrad.backends.symbolic — Recording backend.

Instead of computing, every op is appended to an open
:class:`~tracegrad.tracer.TraceContext`.  Running the evaluator and the
differentiator over this backend yields a graph for the backward pass,
which can itself be differentiated.
"""
from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..tensor import Symbol
from ..tracer import TraceContext
from .base import Backend


class SymbolicBackend(Backend):
    name = 'symbolic'

    def __init__(self, ctx: TraceContext):
        self.ctx = ctx

    @property
    def dtype(self):
        return self.ctx.dtype

    def apply(self, op, args: Sequence[Any], attrs: Mapping | None = None) -> Symbol:
        return self.ctx.record(op, args, dict(attrs) if attrs else None)

    def constant(self, value) -> Symbol:
        return self.ctx.constant(value)

    def __repr__(self) -> str:
        return f"SymbolicBackend({self.ctx.name})"
