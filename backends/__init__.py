# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""tracegrad.backends — Value backends for graph evaluation."""
from __future__ import annotations

from .base import Backend
from .numpy import NumpyBackend
from .symbolic import SymbolicBackend

__all__ = ['Backend', 'NumpyBackend', 'SymbolicBackend']
