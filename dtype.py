# ╔══════════════════════════════════════════════════════════════════════╗
# ║  Tracegrad — Tracing Automatic Differentiation                       ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Floating-point dtypes and the process-wide default dtype.

Graphs are traced for one dtype and cast every input to it.  The default
comes from ``TRACEGRAD_DEFAULT_DTYPE`` (``float32`` or ``float64``) when the
package is imported, and can be changed with :func:`set_default_dtype` or
scoped with :class:`default_dtype`.
"""
from __future__ import annotations

import enum
import os

import numpy as np


class dtype(enum.Enum):
    """Floating dtypes a graph can be traced for."""
    float32 = "float32"
    float64 = "float64"

    def to_numpy(self) -> np.dtype:
        """Convert to numpy dtype."""
        _map = {
            dtype.float32: np.float32,
            dtype.float64: np.float64,
        }
        return np.dtype(_map[self])

    @staticmethod
    def from_numpy(np_dtype) -> 'dtype':
        """Convert a numpy dtype (or anything ``np.dtype`` accepts)."""
        _map = {
            np.dtype(np.float32): dtype.float32,
            np.dtype(np.float64): dtype.float64,
        }
        try:
            return _map[np.dtype(np_dtype)]
        except (KeyError, TypeError):
            raise TypeError(
                f"unsupported dtype {np_dtype!r}; expected float32 or float64"
            ) from None

    @staticmethod
    def coerce(value) -> 'dtype':
        """Accept a :class:`dtype`, its name, or a numpy dtype."""
        if isinstance(value, dtype):
            return value
        if isinstance(value, str) and value in dtype.__members__:
            return dtype[value]
        return dtype.from_numpy(value)

    def __repr__(self) -> str:
        return f"tracegrad.{self.name}"


float32 = dtype.float32
float64 = dtype.float64


# ──────────────────────── Global default dtype ────────────────────────

_default_dtype: dtype = dtype.coerce(
    os.environ.get('TRACEGRAD_DEFAULT_DTYPE', 'float64'))


def get_default_dtype() -> dtype:
    return _default_dtype


def set_default_dtype(value) -> None:
    global _default_dtype
    _default_dtype = dtype.coerce(value)


class default_dtype:
    """Context manager / decorator that scopes the default dtype."""

    def __init__(self, value):
        self._value = dtype.coerce(value)

    def __enter__(self):
        self._prev = _default_dtype
        set_default_dtype(self._value)
        return self

    def __exit__(self, *args):
        set_default_dtype(self._prev)

    def __call__(self, fn):
        import functools

        @functools.wraps(fn)
        def wrapper(*a, **kw):
            with self:
                return fn(*a, **kw)
        return wrapper
