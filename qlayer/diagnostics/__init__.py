"""Diagnostics and debugging utilities."""

from .core import assert_normalized, fidelity, state_norm
from .debug_mode import (
    debug_context,
    debug_norm_tolerance,
    is_debug_enabled,
    set_debug_enabled,
    set_debug_norm_tolerance,
)

__all__ = [
    "state_norm",
    "assert_normalized",
    "fidelity",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_norm_tolerance",
    "set_debug_norm_tolerance",
    "debug_context",
]
