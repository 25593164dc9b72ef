"""Process-wide debug switch for kernel norm checks.

When debug mode is on, every unitary gate applied by the backend kernels is
followed by a check that the state vector still has unit norm. The switch is
read once from the environment and can be flipped at runtime:

    QLAYER_DEBUG=1          enable checks
    QLAYER_DEBUG_ATOL=1e-8  tolerance used by the checks (default 1e-9)
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

_TRUTHY = frozenset({"1", "true", "yes", "on"})
DEFAULT_NORM_ATOL = 1e-9


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a float, got {raw!r}") from exc


_debug_enabled: bool = _env_flag("QLAYER_DEBUG")
_norm_atol: float = _env_float("QLAYER_DEBUG_ATOL", DEFAULT_NORM_ATOL)


def is_debug_enabled() -> bool:
    """Return whether kernel norm checks are currently active."""
    return _debug_enabled


def set_debug_enabled(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def debug_norm_tolerance() -> float:
    """Absolute tolerance used when checking the norm after a unitary gate."""
    return _norm_atol


def set_debug_norm_tolerance(atol: float) -> None:
    global _norm_atol
    if atol <= 0:
        raise ValueError(f"atol must be positive, got {atol}")
    _norm_atol = float(atol)


@contextmanager
def debug_context(enabled: bool = True, atol: Optional[float] = None) -> Iterator[None]:
    """
    Temporarily switch debug mode, optionally with a different tolerance.

    Both settings are restored on exit, including when the body raises.

    Example
    -------
    >>> with debug_context(True, atol=1e-6):
    ...     simulator.execute_circuit(circuit)
    """
    global _debug_enabled
    prev_enabled, prev_atol = _debug_enabled, _norm_atol
    _debug_enabled = bool(enabled)
    if atol is not None:
        set_debug_norm_tolerance(atol)
    try:
        yield
    finally:
        _debug_enabled = prev_enabled
        set_debug_norm_tolerance(prev_atol)
