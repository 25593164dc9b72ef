"""Norm and overlap checks on amplitude vectors."""

from __future__ import annotations

import torch


def state_norm(state: torch.Tensor) -> torch.Tensor:
    """
    L2 norm over the last axis.

    A ``(2**n,)`` vector gives a 0-d tensor; a stack of vectors of shape
    ``(batch, 2**n)`` gives one norm per row.
    """
    if state.dim() < 1:
        raise ValueError("state_norm needs at least one axis, got a scalar.")
    return torch.linalg.vector_norm(state, dim=-1)


def assert_normalized(state: torch.Tensor, atol: float = 1e-9) -> None:
    """
    Raise ``ValueError`` unless every norm of ``state`` is within ``atol`` of 1.

    NaN or infinite amplitudes fail the check as well.
    """
    norms = state_norm(state)
    if not bool(torch.isfinite(norms).all()):
        raise ValueError("State has non-finite amplitudes.")
    worst = float((norms - 1.0).abs().max())
    if worst > atol:
        raise ValueError(
            f"State is not normalized: norm deviates from 1 by {worst:.3e} "
            f"(tolerance {atol:g})."
        )


def fidelity(state_a: torch.Tensor, state_b: torch.Tensor) -> float:
    """|<a|b>|**2 for two pure states; 0.0 when their shapes differ."""
    if state_a.shape != state_b.shape:
        return 0.0
    return float(torch.vdot(state_a.flatten(), state_b.flatten()).abs() ** 2)
