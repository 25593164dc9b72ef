"""Layer-local optimization passes and circuit analysis."""

from .analysis import (
    GateCountSummary,
    estimate_circuit_depth,
    summarize_gate_counts,
)
from .passes import (
    ROTATION_EPSILON,
    cancel_adjacent_gates,
    merge_single_qubit_rotations,
    remove_identity_gates,
)

__all__ = [
    "ROTATION_EPSILON",
    "remove_identity_gates",
    "merge_single_qubit_rotations",
    "cancel_adjacent_gates",
    "GateCountSummary",
    "summarize_gate_counts",
    "estimate_circuit_depth",
]
