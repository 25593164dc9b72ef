"""State-vector storage and gate kernels."""

from .kernels import (
    FAST_PATHS,
    apply_cnot,
    apply_fused,
    apply_gate_fast,
    apply_gate_generic,
    apply_hadamard,
    apply_matrix,
    apply_pauli_x,
    apply_pauli_y,
    apply_pauli_z,
    apply_rx,
    apply_ry,
    apply_rz,
    fused_contraction_fits,
    gates_are_disjoint,
    has_fast_path,
)
from .state import QuantumState

__all__ = [
    "QuantumState",
    "FAST_PATHS",
    "apply_pauli_x",
    "apply_pauli_y",
    "apply_pauli_z",
    "apply_hadamard",
    "apply_rx",
    "apply_ry",
    "apply_rz",
    "apply_cnot",
    "apply_matrix",
    "apply_fused",
    "fused_contraction_fits",
    "gates_are_disjoint",
    "has_fast_path",
    "apply_gate_generic",
    "apply_gate_fast",
]
