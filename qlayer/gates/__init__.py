"""Quantum gate definitions."""

from .standard import (
    SELF_INVERSE_KINDS,
    Gate,
    GateKind,
    cnot,
    controlled_phase,
    custom_gate,
    cz,
    fredkin,
    h,
    hadamard,
    identity,
    is_unitary,
    pauli_x,
    pauli_y,
    pauli_z,
    phase,
    rx,
    ry,
    rz,
    s,
    s_gate,
    swap,
    t,
    t_gate,
    toffoli,
    x,
    y,
    z,
)

__all__ = [
    "Gate",
    "GateKind",
    "SELF_INVERSE_KINDS",
    "identity",
    "pauli_x",
    "pauli_y",
    "pauli_z",
    "hadamard",
    "s_gate",
    "t_gate",
    "phase",
    "rx",
    "ry",
    "rz",
    "cnot",
    "cz",
    "swap",
    "controlled_phase",
    "toffoli",
    "fredkin",
    "custom_gate",
    "is_unitary",
    "x",
    "y",
    "z",
    "h",
    "s",
    "t",
]
