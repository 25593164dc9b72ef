"""Circuit analysis utilities for gate counts and depth estimation."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from qlayer.circuit.core import QuantumCircuit

_CLIFFORD_NAMES = frozenset({"I", "H", "S", "X", "Y", "Z", "CNOT", "CZ", "SWAP"})


@dataclass(frozen=True)
class GateCountSummary:
    """
    Summary of gate counts by mnemonic.

    Attributes
    ----------
    counts:
        Mapping from gate mnemonic to its occurrence count in the circuit.
    t_count:
        Number of T gates (0 if not present).
    clifford_count:
        Number of Clifford gates (I, H, S, X, Y, Z, CNOT, CZ, SWAP).
    multi_qubit_count:
        Number of gates acting on two or more qubits.
    total_gates:
        Total number of gates in the circuit.
    """

    counts: Mapping[str, int]
    t_count: int
    clifford_count: int
    multi_qubit_count: int
    total_gates: int


def summarize_gate_counts(circuit: QuantumCircuit) -> GateCountSummary:
    """
    Count gates by mnemonic and report T-, Clifford- and multi-qubit counts.

    Parameters
    ----------
    circuit:
        Circuit to analyze.

    Returns
    -------
    GateCountSummary
    """
    counts: Counter = Counter()
    multi = 0
    for gate in circuit.ops:
        counts[gate.name] += 1
        if gate.num_qubits > 1:
            multi += 1

    return GateCountSummary(
        counts=dict(counts),
        t_count=counts.get("T", 0),
        clifford_count=sum(c for name, c in counts.items() if name.upper() in _CLIFFORD_NAMES),
        multi_qubit_count=multi,
        total_gates=sum(counts.values()),
    )


def estimate_circuit_depth(circuit: QuantumCircuit) -> int:
    """
    Depth the circuit would have if every gate were placed in the earliest
    layer whose qubits are all free.

    This is the as-soon-as-possible bound; it is never larger than
    ``circuit.depth()``, which only ever looks at the last layer when
    scheduling. The empty circuit has depth 0.
    """
    if not circuit.ops:
        return 0

    # Latest occupied layer index per qubit.
    frontier = [-1] * circuit.num_qubits
    depth = 0
    for gate in circuit.ops:
        slot = 1 + max(frontier[q] for q in gate.qubits)
        for q in gate.qubits:
            frontier[q] = slot
        depth = max(depth, slot + 1)
    return depth


__all__ = [
    "GateCountSummary",
    "summarize_gate_counts",
    "estimate_circuit_depth",
]
