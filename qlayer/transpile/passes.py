"""Layer-local optimization passes.

Each pass rewrites the gates inside individual layers of a circuit and never
moves a gate across a layer boundary. ``QuantumCircuit.optimize`` runs them in
the order they appear here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Set, Tuple

from qlayer.gates.standard import SELF_INVERSE_KINDS, Gate, GateKind, rx, ry, rz

if TYPE_CHECKING:
    from qlayer.circuit.core import QuantumCircuit

# Merged rotations with |angle| at or below this are dropped.
ROTATION_EPSILON = 1e-10

_ROTATION_AXIS = {GateKind.RX: 0, GateKind.RY: 1, GateKind.RZ: 2}
_ROTATION_FACTORIES = (rx, ry, rz)


def remove_identity_gates(circuit: QuantumCircuit) -> int:
    """
    Drop IDENTITY gates, then drop layers left empty and renumber depths.

    Returns
    -------
    int
        Number of gates removed.
    """
    removed = 0
    for layer in circuit.layers:
        kept = [g for g in layer.gates if g.kind is not GateKind.IDENTITY]
        if len(kept) != len(layer.gates):
            removed += len(layer.gates) - len(kept)
            layer.replace_gates(kept)

    circuit.layers = [layer for layer in circuit.layers if layer.gates]
    for depth, layer in enumerate(circuit.layers):
        layer.depth = depth
    return removed


def merge_single_qubit_rotations(circuit: QuantumCircuit) -> int:
    """
    Within each layer, sum RX, RY and RZ angles per qubit.

    The original rotations are replaced by at most one RX, one RY and one RZ
    per qubit (in that order, qubits in first-seen order), appended after the
    remaining gates of the layer. Sums with magnitude <= ``ROTATION_EPSILON``
    are not emitted.

    Returns
    -------
    int
        Net number of gates removed from the circuit.
    """
    removed = 0
    for layer in circuit.layers:
        sums: Dict[int, List[float]] = {}
        kept: List[Gate] = []
        for gate in layer.gates:
            axis = _ROTATION_AXIS.get(gate.kind)
            if axis is None:
                kept.append(gate)
                continue
            angles = sums.setdefault(gate.qubits[0], [0.0, 0.0, 0.0])
            angles[axis] += gate.params[0]

        if not sums:
            continue

        for qubit, angles in sums.items():
            for factory, angle in zip(_ROTATION_FACTORIES, angles):
                if abs(angle) > ROTATION_EPSILON:
                    kept.append(factory(qubit, angle))

        removed += len(layer.gates) - len(kept)
        layer.replace_gates(kept)
    return removed


def cancel_adjacent_gates(circuit: QuantumCircuit) -> int:
    """
    Delete pairs of identical self-inverse single-qubit gates (X, Y, Z, H).

    Per qubit, the most recent single-qubit gate in the layer is tracked. A
    gate that matches the tracked one and is self-inverse removes both and
    clears tracking for that qubit; any other single-qubit gate replaces the
    tracked entry. Multi-qubit gates do not affect tracking.

    Returns
    -------
    int
        Number of gates removed.
    """
    removed = 0
    for layer in circuit.layers:
        previous: Dict[int, Tuple[int, GateKind]] = {}
        doomed: Set[int] = set()

        for idx, gate in enumerate(layer.gates):
            if gate.num_qubits != 1:
                continue
            qubit = gate.qubits[0]
            last = previous.get(qubit)
            if last is not None and last[1] is gate.kind and gate.kind in SELF_INVERSE_KINDS:
                doomed.update((last[0], idx))
                del previous[qubit]
            else:
                previous[qubit] = (idx, gate.kind)

        if doomed:
            layer.replace_gates(g for i, g in enumerate(layer.gates) if i not in doomed)
            removed += len(doomed)
    return removed


__all__ = [
    "ROTATION_EPSILON",
    "remove_identity_gates",
    "merge_single_qubit_rotations",
    "cancel_adjacent_gates",
]
