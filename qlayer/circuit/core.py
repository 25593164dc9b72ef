"""Layered circuit model.

Gates are grouped into depth layers as they are added. A gate joins the most
recent layer when it shares no qubit with any gate already there; otherwise a
new layer is opened. Earlier layers are never revisited.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import torch

from qlayer.backend.kernels import apply_gate_generic
from qlayer.backend.state import QuantumState
from qlayer.errors import CircuitQubitCountMismatchError, QubitOutOfBoundsError
from qlayer.gates import standard as stdgates
from qlayer.gates.standard import Gate
from qlayer.logging import get_logger
from qlayer.transpile.passes import (
    cancel_adjacent_gates,
    merge_single_qubit_rotations,
    remove_identity_gates,
)

logger = get_logger(__name__)

# Largest register for which to_matrix() builds the full unitary.
MAX_MATRIX_QUBITS = 10


class CircuitLayer:
    """
    One depth slice of a circuit.

    Attributes
    ----------
    gates:
        Gates assigned to this depth.
    depth:
        Position of the layer in the circuit.
    parallel_gates:
        Partition of gate indices into groups whose gates act on disjoint
        qubits. Recomputed on every change to ``gates``.
    """

    def __init__(self, depth: int = 0, gates: Optional[Iterable[Gate]] = None) -> None:
        self.gates: List[Gate] = []
        self.depth = depth
        self.parallel_gates: List[List[int]] = []
        if gates is not None:
            self.replace_gates(gates)

    def add_gate(self, gate: Gate) -> None:
        self.gates.append(gate)
        self.update_parallelization()

    def replace_gates(self, gates: Iterable[Gate]) -> None:
        self.gates = list(gates)
        self.update_parallelization()

    def update_parallelization(self) -> None:
        """
        Greedily split the gates, in list order, into qubit-disjoint groups.

        A gate joins the current group if none of its qubits is claimed by
        the group; otherwise the group is closed and a new one started.
        """
        self.parallel_gates = []
        claimed: Set[int] = set()
        group: List[int] = []

        for idx, gate in enumerate(self.gates):
            qubits = set(gate.qubits)
            if claimed.isdisjoint(qubits):
                group.append(idx)
                claimed |= qubits
            else:
                self.parallel_gates.append(group)
                group = [idx]
                claimed = qubits

        if group:
            self.parallel_gates.append(group)

    @property
    def qubits(self) -> Set[int]:
        """All qubits touched by this layer."""
        used: Set[int] = set()
        for gate in self.gates:
            used.update(gate.qubits)
        return used

    def can_accept(self, gate: Gate) -> bool:
        """True if ``gate`` shares no qubit with any gate in the layer."""
        return self.qubits.isdisjoint(gate.qubits)

    def copy(self) -> "CircuitLayer":
        new = CircuitLayer(depth=self.depth)
        new.gates = list(self.gates)
        new.parallel_gates = [list(group) for group in self.parallel_gates]
        return new

    def __len__(self) -> int:
        return len(self.gates)

    def __repr__(self) -> str:
        labels = ", ".join(f"{g.label}{list(g.qubits)}" for g in self.gates)
        return f"CircuitLayer(depth={self.depth}, gates=[{labels}])"


class QuantumCircuit:
    """
    An ordered sequence of gate layers on a fixed number of qubits, plus the
    set of qubits to sample after execution.

    Gate-adding methods return the circuit so calls can be chained::

        circuit = QuantumCircuit(2).h(0).cnot(0, 1).measure_all()
    """

    def __init__(self, num_qubits: int, name: Optional[str] = None) -> None:
        if num_qubits <= 0:
            raise ValueError("QuantumCircuit requires num_qubits >= 1.")

        self._num_qubits = int(num_qubits)
        self.layers: List[CircuitLayer] = []
        # Presence of a key schedules that qubit for sampling; the value is unused scratch.
        self.measurements: Dict[int, Optional[bool]] = {}
        self.name = name if name is not None else f"Circuit_{self._num_qubits}"
        self.metadata: Dict[str, str] = {}

    @classmethod
    def with_name(cls, num_qubits: int, name: str) -> "QuantumCircuit":
        return cls(num_qubits, name=name)

    @property
    def num_qubits(self) -> int:
        return self._num_qubits

    @property
    def total_depth(self) -> int:
        """Number of layers."""
        return len(self.layers)

    def depth(self) -> int:
        return len(self.layers)

    @property
    def ops(self) -> Tuple[Gate, ...]:
        """All gates in execution order (layer by layer)."""
        return tuple(gate for layer in self.layers for gate in layer.gates)

    def __len__(self) -> int:
        return self.gate_count()

    def __iter__(self) -> Iterator[CircuitLayer]:
        return iter(self.layers)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def _validate_qubits(self, qubits: Iterable[int]) -> None:
        for q in qubits:
            if q < 0 or q >= self._num_qubits:
                raise QubitOutOfBoundsError(q, self._num_qubits)

    def add_gate(self, gate: Gate) -> "QuantumCircuit":
        """
        Schedule ``gate``.

        The gate joins the last layer if it is qubit-disjoint from every gate
        there, otherwise it opens a new layer.

        Raises
        ------
        QubitOutOfBoundsError
            If the gate touches a qubit >= num_qubits.
        """
        self._validate_qubits(gate.qubits)

        if self.layers and self.layers[-1].can_accept(gate):
            self.layers[-1].add_gate(gate)
            return self

        layer = CircuitLayer(depth=len(self.layers))
        layer.add_gate(gate)
        self.layers.append(layer)
        return self

    def add_layer(self, gates: Iterable[Gate]) -> "QuantumCircuit":
        """
        Append ``gates`` as one new layer, bypassing the scheduler.

        Only qubit bounds are checked. Keeping gates in the layer
        qubit-disjoint is the caller's responsibility.
        """
        gates = list(gates)
        for gate in gates:
            self._validate_qubits(gate.qubits)

        self.layers.append(CircuitLayer(depth=len(self.layers), gates=gates))
        return self

    def i(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.identity(qubit))

    def h(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.hadamard(qubit))

    def x(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.pauli_x(qubit))

    def y(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.pauli_y(qubit))

    def z(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.pauli_z(qubit))

    def s(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.s_gate(qubit))

    def t(self, qubit: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.t_gate(qubit))

    def phase(self, qubit: int, theta: float) -> "QuantumCircuit":
        return self.add_gate(stdgates.phase(qubit, theta))

    def rx(self, qubit: int, theta: float) -> "QuantumCircuit":
        return self.add_gate(stdgates.rx(qubit, theta))

    def ry(self, qubit: int, theta: float) -> "QuantumCircuit":
        return self.add_gate(stdgates.ry(qubit, theta))

    def rz(self, qubit: int, theta: float) -> "QuantumCircuit":
        return self.add_gate(stdgates.rz(qubit, theta))

    def cnot(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.cnot(control, target))

    def cz(self, control: int, target: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.cz(control, target))

    def swap(self, qubit1: int, qubit2: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.swap(qubit1, qubit2))

    def cphase(self, control: int, target: int, theta: float) -> "QuantumCircuit":
        return self.add_gate(stdgates.controlled_phase(control, target, theta))

    def toffoli(self, control1: int, control2: int, target: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.toffoli(control1, control2, target))

    def fredkin(self, control: int, target1: int, target2: int) -> "QuantumCircuit":
        return self.add_gate(stdgates.fredkin(control, target1, target2))

    def custom(self, qubits: Sequence[int], matrix) -> "QuantumCircuit":
        return self.add_gate(stdgates.custom_gate(qubits, matrix))

    def measure(self, qubit: int) -> "QuantumCircuit":
        """Schedule ``qubit`` to be sampled after all layers have run."""
        self._validate_qubits((qubit,))
        self.measurements[qubit] = None
        return self

    def measure_all(self) -> "QuantumCircuit":
        for q in range(self._num_qubits):
            self.measurements[q] = None
        return self

    def compose(self, other: "QuantumCircuit") -> "QuantumCircuit":
        """
        Append every layer of ``other`` to this circuit, layer for layer.

        Measurements of ``other`` are not carried over.

        Raises
        ------
        CircuitQubitCountMismatchError
            If the circuits have different qubit counts.
        """
        if other.num_qubits != self._num_qubits:
            raise CircuitQubitCountMismatchError(self._num_qubits, other.num_qubits)
        for layer in other.layers:
            self.add_layer(layer.gates)
        return self

    def copy(self) -> "QuantumCircuit":
        """Return an independent copy (gates themselves are immutable and shared)."""
        new = QuantumCircuit(self._num_qubits, name=self.name)
        new.layers = [layer.copy() for layer in self.layers]
        new.measurements = dict(self.measurements)
        new.metadata = dict(self.metadata)
        return new

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def optimize(self) -> int:
        """
        Run identity removal, rotation merging and adjacent cancellation, in
        that order. Each pass works inside individual layers only.

        Returns
        -------
        int
            Number of gates removed.
        """
        before = self.gate_count()
        remove_identity_gates(self)
        merge_single_qubit_rotations(self)
        cancel_adjacent_gates(self)
        removed = before - self.gate_count()
        logger.debug(
            "optimized %s: %d -> %d gates, depth %d",
            self.name,
            before,
            before - removed,
            self.total_depth,
        )
        return removed

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def gate_count(self) -> int:
        return sum(len(layer.gates) for layer in self.layers)

    def gate_count_by_type(self) -> Dict[str, int]:
        """Return a dictionary mapping gate mnemonics to their counts."""
        counts: Dict[str, int] = {}
        for gate in self.ops:
            counts[gate.name] = counts.get(gate.name, 0) + 1
        return counts

    def qubit_connectivity(self) -> List[List[int]]:
        """For each qubit, the sorted list of qubits it shares a multi-qubit gate with."""
        neighbours: List[Set[int]] = [set() for _ in range(self._num_qubits)]
        for gate in self.ops:
            if gate.num_qubits < 2:
                continue
            for a in gate.qubits:
                for b in gate.qubits:
                    if a != b:
                        neighbours[a].add(b)
        return [sorted(n) for n in neighbours]

    def to_matrix(self) -> Optional[torch.Tensor]:
        """
        Full 2**n x 2**n matrix of the gate layers, or None above 10 qubits.

        Column j is the state obtained by running the layers on |j⟩.
        Measurements are ignored.
        """
        if self._num_qubits > MAX_MATRIX_QUBITS:
            return None

        dim = 1 << self._num_qubits
        columns = []
        gates = self.ops
        for j in range(dim):
            state = QuantumState.from_basis_state(self._num_qubits, j)
            for gate in gates:
                apply_gate_generic(state, gate)
            columns.append(state.amplitudes)
        return torch.stack(columns, dim=1)

    def info(self) -> str:
        return (
            f"Circuit: {self.name}\n"
            f"Qubits: {self._num_qubits}\n"
            f"Depth: {self.total_depth}\n"
            f"Gates: {self.gate_count()}\n"
            f"Layers: {len(self.layers)}"
        )

    def __repr__(self) -> str:
        return (
            f"QuantumCircuit(name={self.name!r}, num_qubits={self._num_qubits}, "
            f"depth={self.total_depth}, gates={self.gate_count()})"
        )


class CircuitBuilder:
    """Fluent builder that produces a :class:`QuantumCircuit`."""

    def __init__(self, num_qubits: int, name: Optional[str] = None) -> None:
        self._circuit = QuantumCircuit(num_qubits, name=name)

    @classmethod
    def with_name(cls, num_qubits: int, name: str) -> "CircuitBuilder":
        return cls(num_qubits, name=name)

    def h(self, qubit: int) -> "CircuitBuilder":
        self._circuit.h(qubit)
        return self

    def x(self, qubit: int) -> "CircuitBuilder":
        self._circuit.x(qubit)
        return self

    def y(self, qubit: int) -> "CircuitBuilder":
        self._circuit.y(qubit)
        return self

    def z(self, qubit: int) -> "CircuitBuilder":
        self._circuit.z(qubit)
        return self

    def rx(self, qubit: int, theta: float) -> "CircuitBuilder":
        self._circuit.rx(qubit, theta)
        return self

    def ry(self, qubit: int, theta: float) -> "CircuitBuilder":
        self._circuit.ry(qubit, theta)
        return self

    def rz(self, qubit: int, theta: float) -> "CircuitBuilder":
        self._circuit.rz(qubit, theta)
        return self

    def cnot(self, control: int, target: int) -> "CircuitBuilder":
        self._circuit.cnot(control, target)
        return self

    def gate(self, gate: Gate) -> "CircuitBuilder":
        self._circuit.add_gate(gate)
        return self

    def measure(self, qubit: int) -> "CircuitBuilder":
        self._circuit.measure(qubit)
        return self

    def measure_all(self) -> "CircuitBuilder":
        self._circuit.measure_all()
        return self

    def build(self) -> QuantumCircuit:
        return self._circuit
