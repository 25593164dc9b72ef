"""Result and statistics containers returned by the simulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

from qlayer.backend.state import QuantumState


class MeasurementOutcome(NamedTuple):
    """
    Outcome of sampling one qubit.

    ``collapsed_to_zero`` is True when the state was projected onto the
    branch where the qubit reads 0.
    """

    qubit: int
    collapsed_to_zero: bool

    @property
    def bit(self) -> int:
        """The measured classical bit (0 or 1)."""
        return 0 if self.collapsed_to_zero else 1


@dataclass
class QuantumResult:
    """
    Output of one circuit execution.

    Attributes
    ----------
    final_state:
        State after all layers and measurement collapses.
    measurements:
        One outcome per scheduled qubit, in the order the measurements were
        scheduled.
    execution_time:
        Wall-clock seconds spent in ``execute_circuit``.
    operations_count:
        Number of gates applied.
    """

    final_state: QuantumState
    measurements: List[MeasurementOutcome] = field(default_factory=list)
    execution_time: float = 0.0
    operations_count: int = 0

    def outcome_for(self, qubit: int) -> Optional[MeasurementOutcome]:
        """The outcome recorded for ``qubit``, or None if it was not measured."""
        for outcome in self.measurements:
            if outcome.qubit == qubit:
                return outcome
        return None

    def bitstring(self) -> str:
        """Measured bits, most significant (highest index) measured qubit first."""
        ordered = sorted(self.measurements, key=lambda m: m.qubit, reverse=True)
        return "".join(str(m.bit) for m in ordered)


@dataclass
class SimulationStats:
    """
    Running totals accumulated by a simulator across executions.

    Attributes
    ----------
    total_operations:
        Gates applied over all executions.
    total_simulation_time:
        Seconds spent executing circuits.
    memory_usage_mb:
        Largest state vector allocated so far, in MiB.
    gate_timings:
        Seconds spent per gate mnemonic. Gates applied inside a fused group
        share the group's time equally.
    gate_counts:
        Applications per gate mnemonic.
    circuits_executed:
        Number of successful ``execute_circuit`` calls.
    parallel_groups:
        Number of multi-gate groups applied as a single fused contraction.
    """

    total_operations: int = 0
    total_simulation_time: float = 0.0
    memory_usage_mb: float = 0.0
    gate_timings: Dict[str, float] = field(default_factory=dict)
    gate_counts: Dict[str, int] = field(default_factory=dict)
    circuits_executed: int = 0
    parallel_groups: int = 0

    def record_gate(self, name: str, seconds: float) -> None:
        self.gate_timings[name] = self.gate_timings.get(name, 0.0) + seconds
        self.gate_counts[name] = self.gate_counts.get(name, 0) + 1

    def merge(self, other: "SimulationStats") -> None:
        """Fold ``other`` into these totals."""
        self.total_operations += other.total_operations
        self.total_simulation_time += other.total_simulation_time
        self.memory_usage_mb = max(self.memory_usage_mb, other.memory_usage_mb)
        for name, seconds in other.gate_timings.items():
            self.gate_timings[name] = self.gate_timings.get(name, 0.0) + seconds
        for name, count in other.gate_counts.items():
            self.gate_counts[name] = self.gate_counts.get(name, 0) + count
        self.circuits_executed += other.circuits_executed
        self.parallel_groups += other.parallel_groups

    def copy(self) -> "SimulationStats":
        return SimulationStats(
            total_operations=self.total_operations,
            total_simulation_time=self.total_simulation_time,
            memory_usage_mb=self.memory_usage_mb,
            gate_timings=dict(self.gate_timings),
            gate_counts=dict(self.gate_counts),
            circuits_executed=self.circuits_executed,
            parallel_groups=self.parallel_groups,
        )


__all__ = ["MeasurementOutcome", "QuantumResult", "SimulationStats"]
