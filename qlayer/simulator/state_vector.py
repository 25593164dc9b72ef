"""Layer-by-layer state-vector execution of a :class:`QuantumCircuit`."""

from __future__ import annotations

import math
import sys
import threading
import time
from typing import Callable, List, Optional, Sequence, Union

import torch

from qlayer.backend.kernels import (
    apply_fused,
    apply_gate_fast,
    apply_gate_generic,
    fused_contraction_fits,
    gates_are_disjoint,
)
from qlayer.backend.state import QuantumState
from qlayer.circuit import CircuitLayer, QuantumCircuit
from qlayer.errors import MemoryBudgetExceededError, QLayerError, QubitOutOfBoundsError
from qlayer.gates.standard import Gate
from qlayer.logging import get_logger

from .config import OptimizationLevel, SimulationConfig
from .results import MeasurementOutcome, QuantumResult, SimulationStats

logger = get_logger(__name__)

# Bytes per complex128 amplitude.
BYTES_PER_AMPLITUDE = 16

_GIB_LOG2 = 30

_GateKernel = Callable[[QuantumState, Gate], None]


def _state_size_gb(num_qubits: int) -> float:
    """Size of a ``num_qubits`` state vector in GiB, ``inf`` past the float range."""
    exponent = num_qubits + BYTES_PER_AMPLITUDE.bit_length() - 1 - _GIB_LOG2
    if exponent >= sys.float_info.max_exp:
        return math.inf
    return math.ldexp(1.0, exponent)


class StateVectorSimulator:
    """
    Dense state-vector simulator.

    Each call to :meth:`execute_circuit` starts from |0...0⟩, applies the
    circuit's layers in order using the strategy selected by
    ``config.optimization_level``, samples the scheduled measurements and
    folds timing and gate counts into the running :class:`SimulationStats`.

    The configuration is immutable; assign a new :class:`SimulationConfig` to
    :attr:`config` to change it. Measurement randomness comes from a
    ``torch.Generator`` seeded from ``config.seed``.

    Examples
    --------
    >>> from qlayer import QuantumCircuit, StateVectorSimulator
    >>> sim = StateVectorSimulator()
    >>> result = sim.execute_circuit(QuantumCircuit(2).h(0).cnot(0, 1))
    >>> [round(p, 3) for p in result.final_state.probabilities().tolist()]
    [0.5, 0.0, 0.0, 0.5]
    """

    def __init__(self, config: Optional[SimulationConfig] = None) -> None:
        self._config = config if config is not None else SimulationConfig()
        self._stats = SimulationStats()
        self._lock = threading.Lock()
        self._generator = self._make_generator(self._config.seed)

    @classmethod
    def with_config(cls, config: SimulationConfig) -> "StateVectorSimulator":
        return cls(config)

    @staticmethod
    def _make_generator(seed: Optional[int]) -> torch.Generator:
        generator = torch.Generator()
        if seed is None:
            generator.seed()
        else:
            generator.manual_seed(seed)
        return generator

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @config.setter
    def config(self, config: SimulationConfig) -> None:
        if not isinstance(config, SimulationConfig):
            raise TypeError(
                f"config must be a SimulationConfig, got {type(config).__name__}"
            )
        self._config = config
        self._generator = self._make_generator(config.seed)

    @property
    def stats(self) -> SimulationStats:
        """Snapshot of the running statistics."""
        return self.get_stats()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_circuit(self, circuit: QuantumCircuit) -> QuantumResult:
        """
        Run ``circuit`` from |0...0⟩ and sample its scheduled measurements.

        Parameters
        ----------
        circuit : QuantumCircuit
            Circuit to execute. It is not modified.

        Returns
        -------
        QuantumResult
            Final state, measurement outcomes in scheduling order, elapsed
            seconds and the number of gates applied.

        Raises
        ------
        MemoryBudgetExceededError
            If the state vector would exceed ``config.memory_limit_gb``.
            Nothing is allocated in that case.
        QubitOutOfBoundsError
            If a gate or measurement references a qubit >= num_qubits.
        """
        start = time.perf_counter()
        self.validate_circuit(circuit)

        config = self._config
        n = circuit.num_qubits
        logger.debug(
            "executing %s: %d qubits, %d gates, depth %d, level %s",
            circuit.name,
            n,
            circuit.gate_count(),
            circuit.total_depth,
            config.optimization_level.name,
        )

        state = QuantumState(n, sparse_threshold=config.sparse_threshold)
        run = SimulationStats(memory_usage_mb=self.estimate_memory_usage(n))

        for layer in circuit.layers:
            self._execute_layer(state, layer, run)
            if self.should_compress_state(state):
                self.compress_state(state)

        measurements = self._perform_measurements(state, circuit)

        elapsed = time.perf_counter() - start
        operations = circuit.gate_count()
        run.total_operations = operations
        run.total_simulation_time = elapsed
        run.circuits_executed = 1
        with self._lock:
            self._stats.merge(run)

        logger.debug(
            "finished %s in %.6f s: %d gates, %d fused groups, %d measurements",
            circuit.name,
            elapsed,
            operations,
            run.parallel_groups,
            len(measurements),
        )
        return QuantumResult(
            final_state=state,
            measurements=measurements,
            execution_time=elapsed,
            operations_count=operations,
        )

    def validate_circuit(self, circuit: QuantumCircuit) -> None:
        """
        Check the memory budget and every qubit reference, without allocating.

        Raises
        ------
        MemoryBudgetExceededError
            If ``2**n * 16`` bytes exceeds ``memory_limit_gb`` GiB.
        QubitOutOfBoundsError
            If a gate or measurement references a qubit >= num_qubits.
        """
        n = circuit.num_qubits
        limit_gb = self._config.memory_limit_gb
        required_bytes = (1 << n) * BYTES_PER_AMPLITUDE
        if required_bytes > limit_gb * (1 << 30):
            required_gb = _state_size_gb(n)
            logger.warning(
                "rejecting %s: %d qubits need %.3g GB, limit is %.3g GB",
                circuit.name,
                n,
                required_gb,
                limit_gb,
            )
            raise MemoryBudgetExceededError(required_gb, limit_gb)

        for gate in circuit.ops:
            for q in gate.qubits:
                if q >= n:
                    raise QubitOutOfBoundsError(q, n)
        for q in circuit.measurements:
            if q >= n:
                raise QubitOutOfBoundsError(q, n)

    def _execute_layer(
        self, state: QuantumState, layer: CircuitLayer, run: SimulationStats
    ) -> None:
        level = self._config.optimization_level
        if level is OptimizationLevel.NONE:
            self._apply_sequential(state, layer.gates, apply_gate_generic, run)
        elif level is OptimizationLevel.BASIC:
            self._apply_sequential(state, layer.gates, apply_gate_fast, run)
        elif level is OptimizationLevel.AGGRESSIVE:
            self._execute_layer_aggressive(state, layer, run)
        else:
            self._execute_layer_ultra_optimized(state, layer, run)

    def _apply_sequential(
        self,
        state: QuantumState,
        gates: Sequence[Gate],
        kernel: _GateKernel,
        run: SimulationStats,
    ) -> None:
        for gate in gates:
            t0 = time.perf_counter()
            kernel(state, gate)
            run.record_gate(gate.name, time.perf_counter() - t0)

    def _execute_layer_aggressive(
        self, state: QuantumState, layer: CircuitLayer, run: SimulationStats
    ) -> None:
        """Apply single-qubit gates, then two-qubit gates, then the rest."""
        single: List[Gate] = []
        double: List[Gate] = []
        other: List[Gate] = []
        for gate in layer.gates:
            if gate.num_qubits == 1:
                single.append(gate)
            elif gate.num_qubits == 2:
                double.append(gate)
            else:
                other.append(gate)

        for bucket in (single, double, other):
            self._apply_sequential(state, bucket, apply_gate_fast, run)

    def _execute_layer_ultra_optimized(
        self, state: QuantumState, layer: CircuitLayer, run: SimulationStats
    ) -> None:
        """Apply each parallel group of the layer as fused contractions."""
        covered = sorted(i for group in layer.parallel_gates for i in group)
        if covered != list(range(len(layer.gates))):
            if layer.parallel_gates:
                logger.debug(
                    "layer %d: parallel groups do not cover its %d gates, "
                    "applying by arity",
                    layer.depth,
                    len(layer.gates),
                )
            self._execute_layer_aggressive(state, layer, run)
            return

        limit = self._config.max_parallel_gates
        for group in layer.parallel_gates:
            gates = [layer.gates[i] for i in group]
            if len(gates) > 1 and not gates_are_disjoint(gates):
                logger.debug(
                    "layer %d: group %s shares qubits, applying sequentially",
                    layer.depth,
                    group,
                )
                self._apply_sequential(state, gates, apply_gate_fast, run)
                continue
            for start in range(0, len(gates), limit):
                self._apply_group(state, gates[start:start + limit], run)

    def _apply_group(
        self, state: QuantumState, gates: Sequence[Gate], run: SimulationStats
    ) -> None:
        if len(gates) == 1 or not fused_contraction_fits(state.num_qubits, gates):
            self._apply_sequential(state, gates, apply_gate_fast, run)
            return

        t0 = time.perf_counter()
        apply_fused(state, gates)
        share = (time.perf_counter() - t0) / len(gates)
        for gate in gates:
            run.record_gate(gate.name, share)
        run.parallel_groups += 1

    def _perform_measurements(
        self, state: QuantumState, circuit: QuantumCircuit
    ) -> List[MeasurementOutcome]:
        outcomes = []
        for qubit in circuit.measurements:
            collapsed_to_zero = state.measure_qubit(qubit, self._generator)
            outcomes.append(MeasurementOutcome(qubit, collapsed_to_zero))
        return outcomes

    # ------------------------------------------------------------------
    # Sparse representation hooks
    # ------------------------------------------------------------------

    def should_compress_state(self, state: QuantumState) -> bool:
        """
        True when sparse handling is enabled and fewer than a quarter of the
        amplitudes have magnitude above ``sparse_threshold``.
        """
        if not self._config.use_sparse_representation:
            return False
        non_zero = int((torch.abs(state.amplitudes) > self._config.sparse_threshold).sum())
        return non_zero < state.dimension // 4

    def compress_state(self, state: QuantumState) -> None:
        """Hook for a sparse representation. The state stays dense."""
        logger.debug(
            "state of %d qubits is sparse; keeping dense representation",
            state.num_qubits,
        )

    # ------------------------------------------------------------------
    # Statistics and sizing
    # ------------------------------------------------------------------

    def get_stats(self) -> SimulationStats:
        with self._lock:
            return self._stats.copy()

    def reset_stats(self) -> None:
        with self._lock:
            self._stats = SimulationStats()

    @staticmethod
    def estimate_memory_usage(num_qubits: int) -> float:
        """State-vector size for ``num_qubits`` qubits, in MiB."""
        return _state_size_gb(num_qubits) * 1024.0

    @staticmethod
    def max_qubits_for_memory(memory_limit_gb: float) -> int:
        """Largest qubit count whose state vector fits in ``memory_limit_gb`` GiB."""
        limit_mb = memory_limit_gb * 1024.0
        qubits = 0
        while StateVectorSimulator.estimate_memory_usage(qubits + 1) <= limit_mb:
            qubits += 1
        return qubits

    def __repr__(self) -> str:
        return f"StateVectorSimulator(config={self._config!r})"


def simulate_batch(
    circuits: Sequence[QuantumCircuit],
    config: Optional[SimulationConfig] = None,
    return_exceptions: bool = False,
) -> List[Union[QuantumResult, QLayerError]]:
    """
    Execute each circuit on its own simulator built from ``config``.

    Parameters
    ----------
    circuits : Sequence[QuantumCircuit]
        Circuits to run, in order.
    config : SimulationConfig, optional
        Shared configuration; defaults to ``SimulationConfig()``.
    return_exceptions : bool
        If True, a circuit that fails with a :class:`QLayerError` yields the
        exception in its slot instead of aborting the batch.

    Returns
    -------
    list
        One result (or exception) per circuit, in input order.
    """
    sim_config = config if config is not None else SimulationConfig()
    results: List[Union[QuantumResult, QLayerError]] = []
    for circuit in circuits:
        simulator = StateVectorSimulator(sim_config)
        try:
            results.append(simulator.execute_circuit(circuit))
        except QLayerError as exc:
            if not return_exceptions:
                raise
            logger.debug("batch entry %s failed: %s", circuit.name, exc)
            results.append(exc)
    return results


__all__ = ["StateVectorSimulator", "simulate_batch", "BYTES_PER_AMPLITUDE"]
