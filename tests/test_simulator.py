"""Tests for StateVectorSimulator, its configuration and batch execution."""

from __future__ import annotations

import math

import pytest
import torch

from qlayer.backend import QuantumState
from qlayer.circuit import QuantumCircuit
from qlayer.errors import (
    MemoryBudgetExceededError,
    QLayerError,
    QubitOutOfBoundsError,
    ZeroProbabilityBranchError,
)
from qlayer.gates import standard as stdgates
from qlayer.simulator import (
    MeasurementOutcome,
    OptimizationLevel,
    QuantumResult,
    SimulationConfig,
    StateVectorSimulator,
    simulate_batch,
)

ALL_LEVELS = list(OptimizationLevel)


def bell_circuit() -> QuantumCircuit:
    return QuantumCircuit(2).h(0).cnot(0, 1)


def mixed_circuit() -> QuantumCircuit:
    """A 5-qubit circuit touching every kernel family."""
    circuit = QuantumCircuit(5)
    circuit.h(0).h(1).h(2).rx(3, 0.3).ry(4, 1.2)
    circuit.cnot(0, 1).cz(2, 3).rz(4, -0.8)
    circuit.toffoli(0, 2, 4).swap(1, 3)
    circuit.y(0).s(1).t(2).phase(3, 0.6).cphase(4, 1, 0.4)
    circuit.fredkin(3, 0, 2).x(1)
    circuit.custom([4, 1], stdgates.swap(0, 1).matrix)
    # Same-qubit gates in one verbatim layer land in separate parallel groups.
    circuit.add_layer([stdgates.rx(0, 0.1), stdgates.rx(0, 0.2), stdgates.cnot(1, 2)])
    return circuit


@pytest.mark.parametrize("level", ALL_LEVELS, ids=lambda lv: lv.name)
def test_bell_state_probabilities(level: OptimizationLevel) -> None:
    sim = StateVectorSimulator(SimulationConfig(optimization_level=level))
    result = sim.execute_circuit(bell_circuit())

    probs = result.final_state.probabilities()
    assert torch.allclose(
        probs, torch.tensor([0.5, 0.0, 0.0, 0.5], dtype=probs.dtype), atol=1e-12
    )
    assert result.operations_count == 2
    assert result.measurements == []
    assert result.execution_time >= 0.0


def test_all_levels_produce_identical_states() -> None:
    circuit = mixed_circuit()
    states = []
    for level in ALL_LEVELS:
        sim = StateVectorSimulator(SimulationConfig(optimization_level=level, seed=1))
        states.append(sim.execute_circuit(circuit).final_state.amplitudes)

    for amps in states[1:]:
        assert torch.allclose(amps, states[0], atol=1e-9)
    assert float(torch.sum(torch.abs(states[0]) ** 2)) == pytest.approx(1.0, abs=1e-9)


def test_execution_matches_circuit_matrix() -> None:
    circuit = mixed_circuit()
    u = circuit.to_matrix()
    result = StateVectorSimulator().execute_circuit(circuit)
    assert torch.allclose(result.final_state.amplitudes, u[:, 0], atol=1e-9)


def test_fused_groups_are_counted_and_chunked() -> None:
    circuit = QuantumCircuit(6)
    for q in range(6):
        circuit.ry(q, 0.1 * (q + 1))

    ultra = StateVectorSimulator(
        SimulationConfig(optimization_level=OptimizationLevel.ULTRA_OPTIMIZED, max_parallel_gates=4)
    )
    basic = StateVectorSimulator(SimulationConfig(optimization_level=OptimizationLevel.BASIC))

    fused = ultra.execute_circuit(circuit).final_state.amplitudes
    expected = basic.execute_circuit(circuit).final_state.amplitudes
    assert torch.allclose(fused, expected, atol=1e-12)

    stats = ultra.get_stats()
    # 6 disjoint gates split into chunks of 4 and 2.
    assert stats.parallel_groups == 2
    assert stats.gate_counts == {"RY": 6}
    assert basic.get_stats().parallel_groups == 0


def test_measurement_outcomes_are_correlated() -> None:
    sim = StateVectorSimulator(SimulationConfig(seed=1234))
    circuit = bell_circuit().measure(0).measure(1)

    zeros = 0
    for _ in range(200):
        result = sim.execute_circuit(circuit)
        first, second = result.measurements
        assert first.qubit == 0 and second.qubit == 1
        assert first.collapsed_to_zero == second.collapsed_to_zero
        zeros += first.collapsed_to_zero

        expected_index = 0 if first.collapsed_to_zero else 3
        assert float(result.final_state.probabilities()[expected_index]) == pytest.approx(1.0)

    assert 60 < zeros < 140


def test_measurement_of_definite_states() -> None:
    sim = StateVectorSimulator(SimulationConfig(seed=0))
    result = sim.execute_circuit(QuantumCircuit(3).x(1).measure_all())
    assert result.measurements == [
        MeasurementOutcome(0, True),
        MeasurementOutcome(1, False),
        MeasurementOutcome(2, True),
    ]
    assert result.outcome_for(1).bit == 1
    assert result.outcome_for(1) == (1, False)
    assert result.bitstring() == "010"


def test_outcome_for_unmeasured_qubit() -> None:
    result = StateVectorSimulator().execute_circuit(QuantumCircuit(2).h(0).measure(0))
    assert result.outcome_for(1) is None
    assert isinstance(result, QuantumResult)


def test_seeded_simulators_reproduce_outcomes() -> None:
    circuit = QuantumCircuit(4).h(0).h(1).h(2).h(3).measure_all()

    def run(seed: int):
        sim = StateVectorSimulator(SimulationConfig(seed=seed))
        return [tuple(sim.execute_circuit(circuit).measurements) for _ in range(5)]

    assert run(7) == run(7)


def test_memory_budget_rejects_before_allocation(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_allocation(*args, **kwargs):
        raise AssertionError("state vector must not be allocated")

    monkeypatch.setattr(QuantumState, "__init__", fail_allocation)
    sim = StateVectorSimulator(SimulationConfig(memory_limit_gb=1.0))

    # 2**27 * 16 bytes = 2 GiB > 1 GiB
    with pytest.raises(MemoryBudgetExceededError) as excinfo:
        sim.execute_circuit(QuantumCircuit(27).h(0))
    assert excinfo.value.limit_gb == 1.0
    assert excinfo.value.required_gb == pytest.approx(2.0)
    assert "requires 2 GB" in str(excinfo.value)
    assert isinstance(excinfo.value, MemoryError)
    assert sim.get_stats().circuits_executed == 0


def test_memory_budget_boundary() -> None:
    sim = StateVectorSimulator(SimulationConfig(memory_limit_gb=1.0 / 1024))
    # 2**16 * 16 bytes = 1 MiB exactly fits.
    sim.validate_circuit(QuantumCircuit(16))
    with pytest.raises(MemoryBudgetExceededError):
        sim.validate_circuit(QuantumCircuit(17))


def test_budget_message_keeps_small_figures_readable() -> None:
    sim = StateVectorSimulator(SimulationConfig(memory_limit_gb=1.0 / 1024))
    with pytest.raises(MemoryBudgetExceededError) as excinfo:
        sim.validate_circuit(QuantumCircuit(17))
    message = str(excinfo.value)
    assert "0.00195 GB" in message
    assert "0.000977 GB" in message


def test_huge_register_is_rejected_by_budget() -> None:
    with pytest.raises(MemoryBudgetExceededError) as excinfo:
        StateVectorSimulator().execute_circuit(QuantumCircuit(1100).h(0))
    assert math.isinf(excinfo.value.required_gb)
    assert StateVectorSimulator.estimate_memory_usage(1100) == math.inf


def test_out_of_bounds_gate_is_rejected() -> None:
    circuit = QuantumCircuit(2)
    circuit.add_layer([stdgates.h(0)])
    # Bypass add_gate validation to exercise the simulator's own check.
    circuit.layers[0].gates.append(stdgates.x(3))

    sim = StateVectorSimulator()
    with pytest.raises(QubitOutOfBoundsError) as excinfo:
        sim.execute_circuit(circuit)
    assert excinfo.value.qubit == 3
    assert sim.get_stats().total_operations == 0


def test_stats_accumulate_and_reset() -> None:
    sim = StateVectorSimulator(SimulationConfig(optimization_level=OptimizationLevel.BASIC))
    sim.execute_circuit(bell_circuit())
    sim.execute_circuit(QuantumCircuit(3).h(0).h(1).x(2))

    stats = sim.get_stats()
    assert stats.total_operations == 5
    assert stats.circuits_executed == 2
    assert stats.gate_counts == {"H": 3, "CNOT": 1, "X": 1}
    assert set(stats.gate_timings) == {"H", "CNOT", "X"}
    assert all(t >= 0.0 for t in stats.gate_timings.values())
    assert stats.total_simulation_time > 0.0
    assert stats.memory_usage_mb == pytest.approx(8 * 16 / (1024 * 1024))

    # Snapshots are detached from the live counters.
    stats.total_operations = 999
    assert sim.stats.total_operations == 5

    sim.reset_stats()
    cleared = sim.get_stats()
    assert cleared.total_operations == 0
    assert cleared.gate_counts == {}
    assert cleared.circuits_executed == 0


def test_unitary_circuits_preserve_norm() -> None:
    result = StateVectorSimulator().execute_circuit(mixed_circuit())
    norm = float(torch.sum(result.final_state.probabilities()))
    assert norm == pytest.approx(1.0, abs=1e-9)


def test_estimate_memory_usage_and_inverse() -> None:
    assert StateVectorSimulator.estimate_memory_usage(10) == pytest.approx(16 / 1024)
    assert StateVectorSimulator.estimate_memory_usage(20) == pytest.approx(16.0)

    for limit in (0.001, 0.5, 1.0, 8.0):
        n = StateVectorSimulator.max_qubits_for_memory(limit)
        sim = StateVectorSimulator(SimulationConfig(memory_limit_gb=limit))
        sim.validate_circuit(QuantumCircuit(n))
        with pytest.raises(MemoryBudgetExceededError):
            sim.validate_circuit(QuantumCircuit(n + 1))

    assert StateVectorSimulator.max_qubits_for_memory(8.0) == 29


def test_should_compress_state() -> None:
    sim = StateVectorSimulator()
    assert sim.should_compress_state(QuantumState(4))

    spread = QuantumState.from_amplitudes(torch.full((16,), 0.25, dtype=torch.complex128))
    assert not sim.should_compress_state(spread)

    dense_only = StateVectorSimulator(SimulationConfig(use_sparse_representation=False))
    assert not dense_only.should_compress_state(QuantumState(4))


def test_compress_state_leaves_amplitudes_unchanged() -> None:
    sim = StateVectorSimulator()
    state = QuantumState.from_basis_state(3, 5)
    before = state.amplitudes.clone()
    sim.compress_state(state)
    assert torch.equal(state.amplitudes, before)


def test_config_is_frozen_and_replaceable() -> None:
    sim = StateVectorSimulator()
    assert sim.config.optimization_level is OptimizationLevel.ULTRA_OPTIMIZED
    with pytest.raises(AttributeError):
        sim.config.memory_limit_gb = 1.0  # type: ignore[misc]

    sim.config = SimulationConfig(optimization_level="basic")
    assert sim.config.optimization_level is OptimizationLevel.BASIC
    with pytest.raises(TypeError):
        sim.config = {"optimization_level": "none"}  # type: ignore[assignment]

    other = StateVectorSimulator.with_config(SimulationConfig(optimization_level=0))
    assert other.config.optimization_level is OptimizationLevel.NONE


def test_config_validation() -> None:
    with pytest.raises(ValueError, match="memory_limit_gb"):
        SimulationConfig(memory_limit_gb=0.0)
    with pytest.raises(ValueError, match="max_parallel_gates"):
        SimulationConfig(max_parallel_gates=0)
    with pytest.raises(ValueError, match="Unknown optimization level"):
        SimulationConfig(optimization_level="turbo")


def test_optimization_level_parse_and_order() -> None:
    assert OptimizationLevel.parse("ultra-optimized") is OptimizationLevel.ULTRA_OPTIMIZED
    assert OptimizationLevel.parse("Aggressive") is OptimizationLevel.AGGRESSIVE
    assert OptimizationLevel.parse(1) is OptimizationLevel.BASIC
    assert OptimizationLevel.NONE < OptimizationLevel.BASIC < OptimizationLevel.AGGRESSIVE
    assert OptimizationLevel.AGGRESSIVE < OptimizationLevel.ULTRA_OPTIMIZED


def test_gpu_flag_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    import logging

    from qlayer.simulator import config as config_module

    config_module.logger.propagate = True
    try:
        with caplog.at_level(logging.WARNING, logger=config_module.logger.name):
            cfg = SimulationConfig(use_gpu_acceleration=True)
    finally:
        config_module.logger.propagate = False

    assert cfg.use_gpu_acceleration
    assert any("GPU" in record.getMessage() for record in caplog.records)
    result = StateVectorSimulator(cfg).execute_circuit(bell_circuit())
    assert result.final_state.amplitudes.device.type == "cpu"


def test_simulate_batch() -> None:
    circuits = [bell_circuit(), QuantumCircuit(1).x(0).measure(0)]
    results = simulate_batch(circuits, SimulationConfig(seed=3))
    assert len(results) == 2
    assert results[1].measurements == [MeasurementOutcome(0, False)]


def test_simulate_batch_errors() -> None:
    circuits = [bell_circuit(), QuantumCircuit(40), QuantumCircuit(1).h(0)]
    with pytest.raises(MemoryBudgetExceededError):
        simulate_batch(circuits)

    results = simulate_batch(circuits, return_exceptions=True)
    assert isinstance(results[0], QuantumResult)
    assert isinstance(results[1], MemoryBudgetExceededError)
    assert isinstance(results[1], QLayerError)
    assert isinstance(results[2], QuantumResult)


def test_hadamard_amplitudes_exact() -> None:
    result = StateVectorSimulator().execute_circuit(QuantumCircuit(1).h(0))
    inv = 1.0 / math.sqrt(2.0)
    expected = torch.tensor([inv, inv], dtype=torch.complex128)
    assert torch.allclose(result.final_state.amplitudes, expected, atol=1e-15)


@pytest.mark.parametrize("level", ALL_LEVELS, ids=lambda lv: lv.name)
def test_measurement_after_non_unitary_gate_keeps_weighted_branch(level: OptimizationLevel) -> None:
    # The damping gate leaves total weight 0.25, all of it on |0>.
    circuit = QuantumCircuit(1).custom([0], [[0.5, 0.0], [0.0, 0.5]]).measure(0)
    for seed in range(50):
        sim = StateVectorSimulator(SimulationConfig(optimization_level=level, seed=seed))
        result = sim.execute_circuit(circuit)
        assert result.measurements == [MeasurementOutcome(0, True)]
        expected = torch.tensor([1.0, 0.0], dtype=torch.complex128)
        assert torch.allclose(result.final_state.amplitudes, expected, atol=1e-12)


def test_measurement_of_zero_vector_raises_typed_error() -> None:
    circuit = QuantumCircuit(1).custom([0], [[0.0, 0.0], [0.0, 0.0]]).measure(0)
    with pytest.raises(ZeroProbabilityBranchError) as excinfo:
        StateVectorSimulator(SimulationConfig(seed=0)).execute_circuit(circuit)
    assert excinfo.value.qubit == 0
    assert isinstance(excinfo.value, QLayerError)


def test_ultra_applies_gates_missing_from_parallel_groups() -> None:
    circuit = QuantumCircuit(2)
    circuit.add_layer([stdgates.h(0)])
    # Appended directly, so the layer's parallel groups do not list it.
    circuit.layers[0].gates.append(stdgates.x(1))

    states = {
        level: StateVectorSimulator(SimulationConfig(optimization_level=level))
        .execute_circuit(circuit)
        .final_state.amplitudes
        for level in ALL_LEVELS
    }
    expected = torch.tensor([0.0, 0.0, 1.0, 1.0], dtype=torch.complex128) / math.sqrt(2.0)
    for amplitudes in states.values():
        assert torch.allclose(amplitudes, expected, atol=1e-12)
