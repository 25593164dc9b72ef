"""qlayer - a layered, PyTorch-backed quantum state-vector simulator."""

__version__ = "0.1.0"

# Backend
from .backend import QuantumState, apply_gate_fast, apply_gate_generic

# Circuit model
from .circuit import CircuitBuilder, CircuitLayer, QuantumCircuit
from .core import Device, default_device, device

# Diagnostics
from .diagnostics import (
    assert_normalized,
    debug_context,
    fidelity,
    is_debug_enabled,
    set_debug_enabled,
    state_norm,
)

# Errors
from .errors import (
    CircuitQubitCountMismatchError,
    CommandSyntaxError,
    MatrixSizeMismatchError,
    MemoryBudgetExceededError,
    QLayerError,
    QubitOutOfBoundsError,
    ZeroProbabilityBranchError,
)

# Gates
from .gates import Gate, GateKind, custom_gate, is_unitary

# Command grammar
from .io import Command, apply_command, apply_script, parse_command

# Logging
from .logging import configure_logging, get_logger, set_log_level

# Simulator
from .simulator import (
    MeasurementOutcome,
    OptimizationLevel,
    QuantumResult,
    SimulationConfig,
    SimulationStats,
    StateVectorSimulator,
    simulate_batch,
)

# Analysis and passes
from .transpile import GateCountSummary, estimate_circuit_depth, summarize_gate_counts

__all__ = [
    "__version__",
    "QuantumState",
    "apply_gate_fast",
    "apply_gate_generic",
    "CircuitBuilder",
    "CircuitLayer",
    "QuantumCircuit",
    "Device",
    "default_device",
    "device",
    "assert_normalized",
    "debug_context",
    "fidelity",
    "is_debug_enabled",
    "set_debug_enabled",
    "state_norm",
    "QLayerError",
    "QubitOutOfBoundsError",
    "MatrixSizeMismatchError",
    "MemoryBudgetExceededError",
    "CircuitQubitCountMismatchError",
    "CommandSyntaxError",
    "ZeroProbabilityBranchError",
    "Gate",
    "GateKind",
    "custom_gate",
    "is_unitary",
    "Command",
    "parse_command",
    "apply_command",
    "apply_script",
    "configure_logging",
    "get_logger",
    "set_log_level",
    "MeasurementOutcome",
    "OptimizationLevel",
    "QuantumResult",
    "SimulationConfig",
    "SimulationStats",
    "StateVectorSimulator",
    "simulate_batch",
    "GateCountSummary",
    "estimate_circuit_depth",
    "summarize_gate_counts",
]
