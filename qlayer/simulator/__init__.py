"""State-vector simulator, its configuration and result types."""

from .config import OptimizationLevel, SimulationConfig
from .results import MeasurementOutcome, QuantumResult, SimulationStats
from .state_vector import BYTES_PER_AMPLITUDE, StateVectorSimulator, simulate_batch

__all__ = [
    "OptimizationLevel",
    "SimulationConfig",
    "MeasurementOutcome",
    "QuantumResult",
    "SimulationStats",
    "StateVectorSimulator",
    "simulate_batch",
    "BYTES_PER_AMPLITUDE",
]
