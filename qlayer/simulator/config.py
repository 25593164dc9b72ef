"""Simulator configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union

from qlayer.logging import get_logger

logger = get_logger(__name__)


class OptimizationLevel(IntEnum):
    """
    Execution strategy, ordered by how much layer structure the executor uses.

    NONE
        Generic matrix embedding for every gate.
    BASIC
        Closed-form fast paths where available, generic otherwise.
    AGGRESSIVE
        Gates of each layer bucketed by arity, then fast-path-or-generic.
    ULTRA_OPTIMIZED
        Qubit-disjoint groups of each layer fused into one contraction.
    """

    NONE = 0
    BASIC = 1
    AGGRESSIVE = 2
    ULTRA_OPTIMIZED = 3

    @classmethod
    def parse(cls, value: Union["OptimizationLevel", int, str]) -> "OptimizationLevel":
        """
        Resolve a level from a member, an integer or a case-insensitive name
        such as ``"basic"`` or ``"ultra-optimized"``.

        Raises:
            ValueError: If ``value`` names no level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_")
            try:
                return cls[key]
            except KeyError:
                valid = ", ".join(m.name.lower() for m in cls)
                raise ValueError(
                    f"Unknown optimization level {value!r}. Expected one of: {valid}."
                ) from None
        return cls(value)


@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable settings for a :class:`StateVectorSimulator`.

    Args:
        optimization_level: Execution strategy. Accepts an
            :class:`OptimizationLevel`, its integer value or its name.
        memory_limit_gb: Largest state vector the simulator will allocate,
            in GiB. Must be positive.
        sparse_threshold: Amplitude magnitude at or below which an entry
            counts as zero in the sparsity check.
        use_sparse_representation: Whether the sparsity check runs at all.
        max_parallel_gates: Largest number of gates fused into a single
            contraction. Must be >= 1.
        use_gpu_acceleration: Accepted for compatibility; execution always
            stays on the CPU and a warning is logged.
        seed: Seed for the measurement random generator. ``None`` draws a
            fresh seed.
    """

    optimization_level: OptimizationLevel = OptimizationLevel.ULTRA_OPTIMIZED
    memory_limit_gb: float = 8.0
    sparse_threshold: float = 1e-12
    use_sparse_representation: bool = True
    max_parallel_gates: int = 16
    use_gpu_acceleration: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate and normalize fields."""
        object.__setattr__(
            self, "optimization_level", OptimizationLevel.parse(self.optimization_level)
        )
        if self.memory_limit_gb <= 0.0:
            raise ValueError(f"memory_limit_gb must be positive, got {self.memory_limit_gb}")
        if self.sparse_threshold < 0.0:
            raise ValueError(
                f"sparse_threshold must be non-negative, got {self.sparse_threshold}"
            )
        if self.max_parallel_gates < 1:
            raise ValueError(
                f"max_parallel_gates must be >= 1, got {self.max_parallel_gates}"
            )
        if self.use_gpu_acceleration:
            logger.warning(
                "GPU acceleration was requested but is not available; running on CPU."
            )


__all__ = ["OptimizationLevel", "SimulationConfig"]
