"""Exception types raised by the circuit model and the simulator."""

from __future__ import annotations


class QLayerError(Exception):
    """Base class for all qlayer errors."""


class QubitOutOfBoundsError(QLayerError, ValueError):
    """A gate or measurement references a qubit outside the circuit."""

    def __init__(self, qubit: int, num_qubits: int) -> None:
        self.qubit = qubit
        self.num_qubits = num_qubits
        super().__init__(
            f"Qubit {qubit} out of bounds for {num_qubits}-qubit circuit"
        )


class MatrixSizeMismatchError(QLayerError, ValueError):
    """A custom gate matrix does not have (2**k)**2 entries."""

    def __init__(self, actual: int, expected: int, num_qubits: int) -> None:
        self.actual = actual
        self.expected = expected
        self.num_qubits = num_qubits
        super().__init__(
            f"Matrix size {actual} doesn't match expected {expected} "
            f"for {num_qubits} qubits"
        )


class MemoryBudgetExceededError(QLayerError, MemoryError):
    """The state vector would not fit in the configured memory budget."""

    def __init__(self, required_gb: float, limit_gb: float) -> None:
        self.required_gb = required_gb
        self.limit_gb = limit_gb
        super().__init__(
            f"Circuit requires {required_gb:.3g} GB but limit is {limit_gb:.3g} GB"
        )


class ZeroProbabilityBranchError(QLayerError, ValueError):
    """A measurement tried to keep a branch that carries no amplitude."""

    def __init__(self, qubit: int, collapsed_to_zero: bool) -> None:
        self.qubit = qubit
        self.collapsed_to_zero = collapsed_to_zero
        super().__init__(
            f"Cannot collapse qubit {qubit} onto the |{0 if collapsed_to_zero else 1}> "
            "branch: it has zero probability"
        )


class CircuitQubitCountMismatchError(QLayerError, ValueError):
    """Two circuits with different qubit counts were combined."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Cannot compose circuits with different number of qubits "
            f"({expected} vs {actual})"
        )


class CommandSyntaxError(QLayerError, ValueError):
    """A textual gate command could not be parsed."""


__all__ = [
    "QLayerError",
    "QubitOutOfBoundsError",
    "MatrixSizeMismatchError",
    "MemoryBudgetExceededError",
    "CircuitQubitCountMismatchError",
    "CommandSyntaxError",
    "ZeroProbabilityBranchError",
]
