"""Standard quantum gate definitions.

Every gate carries its dense matrix. Matrix row/column indices use the local
bit convention: bit ``i`` of an index is the value of ``gate.qubits[i]``. The
matrices of fixed gates come from constant tables built once at import time;
parametric gates (P, RX, RY, RZ, CPhase) are built from their angle.
"""

from __future__ import annotations

import cmath
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np
import torch

from qlayer.errors import MatrixSizeMismatchError

AMPLITUDE_DTYPE = torch.complex128


class GateKind(Enum):
    """Gate type tag. The value is the mnemonic used in gate counts."""

    IDENTITY = "I"
    PAULI_X = "X"
    PAULI_Y = "Y"
    PAULI_Z = "Z"
    HADAMARD = "H"
    PHASE = "P"
    RX = "RX"
    RY = "RY"
    RZ = "RZ"
    T = "T"
    S = "S"
    CNOT = "CNOT"
    CZ = "CZ"
    SWAP = "SWAP"
    CPHASE = "CPhase"
    TOFFOLI = "Toffoli"
    FREDKIN = "Fredkin"
    CUSTOM = "Custom"

    @property
    def is_parametric(self) -> bool:
        return self in _PARAMETRIC_KINDS

    @property
    def is_rotation(self) -> bool:
        return self in (GateKind.RX, GateKind.RY, GateKind.RZ)


_PARAMETRIC_KINDS = frozenset(
    {GateKind.PHASE, GateKind.RX, GateKind.RY, GateKind.RZ, GateKind.CPHASE}
)

# Kinds that are their own inverse; used by the cancellation pass.
SELF_INVERSE_KINDS = frozenset(
    {GateKind.PAULI_X, GateKind.PAULI_Y, GateKind.PAULI_Z, GateKind.HADAMARD}
)

_DISPLAY_LABELS = {
    GateKind.TOFFOLI: "CCX",
    GateKind.FREDKIN: "CSWAP",
    GateKind.CUSTOM: "CUSTOM",
    GateKind.CPHASE: "CP",
}


def _table(rows: Sequence[Sequence[complex]]) -> torch.Tensor:
    return torch.tensor(rows, dtype=AMPLITUDE_DTYPE)


def _permutation_table(perm: Sequence[int]) -> torch.Tensor:
    # Row i selects input perm[i]: new[i] = old[perm[i]].
    eye = torch.eye(len(perm), dtype=AMPLITUDE_DTYPE)
    return eye[list(perm)].contiguous()


_SQRT2_INV = 1.0 / math.sqrt(2.0)

IDENTITY_MATRIX = torch.eye(2, dtype=AMPLITUDE_DTYPE)
PAULI_X_MATRIX = _table([[0, 1], [1, 0]])
PAULI_Y_MATRIX = _table([[0, -1j], [1j, 0]])
PAULI_Z_MATRIX = _table([[1, 0], [0, -1]])
HADAMARD_MATRIX = _table([[_SQRT2_INV, _SQRT2_INV], [_SQRT2_INV, -_SQRT2_INV]])
S_MATRIX = _table([[1, 0], [0, 1j]])
T_MATRIX = _table([[1, 0], [0, cmath.exp(1j * math.pi / 4.0)]])

# qubits = (control, target): local index = control + 2 * target.
CNOT_MATRIX = _permutation_table([0, 3, 2, 1])
CZ_MATRIX = torch.diag(_table([1, 1, 1, -1]))
SWAP_MATRIX = _permutation_table([0, 2, 1, 3])

# qubits = (control1, control2, target): flip bit 2 when bits 0 and 1 are set.
TOFFOLI_MATRIX = _permutation_table([0, 1, 2, 7, 4, 5, 6, 3])
# qubits = (control, target1, target2): swap bits 1 and 2 when bit 0 is set.
FREDKIN_MATRIX = _permutation_table([0, 1, 2, 5, 4, 3, 6, 7])


def is_unitary(matrix: torch.Tensor, atol: float = 1e-9) -> bool:
    """
    Check if a matrix is unitary within a given tolerance.

    A matrix U is unitary if U†U = I, where U† is the conjugate transpose.

    Args:
        matrix: Tensor of shape (n, n).
        atol: Absolute tolerance for the check.

    Returns:
        True if the matrix is unitary (within tolerance), False otherwise.
    """
    if matrix.dim() != 2 or matrix.shape[-1] != matrix.shape[-2]:
        return False

    product = matrix.conj().transpose(-1, -2) @ matrix
    identity = torch.eye(matrix.shape[-1], dtype=matrix.dtype, device=matrix.device)
    return bool(torch.all(torch.abs(product - identity) < atol))


@dataclass(frozen=True, eq=False)
class Gate:
    """
    An immutable gate application: kind, target qubits and dense matrix.

    Attributes
    ----------
    kind:
        Gate type tag.
    qubits:
        Target qubit indices. The order defines the local bit order of
        ``matrix`` (bit ``i`` <-> ``qubits[i]``).
    matrix:
        Complex tensor of shape (2**k, 2**k), k = len(qubits).
    params:
        Angle(s) for parametric kinds, empty otherwise.
    is_unitary:
        Informational flag; the simulator applies the matrix regardless.
    """

    kind: GateKind
    qubits: Tuple[int, ...]
    matrix: torch.Tensor = field(repr=False)
    params: Tuple[float, ...] = ()
    is_unitary: bool = True

    def __post_init__(self) -> None:
        qubits = tuple(int(q) for q in self.qubits)
        if not qubits:
            raise ValueError("Gate must act on at least one qubit.")
        if any(q < 0 for q in qubits):
            raise ValueError(f"Qubit indices must be non-negative, got {qubits}.")
        if len(set(qubits)) != len(qubits):
            raise ValueError(f"Gate qubits must be distinct, got {qubits}.")
        object.__setattr__(self, "qubits", qubits)

        dim = 1 << len(qubits)
        if self.matrix.numel() != dim * dim:
            raise MatrixSizeMismatchError(self.matrix.numel(), dim * dim, len(qubits))
        if self.matrix.shape != (dim, dim):
            object.__setattr__(self, "matrix", self.matrix.reshape(dim, dim))
        object.__setattr__(self, "params", tuple(float(p) for p in self.params))

    @property
    def name(self) -> str:
        """Gate mnemonic, e.g. ``"RX"`` or ``"Toffoli"``."""
        return self.kind.value

    @property
    def label(self) -> str:
        """Display label including the angle, e.g. ``"RX(0.500)"``."""
        base = _DISPLAY_LABELS.get(self.kind, self.kind.value)
        if self.kind.is_parametric:
            return f"{base}({self.params[0]:.3f})"
        return base

    @property
    def num_qubits(self) -> int:
        return len(self.qubits)

    @property
    def angle(self) -> Optional[float]:
        return self.params[0] if self.params else None

    def adjoint(self) -> "Gate":
        """
        Return the conjugate-transpose of this gate on the same qubits.

        Rotation-type gates also negate their stored angle so that the angle
        keeps describing the matrix.
        """
        params = tuple(-p for p in self.params) if self.kind.is_parametric else self.params
        return Gate(
            kind=self.kind,
            qubits=self.qubits,
            matrix=self.matrix.conj().transpose(0, 1).contiguous(),
            params=params,
            is_unitary=self.is_unitary,
        )

    def __repr__(self) -> str:
        return f"Gate({self.label} on {self.qubits})"


def _fixed(kind: GateKind, qubits: Sequence[int], table: torch.Tensor) -> Gate:
    return Gate(kind=kind, qubits=tuple(qubits), matrix=table.clone())


# ---------------------------------------------------------------------------
# Single-qubit gates
# ---------------------------------------------------------------------------


def identity(qubit: int) -> Gate:
    return _fixed(GateKind.IDENTITY, (qubit,), IDENTITY_MATRIX)


def pauli_x(qubit: int) -> Gate:
    return _fixed(GateKind.PAULI_X, (qubit,), PAULI_X_MATRIX)


def pauli_y(qubit: int) -> Gate:
    return _fixed(GateKind.PAULI_Y, (qubit,), PAULI_Y_MATRIX)


def pauli_z(qubit: int) -> Gate:
    return _fixed(GateKind.PAULI_Z, (qubit,), PAULI_Z_MATRIX)


def hadamard(qubit: int) -> Gate:
    return _fixed(GateKind.HADAMARD, (qubit,), HADAMARD_MATRIX)


def s_gate(qubit: int) -> Gate:
    """S gate (phase gate, √Z)."""
    return _fixed(GateKind.S, (qubit,), S_MATRIX)


def t_gate(qubit: int) -> Gate:
    """T gate (π/8 gate, √S)."""
    return _fixed(GateKind.T, (qubit,), T_MATRIX)


def phase(qubit: int, theta: float) -> Gate:
    """Phase gate diag(1, e^{iθ})."""
    theta = float(theta)
    matrix = _table([[1, 0], [0, cmath.exp(1j * theta)]])
    return Gate(GateKind.PHASE, (qubit,), matrix, params=(theta,))


def rx(qubit: int, theta: float) -> Gate:
    """
    Rotation around the X axis: RX(θ) = exp(-iθX/2).

    Matrix form:
        [[cos(θ/2), -i sin(θ/2)],
         [-i sin(θ/2), cos(θ/2)]]
    """
    theta = float(theta)
    c = math.cos(theta / 2.0)
    s = math.sin(theta / 2.0)
    matrix = _table([[c, -1j * s], [-1j * s, c]])
    return Gate(GateKind.RX, (qubit,), matrix, params=(theta,))


def ry(qubit: int, theta: float) -> Gate:
    """
    Rotation around the Y axis: RY(θ) = exp(-iθY/2).

    Matrix form:
        [[cos(θ/2), -sin(θ/2)],
         [sin(θ/2), cos(θ/2)]]
    """
    theta = float(theta)
    c = math.cos(theta / 2.0)
    s = math.sin(theta / 2.0)
    matrix = _table([[c, -s], [s, c]])
    return Gate(GateKind.RY, (qubit,), matrix, params=(theta,))


def rz(qubit: int, theta: float) -> Gate:
    """
    Rotation around the Z axis: RZ(θ) = exp(-iθZ/2).

    Matrix form:
        [[exp(-iθ/2), 0],
         [0, exp(iθ/2)]]
    """
    theta = float(theta)
    matrix = _table(
        [[cmath.exp(-0.5j * theta), 0], [0, cmath.exp(0.5j * theta)]]
    )
    return Gate(GateKind.RZ, (qubit,), matrix, params=(theta,))


# ---------------------------------------------------------------------------
# Multi-qubit gates
# ---------------------------------------------------------------------------


def cnot(control: int, target: int) -> Gate:
    """Controlled-NOT: flips ``target`` when ``control`` is |1⟩."""
    return _fixed(GateKind.CNOT, (control, target), CNOT_MATRIX)


def cz(control: int, target: int) -> Gate:
    return _fixed(GateKind.CZ, (control, target), CZ_MATRIX)


def swap(qubit1: int, qubit2: int) -> Gate:
    return _fixed(GateKind.SWAP, (qubit1, qubit2), SWAP_MATRIX)


def controlled_phase(control: int, target: int, theta: float) -> Gate:
    """Controlled phase diag(1, 1, 1, e^{iθ})."""
    theta = float(theta)
    matrix = torch.diag(_table([1, 1, 1, cmath.exp(1j * theta)]))
    return Gate(GateKind.CPHASE, (control, target), matrix, params=(theta,))


def toffoli(control1: int, control2: int, target: int) -> Gate:
    """Toffoli (CCX): flips ``target`` when both controls are |1⟩."""
    return _fixed(GateKind.TOFFOLI, (control1, control2, target), TOFFOLI_MATRIX)


def fredkin(control: int, target1: int, target2: int) -> Gate:
    """Fredkin (CSWAP): swaps the two targets when ``control`` is |1⟩."""
    return _fixed(GateKind.FREDKIN, (control, target1, target2), FREDKIN_MATRIX)


def custom_gate(qubits: Sequence[int], matrix) -> Gate:
    """
    Build a gate from a caller-supplied matrix.

    Parameters
    ----------
    qubits:
        Target qubits; their order defines the local bit order of the matrix.
    matrix:
        Either a flat sequence of (2**k)**2 complex entries in row-major order
        or a square (2**k, 2**k) array. Lists, NumPy arrays and tensors are
        accepted.

    Raises
    ------
    MatrixSizeMismatchError
        If the number of entries is not (2**k)**2.

    Notes
    -----
    The matrix is not required to be unitary. ``is_unitary`` records the
    outcome of a tolerance check; the matrix itself is stored as given.
    """
    qubits = tuple(int(q) for q in qubits)
    array = np.asarray(matrix, dtype=np.complex128)
    dim = 1 << len(qubits)
    if array.size != dim * dim:
        raise MatrixSizeMismatchError(int(array.size), dim * dim, len(qubits))

    tensor = torch.from_numpy(array.reshape(dim, dim).copy())
    return Gate(
        kind=GateKind.CUSTOM,
        qubits=qubits,
        matrix=tensor,
        is_unitary=is_unitary(tensor),
    )


# Short aliases
x = pauli_x
y = pauli_y
z = pauli_z
h = hadamard
s = s_gate
t = t_gate
