"""Gate application kernels.

Two families of kernels act on a :class:`QuantumState` in place:

- fast paths: closed-form updates for I, X, Y, Z, H, RX, RY, RZ and CNOT,
  written against a ``(left, 2, right)`` view of the amplitudes;
- the generic embedding: for every basis index i, read the local k-bit index
  from i's bits at the gate qubits and sum
  ``matrix[local(i), j] * old[i with its target bits replaced by j]``.

Both produce the same amplitudes for the same gate. ``apply_fused`` applies a
group of qubit-disjoint gates as a single tensor contraction.
"""

from __future__ import annotations

import cmath
import math
import string
from typing import Callable, Dict, Sequence

import torch

from ..diagnostics import assert_normalized, debug_norm_tolerance, is_debug_enabled
from ..gates.standard import Gate, GateKind
from .state import QuantumState

_INV_SQRT2 = 1.0 / math.sqrt(2.0)

# torch.einsum accepts subscripts a-z and A-Z only.
_EINSUM_LETTERS = string.ascii_letters

# Upper bound on (rows x matrix columns) materialized at once by the generic kernel.
_GENERIC_CHUNK_ELEMENTS = 1 << 22


# ---------------------------------------------------------------------------
# Fast paths
# ---------------------------------------------------------------------------


def apply_pauli_x(state: QuantumState, qubit: int) -> None:
    """Swap amplitude[i0] and amplitude[i1] for every pair split on ``qubit``."""
    view = state.split_on(qubit)
    state.write(view.flip(1))
    state.is_normalized = True


def apply_pauli_y(state: QuantumState, qubit: int) -> None:
    """new[i0] = (im1, -re1), new[i1] = (-im0, re0)."""
    view = state.split_on(qubit)
    a0 = view[:, 0, :].clone()
    a1 = view[:, 1, :].clone()
    view[:, 0, :] = torch.complex(a1.imag, -a1.real)
    view[:, 1, :] = torch.complex(-a0.imag, a0.real)
    state.is_normalized = True


def apply_pauli_z(state: QuantumState, qubit: int) -> None:
    """Negate every amplitude whose bit ``qubit`` is set."""
    view = state.split_on(qubit)
    view[:, 1, :].neg_()
    state.is_normalized = True


def apply_hadamard(state: QuantumState, qubit: int) -> None:
    view = state.split_on(qubit)
    a0 = view[:, 0, :].clone()
    a1 = view[:, 1, :].clone()
    view[:, 0, :] = (a0 + a1) * _INV_SQRT2
    view[:, 1, :] = (a0 - a1) * _INV_SQRT2
    state.is_normalized = True


def apply_rx(state: QuantumState, qubit: int, theta: float) -> None:
    c = math.cos(theta / 2.0)
    s = math.sin(theta / 2.0)
    view = state.split_on(qubit)
    a0 = view[:, 0, :].clone()
    a1 = view[:, 1, :].clone()
    view[:, 0, :] = c * a0 - 1j * s * a1
    view[:, 1, :] = c * a1 - 1j * s * a0
    state.is_normalized = True


def apply_ry(state: QuantumState, qubit: int, theta: float) -> None:
    c = math.cos(theta / 2.0)
    s = math.sin(theta / 2.0)
    view = state.split_on(qubit)
    a0 = view[:, 0, :].clone()
    a1 = view[:, 1, :].clone()
    view[:, 0, :] = c * a0 - s * a1
    view[:, 1, :] = c * a1 + s * a0
    state.is_normalized = True


def apply_rz(state: QuantumState, qubit: int, theta: float) -> None:
    view = state.split_on(qubit)
    view[:, 0, :] *= cmath.exp(-0.5j * theta)
    view[:, 1, :] *= cmath.exp(0.5j * theta)
    state.is_normalized = True


def apply_cnot(state: QuantumState, control: int, target: int) -> None:
    """Swap amplitude[i] and amplitude[i ^ (1 << target)] for every i with bit ``control`` set."""
    if control == target:
        raise ValueError(f"control and target must differ, got {control}")
    state.split_on(control)
    state.split_on(target)

    index = torch.arange(state.dimension, device=state.amplitudes.device)
    perm = index ^ (((index >> control) & 1) << target)
    state.write(state.amplitudes[perm])
    state.is_normalized = True


# ---------------------------------------------------------------------------
# Generic embedding
# ---------------------------------------------------------------------------


def apply_matrix(
    state: QuantumState,
    qubits: Sequence[int],
    matrix: torch.Tensor,
) -> None:
    """
    Apply a dense 2**k x 2**k matrix to ``qubits`` via the index-embedding formula.

    Bit ``b`` of a local matrix index corresponds to ``qubits[b]``.
    """
    k = len(qubits)
    size = 1 << k
    if matrix.shape != (size, size):
        raise ValueError(
            f"matrix must have shape ({size}, {size}) for {k} qubits, got {tuple(matrix.shape)}"
        )
    for q in qubits:
        state.split_on(q)

    amps = state.amplitudes
    dev = amps.device
    matrix = matrix.to(dtype=amps.dtype, device=dev)

    # offsets[j]: global bit pattern of local index j
    local_j = torch.arange(size, device=dev)
    offsets = torch.zeros(size, dtype=torch.int64, device=dev)
    target_mask = 0
    for bit, q in enumerate(qubits):
        offsets |= ((local_j >> bit) & 1) << q
        target_mask |= 1 << q

    result = torch.empty_like(amps)
    chunk = max(1, _GENERIC_CHUNK_ELEMENTS // size)
    for start in range(0, state.dimension, chunk):
        index = torch.arange(start, min(start + chunk, state.dimension), device=dev)
        local = torch.zeros_like(index)
        for bit, q in enumerate(qubits):
            local |= ((index >> q) & 1) << bit
        sources = (index & ~target_mask).unsqueeze(1) | offsets.unsqueeze(0)
        result[start:start + index.shape[0]] = (matrix[local] * amps[sources]).sum(dim=1)

    state.write(result)
    state.is_normalized = False


# ---------------------------------------------------------------------------
# Fused application of qubit-disjoint gates
# ---------------------------------------------------------------------------


def fused_contraction_fits(num_qubits: int, gates: Sequence[Gate]) -> bool:
    """Whether a fused contraction of ``gates`` stays within the einsum alphabet."""
    return num_qubits + sum(g.num_qubits for g in gates) <= len(_EINSUM_LETTERS)


def gates_are_disjoint(gates: Sequence[Gate]) -> bool:
    seen: set[int] = set()
    for gate in gates:
        if seen.intersection(gate.qubits):
            return False
        seen.update(gate.qubits)
    return True


def apply_fused(state: QuantumState, gates: Sequence[Gate]) -> None:
    """
    Apply several gates on pairwise-disjoint qubits in one contraction.

    The state is viewed as a rank-n tensor (axis ``n - 1 - q`` holds qubit
    ``q``); each gate matrix is reshaped to (2,)*2k and contracted against
    its own axes only, so the result equals applying the gates one after
    another in any order.

    Raises
    ------
    ValueError
        If the gates share a qubit or the contraction needs more than 52
        einsum subscripts.
    """
    n = state.num_qubits
    if not gates_are_disjoint(gates):
        raise ValueError("apply_fused requires gates on pairwise-disjoint qubits.")
    if not fused_contraction_fits(n, gates):
        raise ValueError(
            f"Fused contraction of {len(gates)} gates on {n} qubits exceeds "
            f"{len(_EINSUM_LETTERS)} einsum subscripts."
        )

    amps = state.amplitudes
    state_axes = list(_EINSUM_LETTERS[:n])
    out_axes = list(state_axes)
    terms = []
    operands = []
    cursor = n

    for gate in gates:
        for q in gate.qubits:
            state.split_on(q)
        k = gate.num_qubits
        fresh = _EINSUM_LETTERS[cursor:cursor + k]
        cursor += k

        # Matrix axes after reshape: out bits k-1..0, then in bits k-1..0.
        out_letters = [fresh[b] for b in reversed(range(k))]
        in_letters = [state_axes[n - 1 - gate.qubits[b]] for b in reversed(range(k))]
        terms.append("".join(out_letters + in_letters))
        operands.append(
            gate.matrix.to(dtype=amps.dtype, device=amps.device).reshape((2,) * (2 * k))
        )
        for b in range(k):
            out_axes[n - 1 - gate.qubits[b]] = fresh[b]

    expr = "".join(state_axes) + "," + ",".join(terms) + "->" + "".join(out_axes)
    state.write(torch.einsum(expr, amps.view((2,) * n), *operands))
    state.is_normalized = all(g.is_unitary for g in gates)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _fast_identity(state: QuantumState, gate: Gate) -> None:
    return None


def _fast_x(state: QuantumState, gate: Gate) -> None:
    apply_pauli_x(state, gate.qubits[0])


def _fast_y(state: QuantumState, gate: Gate) -> None:
    apply_pauli_y(state, gate.qubits[0])


def _fast_z(state: QuantumState, gate: Gate) -> None:
    apply_pauli_z(state, gate.qubits[0])


def _fast_h(state: QuantumState, gate: Gate) -> None:
    apply_hadamard(state, gate.qubits[0])


def _fast_rx(state: QuantumState, gate: Gate) -> None:
    apply_rx(state, gate.qubits[0], gate.params[0])


def _fast_ry(state: QuantumState, gate: Gate) -> None:
    apply_ry(state, gate.qubits[0], gate.params[0])


def _fast_rz(state: QuantumState, gate: Gate) -> None:
    apply_rz(state, gate.qubits[0], gate.params[0])


def _fast_cnot(state: QuantumState, gate: Gate) -> None:
    apply_cnot(state, gate.qubits[0], gate.qubits[1])


FAST_PATHS: Dict[GateKind, Callable[[QuantumState, Gate], None]] = {
    GateKind.IDENTITY: _fast_identity,
    GateKind.PAULI_X: _fast_x,
    GateKind.PAULI_Y: _fast_y,
    GateKind.PAULI_Z: _fast_z,
    GateKind.HADAMARD: _fast_h,
    GateKind.RX: _fast_rx,
    GateKind.RY: _fast_ry,
    GateKind.RZ: _fast_rz,
    GateKind.CNOT: _fast_cnot,
}


def has_fast_path(gate: Gate) -> bool:
    return gate.kind in FAST_PATHS


def _debug_check(state: QuantumState, gate: Gate) -> None:
    if gate.is_unitary and is_debug_enabled():
        assert_normalized(state.amplitudes, atol=debug_norm_tolerance())


def apply_gate_generic(state: QuantumState, gate: Gate) -> None:
    """Apply ``gate`` through the generic embedding formula."""
    apply_matrix(state, gate.qubits, gate.matrix)
    _debug_check(state, gate)


def apply_gate_fast(state: QuantumState, gate: Gate) -> None:
    """Apply ``gate`` through its fast path, or the generic formula if it has none."""
    kernel = FAST_PATHS.get(gate.kind)
    if kernel is None:
        apply_matrix(state, gate.qubits, gate.matrix)
    else:
        kernel(state, gate)
    _debug_check(state, gate)


__all__ = [
    "apply_pauli_x",
    "apply_pauli_y",
    "apply_pauli_z",
    "apply_hadamard",
    "apply_rx",
    "apply_ry",
    "apply_rz",
    "apply_cnot",
    "apply_matrix",
    "apply_fused",
    "fused_contraction_fits",
    "gates_are_disjoint",
    "FAST_PATHS",
    "has_fast_path",
    "apply_gate_generic",
    "apply_gate_fast",
]
